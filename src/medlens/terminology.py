import base64
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .contracts import ProcessedDocument

LOINC_MAP = {
    "hemoglobin": "718-7",
    "glucose": "2345-7",
    "cholesterol": "2093-3",
    "creatinine": "2160-0",
    "white blood cells": "6690-2",
    "red blood cells": "789-8",
    "platelets": "777-3",
}
RXNORM_MAP = {"paracetamol": "161", "acetaminophen": "161", "ibuprofen": "5640"}
SNOMED_MAP = {"hypertension": "38341003"}

INTERPRETATION = {"low": "L", "normal": "N", "high": "H", "critical": "AA"}

LOINC_SYSTEM = "http://loinc.org"
RXNORM_SYSTEM = "http://www.nlm.nih.gov/research/umls/rxnorm"
SNOMED_SYSTEM = "http://snomed.info/sct"
INTERPRETATION_SYSTEM = "http://terminology.hl7.org/CodeSystem/v3-ObservationInterpretation"


class FHIRBundle(BaseModel):
    """Minimal FHIR outputs for downstream EHR interop."""

    resourceType: str = "Bundle"
    type: str = "collection"
    entries: List[Dict] = Field(default_factory=list)


def _coding(system: str, code: Optional[str], display: str) -> Dict:
    return {"coding": [{"system": system, "code": code or "unknown", "display": display}]}


def _quantity(value: str, unit: Optional[str]) -> Dict:
    quantity: Dict = {"value": float(value)}
    if unit:
        quantity["unit"] = unit
    return quantity


def fhir_bundle(document: ProcessedDocument) -> FHIRBundle:
    data = document.structured_data
    entries: List[Dict] = []

    for result in data.lab_results:
        observation: Dict = {
            "resourceType": "Observation",
            "status": "final",
            "code": _coding(LOINC_SYSTEM, LOINC_MAP.get(result.test_name.lower()), result.test_name),
            "valueQuantity": _quantity(result.value, result.unit),
        }
        if result.status in INTERPRETATION:
            observation["interpretation"] = [
                _coding(INTERPRETATION_SYSTEM, INTERPRETATION[result.status], result.status)
            ]
        if result.reference_range:
            observation["referenceRange"] = [{"text": result.reference_range}]
        entries.append(observation)

    for medication in data.medications:
        statement: Dict = {
            "resourceType": "MedicationStatement",
            "status": "active",
            "medicationCodeableConcept": _coding(
                RXNORM_SYSTEM, RXNORM_MAP.get(medication.name.lower()), medication.name
            ),
        }
        dosage_text = " ".join(part for part in (medication.dosage, medication.frequency) if part)
        if dosage_text:
            statement["dosage"] = [{"text": dosage_text}]
        entries.append(statement)

    conditions = list(data.diagnoses)
    for entity in document.entities:
        if entity.type == "condition" and entity.normalized_form and entity.normalized_form not in conditions:
            conditions.append(entity.normalized_form)
    for condition in conditions:
        entries.append(
            {
                "resourceType": "Condition",
                "code": _coding(SNOMED_SYSTEM, SNOMED_MAP.get(condition.lower().strip()), condition),
            }
        )

    entries.append(
        {
            "resourceType": "DocumentReference",
            "status": "current",
            "description": data.report_type,
            "content": [
                {
                    "attachment": {
                        "contentType": "text/plain",
                        "data": base64.b64encode(document.extracted_text.encode("utf-8")).decode("ascii"),
                    }
                }
            ],
        }
    )
    return FHIRBundle(entries=entries)
