"""Curated reference data loaded into an empty knowledge graph."""

import re
from typing import List, Tuple

from .contracts import (
    ConditionEntity,
    DrugEntity,
    LabTestEntity,
    MedicalEntity,
    NormalRange,
    Pharmacokinetics,
    PriceRange,
    Pricing,
    ReferenceRange,
)

INTERACTION_WEIGHT = 0.5


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def reference_entities() -> List[MedicalEntity]:
    paracetamol = DrugEntity(
        id="paracetamol",
        name="Paracetamol",
        generic_name="Acetaminophen",
        brand_names=["Tylenol", "Crocin", "Dolo"],
        synonyms=["acetaminophen", "APAP"],
        description="Analgesic and antipyretic medication",
        category="Analgesics",
        dosage_form=["tablet", "syrup", "injection"],
        strength=["500mg", "650mg", "1000mg"],
        indications=["Pain relief", "Fever reduction", "Headache"],
        contraindications=["Severe liver disease", "Alcohol dependency"],
        side_effects=["Nausea", "Liver damage (overdose)", "Skin rash"],
        interactions=["Warfarin", "Alcohol", "Phenytoin"],
        mechanism="Inhibits cyclooxygenase enzymes in the central nervous system",
        pharmacokinetics=Pharmacokinetics(
            absorption="Rapid and complete oral absorption",
            distribution="Widely distributed, crosses placenta",
            metabolism="Hepatic metabolism via glucuronidation and sulfation",
            elimination="Renal elimination, half-life 1-4 hours",
        ),
        pricing=Pricing(average_price=25, price_range=PriceRange(min=10, max=50), currency="INR"),
        metadata={"fdaApproved": True, "pregnancyCategory": "B", "controlledSubstance": False},
        sources=["FDA Orange Book", "WHO Essential Medicines", "PubMed"],
    )
    ibuprofen = DrugEntity(
        id="ibuprofen",
        name="Ibuprofen",
        generic_name="Ibuprofen",
        brand_names=["Advil", "Brufen", "Combiflam"],
        synonyms=["isobutylphenylpropionic acid"],
        description="Nonsteroidal anti-inflammatory drug (NSAID)",
        category="NSAIDs",
        dosage_form=["tablet", "capsule", "syrup", "gel"],
        strength=["200mg", "400mg", "600mg"],
        indications=["Pain relief", "Inflammation", "Fever", "Arthritis"],
        contraindications=["Peptic ulcer", "Severe heart failure", "Kidney disease"],
        side_effects=["Stomach upset", "Kidney problems", "Cardiovascular risk"],
        interactions=["ACE inhibitors", "Warfarin", "Lithium"],
        mechanism="Inhibits cyclooxygenase-1 and cyclooxygenase-2 enzymes",
        pharmacokinetics=Pharmacokinetics(
            absorption="Rapid oral absorption, peak levels in 1-2 hours",
            distribution="Highly protein bound (>99%)",
            metabolism="Hepatic metabolism",
            elimination="Renal and biliary elimination, half-life 2-4 hours",
        ),
        pricing=Pricing(average_price=30, price_range=PriceRange(min=15, max=60), currency="INR"),
        metadata={"fdaApproved": True, "pregnancyCategory": "C", "controlledSubstance": False},
        sources=["FDA Orange Book", "WHO Essential Medicines", "Cochrane Reviews"],
    )
    hypertension = ConditionEntity(
        id="hypertension",
        name="Hypertension",
        synonyms=["high blood pressure", "HTN"],
        description="Persistently elevated blood pressure",
        category="Cardiovascular",
        icd_code="I10",
        symptoms=["Headache", "Dizziness", "Chest pain", "Shortness of breath"],
        causes=["Genetics", "Diet", "Stress", "Obesity", "Smoking"],
        risk_factors=["Age", "Family history", "Obesity", "Sedentary lifestyle"],
        diagnosis=["Blood pressure measurement", "ECG", "Echocardiogram"],
        treatment=["Lifestyle changes", "ACE inhibitors", "Diuretics", "Beta blockers"],
        prognosis="Good with proper management",
        prevalence="1.13 billion people worldwide",
        severity="moderate",
        metadata={"chronicCondition": True, "preventable": True},
        sources=["WHO", "AHA Guidelines", "PubMed"],
    )
    hemoglobin = LabTestEntity(
        id="hemoglobin",
        name="Hemoglobin",
        synonyms=["Hb", "Haemoglobin"],
        description="Protein in red blood cells that carries oxygen",
        category="Hematology",
        reference_ranges=[
            ReferenceRange(gender="male", normal_range=NormalRange(min=13.5, max=17.5, unit="g/dL")),
            ReferenceRange(gender="female", normal_range=NormalRange(min=12.0, max=16.0, unit="g/dL")),
        ],
        clinical_significance="Indicates oxygen-carrying capacity and anemia",
        methodology="Automated hematology analyzer",
        specimen_type="Whole blood (EDTA)",
        turnaround_time="1-2 hours",
        metadata={"criticalValues": {"low": 7.0, "high": 20.0}},
        sources=["Clinical Laboratory Standards Institute", "WHO"],
    )
    return [paracetamol, ibuprofen, hypertension, hemoglobin]


def reference_relationships(entities: List[MedicalEntity]) -> List[Tuple[str, str, str, float]]:
    """Edges for the reference set, including ``interacts_with`` edges
    derived from each drug's inline interaction list."""

    edges: List[Tuple[str, str, str, float]] = [
        ("paracetamol", "hypertension", "treats", 0.3),
        ("ibuprofen", "hypertension", "contraindicated", 0.8),
    ]
    for entity in entities:
        if isinstance(entity, DrugEntity):
            edges.extend(interaction_edges(entity))
    return edges


def interaction_edges(drug: DrugEntity) -> List[Tuple[str, str, str, float]]:
    return [
        (drug.id, slugify(substance), "interacts_with", INTERACTION_WEIGHT)
        for substance in drug.interactions
    ]
