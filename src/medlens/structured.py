"""Rule-based extraction of clinical records from report text.

Every field is driven by an ordered list of rules; the first rule that
yields a value wins and a field nobody matches is simply left unset.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .contracts import LabResult, LabStatus, MedicalStructuredData, MedicationEntry, PatientInfo, VitalSign
from .errors import EmptyDocumentError
from .knowledge import KnowledgeGraphStore

logger = logging.getLogger(__name__)

PATTERN_CONFIDENCE = 0.8
KNOWN_DRUG_CONFIDENCE = 0.9
UNKNOWN_DRUG_CONFIDENCE = 0.6
DEFAULT_REPORT_TYPE = "Medical Report"

Mapper = Callable[[re.Match], Optional[str]]


def _first_group(match: re.Match) -> Optional[str]:
    value = match.group(1).strip()
    return value or None


def _lowered(match: re.Match) -> Optional[str]:
    value = _first_group(match)
    return value.lower() if value else None


@dataclass(frozen=True)
class FieldRule:
    pattern: re.Pattern
    mapper: Mapper = _first_group


def rule(pattern: str, mapper: Mapper = _first_group, flags: int = re.IGNORECASE) -> FieldRule:
    return FieldRule(re.compile(pattern, flags), mapper)


def apply_rules(rules: Iterable[FieldRule], text: str) -> Optional[str]:
    for field_rule in rules:
        match = field_rule.pattern.search(text)
        if match is None:
            continue
        value = field_rule.mapper(match)
        if value:
            return value
    return None


NAME_CHARS = r"[A-Za-z][A-Za-z .'-]*"

PATIENT_NAME_RULES = (
    rule(rf"\b(?:patient(?:\s+name)?|name)\s*:[ \t]*({NAME_CHARS})"),
)
PATIENT_AGE_RULES = (rule(r"\bage\s*:[ \t]*(\d{1,3})"),)
PATIENT_GENDER_RULES = (rule(r"\b(?:gender|sex)\s*:[ \t]*(male|female|m|f)\b", _lowered),)
PATIENT_ID_RULES = (
    rule(r"\b(?:patient\s*id|mrn|id)\s*:[ \t]*([A-Za-z0-9-]+)"),
)
DIAGNOSIS_RULES = (rule(r"\b(?:diagnosis|impression|assessment)\s*:\s*([^.\n]+)"),)

DATE_VALUE = r"(\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2}|[A-Za-z]{3,9}\.? \d{1,2}, \d{4})"
REPORT_DATE_RULES = (
    rule(rf"\b(?:report\s+date|date\s+of\s+report|collected|reported|date)\s*:[ \t]*{DATE_VALUE}"),
)
PHYSICIAN_RULES = (
    rule(rf"\b(?:referring\s+)?(?:physician|doctor)\s*:[ \t]*(?:dr\.?[ \t]*)?({NAME_CHARS})"),
    rule(r"\b[Dd][Rr]\.?[ \t]+([A-Z][A-Za-z'-]+(?:[ \t]+[A-Z][A-Za-z'-]+)*)", flags=0),
)
INSTITUTION_RULES = (
    rule(r"\b(?:hospital|clinic|lab|laboratory|institution|medical\s+center)\s*:[ \t]*([^.\n]+)"),
    rule(r"\b([A-Z][A-Za-z]+(?:[ \t]+[A-Z][A-Za-z]+)*[ \t]+(?:Hospital|Clinic|Medical Center|Lab))\b", flags=0),
)

# Lab tests: (display name, alias pattern). Extend through the constructor.
LAB_CATALOG: Tuple[Tuple[str, str], ...] = (
    ("Hemoglobin", r"ha?emoglobin"),
    ("Glucose", r"glucose"),
    ("Cholesterol", r"(?:total\s+)?cholesterol"),
    ("Creatinine", r"creatinine"),
    ("White Blood Cells", r"white\s*blood\s*cells?|wbc"),
    ("Red Blood Cells", r"red\s*blood\s*cells?|rbc"),
    ("Platelets", r"platelets?"),
)
LAB_VALUE_TEMPLATE = (
    r"\b(?:{alias})\s*:[ \t]*(?P<value>\d+(?:\.\d+)?)"
    r"(?:[ \t]*(?P<unit>[A-Za-z%/]+(?:/[A-Za-z]+)?))?"
    r"(?:[ \t]*\((?P<range>[^)\n]*)\))?"
)
RANGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)")

MEDICATION_PATTERN = re.compile(
    r"\b(?P<name>[A-Za-z]+(?:[ \t]+[A-Za-z]+)*)[ \t]+(?P<amount>\d+(?:\.\d+)?)[ \t]*"
    r"(?P<unit>mg|g|ml|mcg)(?![A-Za-z/])"
    r"(?:[ \t]*(?P<frequency>once|twice|thrice|\d+[ \t]*times?)(?:[ \t]*(?:daily|per[ \t]*day))?)?",
    re.IGNORECASE,
)

VITAL_RULES: Tuple[Tuple[str, str, str], ...] = (
    ("Blood Pressure", r"\bblood\s*pressure\s*:[ \t]*(\d{2,3}\s*/\s*\d{2,3})", "mmHg"),
    ("Heart Rate", r"\bheart\s*rate\s*:[ \t]*(\d+)", "bpm"),
    ("Temperature", r"\btemperature\s*:[ \t]*(\d+(?:\.\d+)?)", "°F"),
    ("Weight", r"\bweight\s*:[ \t]*(\d+(?:\.\d+)?)", "kg"),
    ("Height", r"\bheight\s*:[ \t]*(\d+(?:\.\d+)?)", "cm"),
)

# Checked in order; the first hit decides the label.
REPORT_TYPE_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    (r"blood|\bcbc\b", "Blood Test"),
    (r"x-ray|xray", "X-Ray"),
    (r"\bmri\b", "MRI"),
    (r"\bct\b|scan", "CT Scan"),
    (r"echo|cardiac", "Cardiac Test"),
)


def classify_report(text: str) -> str:
    lowered = text.lower()
    for pattern, label in REPORT_TYPE_KEYWORDS:
        if re.search(pattern, lowered):
            return label
    return DEFAULT_REPORT_TYPE


def lab_status(value: str, reference_range: Optional[str]) -> LabStatus:
    """Classify ``value`` against a ``min-max`` range.

    Ranges written as ``<N`` or ``>N`` are not interpreted and yield
    ``unknown``.
    """

    if not reference_range:
        return "unknown"
    try:
        numeric = float(value)
    except ValueError:
        return "unknown"
    match = RANGE_PATTERN.search(reference_range)
    if match is None:
        return "unknown"
    low, high = float(match.group(1)), float(match.group(2))
    if numeric < low:
        return "low"
    if numeric > high:
        return "high"
    return "normal"


class StructuredDataExtractor:
    def __init__(
        self,
        knowledge: KnowledgeGraphStore,
        extra_lab_tests: Sequence[Tuple[str, str]] = (),
    ) -> None:
        self.knowledge = knowledge
        self.lab_patterns = [
            (name, re.compile(LAB_VALUE_TEMPLATE.format(alias=alias), re.IGNORECASE))
            for name, alias in (*LAB_CATALOG, *extra_lab_tests)
        ]
        self.vital_patterns = [
            (vital_type, re.compile(pattern, re.IGNORECASE), unit)
            for vital_type, pattern, unit in VITAL_RULES
        ]

    def extract_structured_data(self, text: str) -> MedicalStructuredData:
        if not text or not text.strip():
            raise EmptyDocumentError("No text to extract structured data from")

        data = MedicalStructuredData(
            patient_info=self.extract_patient_info(text),
            lab_results=self.extract_lab_results(text),
            medications=self.extract_medications(text),
            diagnoses=self.extract_diagnoses(text),
            vitals=self.extract_vitals(text),
            report_type=classify_report(text),
            report_date=apply_rules(REPORT_DATE_RULES, text),
            physician=apply_rules(PHYSICIAN_RULES, text),
            institution=apply_rules(INSTITUTION_RULES, text),
        )
        logger.debug(
            "Structured extraction: %d labs, %d medications, %d vitals, report type %s",
            len(data.lab_results),
            len(data.medications),
            len(data.vitals),
            data.report_type,
        )
        return data

    def extract_patient_info(self, text: str) -> PatientInfo:
        return PatientInfo(
            name=apply_rules(PATIENT_NAME_RULES, text),
            age=apply_rules(PATIENT_AGE_RULES, text),
            gender=apply_rules(PATIENT_GENDER_RULES, text),
            id=apply_rules(PATIENT_ID_RULES, text),
        )

    def extract_lab_results(self, text: str) -> List[LabResult]:
        results: List[LabResult] = []
        for test_name, pattern in self.lab_patterns:
            match = pattern.search(text)
            if match is None:
                continue
            value = match.group("value")
            reference_range = (match.group("range") or "").strip() or None
            results.append(
                LabResult(
                    test_name=test_name,
                    value=value,
                    unit=match.group("unit"),
                    reference_range=reference_range,
                    status=lab_status(value, reference_range),
                    confidence=PATTERN_CONFIDENCE,
                )
            )
        return results

    def _names_drug(self, word: str) -> bool:
        term = word.lower()
        return any(
            term == entity.name.lower() or term in (synonym.lower() for synonym in entity.synonyms)
            for entity in self.knowledge.search_entities(term, "drug")
        )

    def extract_medications(self, text: str) -> List[MedicationEntry]:
        medications: List[MedicationEntry] = []
        for match in MEDICATION_PATTERN.finditer(text):
            name = match.group("name").strip()
            known = bool(self.knowledge.search_entities(name, "drug"))
            last_word = name.split()[-1]
            if not known and last_word != name and self._names_drug(last_word):
                # leading words like "Prescribed" are swallowed by the name group
                name, known = last_word, True
            medications.append(
                MedicationEntry(
                    name=name,
                    dosage=f"{match.group('amount')} {match.group('unit').lower()}",
                    frequency=(match.group("frequency") or "").lower() or None,
                    confidence=KNOWN_DRUG_CONFIDENCE if known else UNKNOWN_DRUG_CONFIDENCE,
                )
            )
        return medications

    def extract_diagnoses(self, text: str) -> List[str]:
        diagnosis = apply_rules(DIAGNOSIS_RULES, text)
        return [diagnosis] if diagnosis else []

    def extract_vitals(self, text: str) -> List[VitalSign]:
        vitals: List[VitalSign] = []
        for vital_type, pattern, unit in self.vital_patterns:
            match = pattern.search(text)
            if match:
                vitals.append(
                    VitalSign(
                        type=vital_type,
                        value=re.sub(r"\s+", "", match.group(1)),
                        unit=unit,
                        confidence=PATTERN_CONFIDENCE,
                    )
                )
        return vitals
