from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

EntityType = Literal["drug", "condition", "symptom", "procedure", "lab_test"]
Severity = Literal["mild", "moderate", "severe", "critical"]
LabStatus = Literal["normal", "high", "low", "critical", "unknown"]
ExtractedType = Literal["medication", "condition", "lab_test", "vital", "person", "date", "value"]
Quality = Literal["high", "medium", "low"]
ErrorType = Literal["configuration", "external_service", "not_found", "technical"]

DEFAULT_DISCLAIMER = (
    "This information is for educational purposes only. "
    "Always consult with a healthcare professional."
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MedicalEntity(BaseModel):
    """Shared fields of every knowledge graph entity."""

    model_config = ConfigDict(validate_assignment=True)

    id: str
    type: EntityType
    name: str
    synonyms: List[str] = Field(default_factory=list)
    description: str = ""
    category: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    sources: List[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on the name or any synonym."""
        if term in self.name.lower():
            return True
        return any(term in synonym.lower() for synonym in self.synonyms)


class Pharmacokinetics(BaseModel):
    absorption: str = ""
    distribution: str = ""
    metabolism: str = ""
    elimination: str = ""


class PriceRange(BaseModel):
    min: float
    max: float


class Pricing(BaseModel):
    average_price: float
    price_range: PriceRange
    currency: str = "INR"


class DrugEntity(MedicalEntity):
    type: Literal["drug"] = Field(default="drug", frozen=True)
    generic_name: str = ""
    brand_names: List[str] = Field(default_factory=list)
    dosage_form: List[str] = Field(default_factory=list)
    strength: List[str] = Field(default_factory=list)
    indications: List[str] = Field(default_factory=list)
    contraindications: List[str] = Field(default_factory=list)
    side_effects: List[str] = Field(default_factory=list)
    # Display cache only; ``interacts_with`` edges in the graph are canonical.
    interactions: List[str] = Field(default_factory=list)
    mechanism: str = ""
    pharmacokinetics: Optional[Pharmacokinetics] = None
    pricing: Optional[Pricing] = None


class ConditionEntity(MedicalEntity):
    type: Literal["condition"] = Field(default="condition", frozen=True)
    icd_code: str = ""
    symptoms: List[str] = Field(default_factory=list)
    causes: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)
    diagnosis: List[str] = Field(default_factory=list)
    treatment: List[str] = Field(default_factory=list)
    prognosis: str = ""
    prevalence: str = ""
    severity: Severity = "moderate"


class NormalRange(BaseModel):
    min: float
    max: float
    unit: str


class ReferenceRange(BaseModel):
    age: Optional[str] = None
    gender: Optional[str] = None
    condition: Optional[str] = None
    normal_range: NormalRange


class LabTestEntity(MedicalEntity):
    type: Literal["lab_test"] = Field(default="lab_test", frozen=True)
    reference_ranges: List[ReferenceRange] = Field(default_factory=list)
    clinical_significance: str = ""
    methodology: str = ""
    specimen_type: str = ""
    turnaround_time: str = ""


class SymptomEntity(MedicalEntity):
    type: Literal["symptom"] = Field(default="symptom", frozen=True)


class ProcedureEntity(MedicalEntity):
    type: Literal["procedure"] = Field(default="procedure", frozen=True)


KnowledgeEntity = Annotated[
    Union[DrugEntity, ConditionEntity, LabTestEntity, SymptomEntity, ProcedureEntity],
    Field(discriminator="type"),
]


class Relationship(BaseModel):
    """Directed, typed, weighted edge. Persisted with ``from``/``to`` keys."""

    model_config = ConfigDict(populate_by_name=True)

    source: str = Field(alias="from")
    target: str = Field(alias="to")
    type: str
    weight: float = Field(ge=0.0, le=1.0)


class KnowledgeStatistics(BaseModel):
    total_entities: int
    total_relationships: int
    entity_types: Dict[str, int] = Field(default_factory=dict)


class Span(BaseModel):
    start: int
    end: int


class ExtractedEntity(BaseModel):
    text: str
    type: ExtractedType
    confidence: float = Field(ge=0.0, le=1.0)
    position: Span
    normalized_form: Optional[str] = None


class PatientInfo(BaseModel):
    name: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None
    id: Optional[str] = None


class LabResult(BaseModel):
    test_name: str
    value: str
    unit: Optional[str] = None
    reference_range: Optional[str] = None
    status: LabStatus = "unknown"
    confidence: float


class MedicationEntry(BaseModel):
    name: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None
    route: Optional[str] = None
    confidence: float


class VitalSign(BaseModel):
    type: str
    value: str
    unit: Optional[str] = None
    timestamp: Optional[str] = None
    confidence: float


class MedicalStructuredData(BaseModel):
    patient_info: PatientInfo = Field(default_factory=PatientInfo)
    lab_results: List[LabResult] = Field(default_factory=list)
    medications: List[MedicationEntry] = Field(default_factory=list)
    diagnoses: List[str] = Field(default_factory=list)
    vitals: List[VitalSign] = Field(default_factory=list)
    report_type: str = "Medical Report"
    report_date: Optional[str] = None
    physician: Optional[str] = None
    institution: Optional[str] = None


class DocumentArtifact(BaseModel):
    """Raw uploaded file: bytes plus the media type the caller declared."""

    content: bytes
    media_type: str = ""
    name: str = ""

    @property
    def size(self) -> int:
        return len(self.content)


class DocumentMetadata(BaseModel):
    file_type: str
    file_size: int
    processing_time: float
    ocr_engine: Optional[str] = None
    language: str = "en"
    quality: Quality


class ProcessedDocument(BaseModel):
    extracted_text: str
    structured_data: MedicalStructuredData
    confidence: float
    processing_method: str
    entities: List[ExtractedEntity] = Field(default_factory=list)
    metadata: DocumentMetadata


class MedicineInfo(BaseModel):
    """Uniform medicine record returned by every search tier."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str
    generic_name: str = Field(default="", alias="genericName")
    category: str = ""
    uses: List[str] = Field(default_factory=list)
    side_effects: List[str] = Field(default_factory=list, alias="sideEffects")
    dosage: str = ""
    contraindications: List[str] = Field(default_factory=list)
    interactions: List[str] = Field(default_factory=list)
    price: Optional[Pricing] = None
    availability: str = "Available"
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    related_conditions: List[str] = Field(default_factory=list, alias="relatedConditions")
    drug_interactions: List[str] = Field(default_factory=list, alias="drugInteractions")
    sources: List[str] = Field(default_factory=list)


class AIResponse(BaseModel):
    """Envelope returned by every operation that may fail or partially succeed."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_type: Optional[ErrorType] = None
    sources: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    disclaimer: str = Field(min_length=1)

    @model_validator(mode="after")
    def _check_failure_shape(self) -> "AIResponse":
        if not self.success:
            if self.data is not None:
                raise ValueError("failed responses must not carry data")
            if self.confidence != 0:
                raise ValueError("failed responses must have zero confidence")
        if not self.disclaimer.strip():
            raise ValueError("disclaimer must not be blank")
        return self

    @classmethod
    def ok(
        cls,
        data: Any,
        *,
        sources: List[str],
        confidence: float,
        disclaimer: str = DEFAULT_DISCLAIMER,
    ) -> "AIResponse":
        return cls(
            success=True,
            data=data,
            sources=list(sources),
            confidence=confidence,
            disclaimer=disclaimer,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        error_type: ErrorType = "technical",
        disclaimer: str = "Please consult a healthcare professional.",
    ) -> "AIResponse":
        return cls(
            success=False,
            error=error,
            error_type=error_type,
            sources=[],
            confidence=0.0,
            disclaimer=disclaimer,
        )
