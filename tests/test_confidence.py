import pytest

from medlens.confidence import quality_tier, score
from medlens.contracts import ExtractedEntity, LabResult, MedicalStructuredData, MedicationEntry, Span


def _entity(confidence):
    return ExtractedEntity(text="x", type="medication", confidence=confidence, position=Span(start=0, end=1))


def test_empty_document_scores_neutral():
    assert score([], MedicalStructuredData()) == 0.5


def test_score_is_mean_of_all_confidences():
    structured = MedicalStructuredData(
        lab_results=[LabResult(test_name="Hemoglobin", value="11", confidence=0.8)],
        medications=[MedicationEntry(name="Paracetamol", confidence=0.9)],
    )
    assert score([_entity(0.8), _entity(0.8)], structured) == pytest.approx(0.825)


def test_quality_tiers_use_strict_thresholds():
    assert quality_tier(0.85) == "high"
    assert quality_tier(0.8) == "medium"
    assert quality_tier(0.61) == "medium"
    assert quality_tier(0.6) == "low"
    assert quality_tier(0.0) == "low"
