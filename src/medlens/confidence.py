from typing import List, Sequence

from .contracts import ExtractedEntity, MedicalStructuredData, Quality

NEUTRAL_CONFIDENCE = 0.5
HIGH_QUALITY_THRESHOLD = 0.8
MEDIUM_QUALITY_THRESHOLD = 0.6


def score(entities: Sequence[ExtractedEntity], structured: MedicalStructuredData) -> float:
    """Unweighted mean of entity, lab result and medication confidences."""

    confidences: List[float] = [entity.confidence for entity in entities]
    confidences.extend(result.confidence for result in structured.lab_results)
    confidences.extend(medication.confidence for medication in structured.medications)
    if not confidences:
        return NEUTRAL_CONFIDENCE
    mean = sum(confidences) / len(confidences)
    return min(1.0, max(0.0, mean))


def quality_tier(confidence: float) -> Quality:
    if confidence > HIGH_QUALITY_THRESHOLD:
        return "high"
    if confidence > MEDIUM_QUALITY_THRESHOLD:
        return "medium"
    return "low"
