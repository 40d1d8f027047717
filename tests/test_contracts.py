import pytest
from pydantic import ValidationError

from medlens.contracts import AIResponse, MedicineInfo, Relationship


def test_failure_has_no_data_and_zero_confidence():
    response = AIResponse.failure("No information found for this medicine", error_type="not_found")
    assert response.success is False
    assert response.data is None
    assert response.confidence == 0
    assert response.sources == []
    assert response.disclaimer


def test_failure_with_data_is_rejected():
    with pytest.raises(ValidationError):
        AIResponse(success=False, data={"a": 1}, disclaimer="Consult a doctor.")
    with pytest.raises(ValidationError):
        AIResponse(success=False, confidence=0.5, disclaimer="Consult a doctor.")


def test_disclaimer_is_required():
    with pytest.raises(ValidationError):
        AIResponse(success=True, data=[], disclaimer="")
    with pytest.raises(ValidationError):
        AIResponse.ok([], sources=[], confidence=0.9, disclaimer="   ")


def test_relationship_serialises_with_from_and_to():
    relationship = Relationship(source="a", target="b", type="treats", weight=0.3)
    assert relationship.model_dump(by_alias=True) == {"from": "a", "to": "b", "type": "treats", "weight": 0.3}
    assert Relationship.model_validate({"from": "a", "to": "b", "type": "treats", "weight": 0.3}) == relationship


def test_medicine_info_accepts_camel_case_keys():
    info = MedicineInfo.model_validate({"name": "X", "genericName": "x", "sideEffects": ["nausea"]})
    assert info.generic_name == "x"
    assert info.side_effects == ["nausea"]
