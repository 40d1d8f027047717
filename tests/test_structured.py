import pytest

from medlens.errors import EmptyDocumentError
from medlens.structured import StructuredDataExtractor, classify_report, lab_status

from conftest import SAMPLE_REPORT


@pytest.fixture
def extractor(knowledge):
    return StructuredDataExtractor(knowledge)


def test_lab_status_against_range():
    assert lab_status("11.2", "13.5-17.5") == "low"
    assert lab_status("18", "13.5 - 17.5") == "high"
    assert lab_status("13.5", "13.5-17.5") == "normal"
    assert lab_status("17.5", "13.5-17.5") == "normal"


def test_lab_status_reference_values():
    assert lab_status("14.2", "13.5-17.5") == "normal"
    assert lab_status("7.0", "13.5-17.5") == "low"
    assert lab_status("20.0", "13.5-17.5") == "high"


def test_lab_status_unknown_without_usable_range():
    assert lab_status("5", None) == "unknown"
    assert lab_status("5", "<200") == "unknown"
    assert lab_status("positive", "0-1") == "unknown"


def test_classify_report_uses_first_matching_keyword():
    assert classify_report("CBC panel") == "Blood Test"
    assert classify_report("Chest X-ray, PA view") == "X-Ray"
    assert classify_report("MRI brain without contrast") == "MRI"
    assert classify_report("CT abdomen") == "CT Scan"
    assert classify_report("Echocardiogram findings") == "Cardiac Test"
    assert classify_report("Blood work after CT scan") == "Blood Test"
    assert classify_report("Discharge summary") == "Medical Report"


def test_classify_report_short_keywords_are_whole_words():
    assert classify_report("Reviewed by the attending doctor") == "Medical Report"
    assert classify_report("Primary care follow-up") == "Medical Report"


async def test_extracts_full_report(extractor):
    data = extractor.extract_structured_data(SAMPLE_REPORT)

    assert data.patient_info.name == "John Smith"
    assert data.patient_info.age == "45"
    assert data.patient_info.gender == "male"
    assert data.patient_info.id == "P-1234"
    assert data.report_date == "03/15/2024"
    assert data.physician == "Sarah Lee"
    assert data.institution == "City General Hospital"
    assert data.report_type == "Blood Test"
    assert data.diagnoses == ["Mild anemia"]

    labs = {result.test_name: result for result in data.lab_results}
    assert list(labs) == ["Hemoglobin", "Glucose", "Platelets"]
    assert labs["Hemoglobin"].value == "11.2"
    assert labs["Hemoglobin"].unit == "g/dL"
    assert labs["Hemoglobin"].reference_range == "13.5-17.5"
    assert labs["Hemoglobin"].status == "low"
    assert labs["Glucose"].status == "high"
    assert labs["Platelets"].status == "normal"
    assert all(result.confidence == 0.8 for result in data.lab_results)

    assert len(data.medications) == 1
    medication = data.medications[0]
    assert medication.name == "Paracetamol"
    assert medication.dosage == "500 mg"
    assert medication.frequency == "twice"
    assert medication.confidence == 0.9

    vitals = {vital.type: vital for vital in data.vitals}
    assert vitals["Blood Pressure"].value == "130/85"
    assert vitals["Blood Pressure"].unit == "mmHg"
    assert vitals["Heart Rate"].value == "72"


async def test_unknown_medication_gets_lower_confidence(extractor):
    medications = extractor.extract_medications("Zorbitol 20 mg once daily")
    assert [(m.name, m.dosage, m.frequency, m.confidence) for m in medications] == [
        ("Zorbitol", "20 mg", "once", 0.6)
    ]


async def test_units_followed_by_slash_are_not_medications(extractor):
    assert extractor.extract_medications("Glucose 105 mg/dL") == []


async def test_lab_without_range_is_unknown(extractor):
    results = extractor.extract_lab_results("WBC: 7.2")
    assert len(results) == 1
    assert results[0].test_name == "White Blood Cells"
    assert results[0].unit is None
    assert results[0].status == "unknown"


async def test_extra_lab_tests(knowledge):
    extractor = StructuredDataExtractor(knowledge, extra_lab_tests=[("HbA1c", r"hba1c")])
    results = extractor.extract_lab_results("HbA1c: 6.8 % (4.0-5.6)")
    assert [(r.test_name, r.status) for r in results] == [("HbA1c", "high")]


async def test_missing_fields_stay_unset(extractor):
    data = extractor.extract_structured_data("Follow-up visit, patient feels better.")
    assert data.patient_info.name is None
    assert data.lab_results == []
    assert data.medications == []
    assert data.diagnoses == []
    assert data.report_type == "Medical Report"


async def test_blank_text_is_rejected(extractor):
    with pytest.raises(EmptyDocumentError):
        extractor.extract_structured_data("   \n")


async def test_leading_words_do_not_hide_a_known_medication(extractor):
    medications = extractor.extract_medications("Prescribed Paracetamol 500 mg twice daily")
    assert [(m.name, m.dosage, m.confidence) for m in medications] == [("Paracetamol", "500 mg", 0.9)]


async def test_short_trailing_word_is_not_matched_as_a_drug(extractor):
    medications = extractor.extract_medications("Take a 500 mg tablet")
    assert [(m.name, m.confidence) for m in medications] == [("Take a", 0.6)]
