import pytest

from medlens.config import Settings
from medlens.confidence import quality_tier
from medlens.contracts import DocumentArtifact
from medlens.errors import DocumentProcessingError, EmptyDocumentError, UnsupportedMediaTypeError
from medlens.pipeline import build_pipeline
from medlens.store import ANALYSIS_COLLECTION, SQLiteDocumentStore

from conftest import SAMPLE_REPORT, FakeCompletionClient, FakePharmaceuticalAPI


@pytest.fixture
def pipeline(store):
    return build_pipeline(
        Settings(),
        store=store,
        llm=FakeCompletionClient(reply='{"summary": "ok"}'),
        pharma_api=FakePharmaceuticalAPI(),
    )


async def test_process_document(pipeline):
    artifact = DocumentArtifact(content=SAMPLE_REPORT.encode("utf-8"), media_type="text/plain", name="report.txt")
    document = await pipeline.process_document(artifact)

    assert document.extracted_text == SAMPLE_REPORT
    assert document.processing_method == "text"
    assert document.structured_data.report_type == "Blood Test"
    assert [result.test_name for result in document.structured_data.lab_results] == [
        "Hemoglobin",
        "Glucose",
        "Platelets",
    ]
    normalized = {(entity.type, entity.normalized_form) for entity in document.entities}
    assert ("medication", "Paracetamol") in normalized
    assert ("lab_test", "Hemoglobin") in normalized

    assert 0.0 <= document.confidence <= 1.0
    metadata = document.metadata
    assert metadata.file_type == "text/plain"
    assert metadata.file_size == len(SAMPLE_REPORT.encode("utf-8"))
    assert metadata.ocr_engine == "text"
    assert metadata.language == "en"
    assert metadata.processing_time >= 0
    assert metadata.quality == quality_tier(document.confidence)


async def test_short_report_with_prefixed_range_and_compact_dose(pipeline):
    text = "Hemoglobin: 14.2 g/dL (Normal: 13.5-17.5)\nParacetamol 500mg twice daily"
    document = await pipeline.process_document(DocumentArtifact(content=text.encode("utf-8"), media_type="text/plain"))

    data = document.structured_data
    assert [
        (result.test_name, result.value, result.unit, result.status, result.confidence)
        for result in data.lab_results
    ] == [("Hemoglobin", "14.2", "g/dL", "normal", 0.8)]
    assert [(m.name, m.dosage, m.frequency, m.confidence) for m in data.medications] == [
        ("Paracetamol", "500 mg", "twice", 0.9)
    ]


async def test_blank_document_is_rejected(pipeline):
    with pytest.raises(EmptyDocumentError):
        await pipeline.process_document(DocumentArtifact(content=b"  \n ", media_type="text/plain"))


async def test_unsupported_document_is_rejected(pipeline):
    with pytest.raises(UnsupportedMediaTypeError):
        await pipeline.process_document(DocumentArtifact(content=b"PK", media_type="application/zip"))


async def test_unexpected_failure_is_wrapped(pipeline, monkeypatch):
    def explode(text):
        raise RuntimeError("regex engine exploded")

    monkeypatch.setattr(pipeline.structured, "extract_structured_data", explode)
    with pytest.raises(DocumentProcessingError):
        await pipeline.process_document(DocumentArtifact(content=b"Hemoglobin: 12", media_type="text/plain"))


async def test_close_flushes_audit_and_releases_clients(pipeline, store):
    async with pipeline:
        response = await pipeline.analyze_report("Hemoglobin: 11.2 g/dL", "Blood Test")
        assert response.success is True

    assert store.count(ANALYSIS_COLLECTION) == 1
    assert pipeline.pharma_api.closed is True


async def test_search_medicine_entry_point(pipeline):
    response = await pipeline.search_medicine("ibuprofen")
    assert response.success is True
    assert response.data[0]["name"] == "Ibuprofen"
    assert response.data[0]["related_conditions"] == []


async def test_knowledge_persists_across_sqlite_sessions(tmp_path):
    db_path = str(tmp_path / "medlens.db")
    settings = Settings(store_path=db_path)

    first = build_pipeline(settings, llm=FakeCompletionClient(configured=False))
    assert isinstance(first.store, SQLiteDocumentStore)
    await first.knowledge.initialize()
    await first.aclose()

    second = build_pipeline(settings, llm=FakeCompletionClient(configured=False))
    await second.knowledge.initialize()
    stats = second.knowledge.get_statistics()
    await second.aclose()

    assert stats.total_entities == 4
    assert stats.total_relationships == 8
