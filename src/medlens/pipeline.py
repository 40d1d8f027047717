"""Caller-facing entry points.

``process_document``, ``analyze_report`` and ``search_medicine`` are the
only operations the rest of an application should depend on.
"""

import asyncio
import logging
import time
from typing import Optional

from .analysis import ReportAnalyzer
from .background import BackgroundWriter
from .config import Settings
from .confidence import quality_tier, score
from .contracts import AIResponse, DocumentArtifact, DocumentMetadata, ProcessedDocument
from .errors import DocumentProcessingError, EmptyDocumentError, MedLensError
from .extractors import DocumentExtractor
from .knowledge import KnowledgeGraphStore
from .llm import CompletionClient, CrewAICompletionClient
from .medicine import MedicineSearchService
from .pharma import NullPharmaceuticalAPI, OpenFDAClient, PharmaceuticalAPI
from .recognizer import EntityRecognizer
from .store import DocumentStore, InMemoryDocumentStore, SQLiteDocumentStore
from .structured import StructuredDataExtractor

logger = logging.getLogger(__name__)

FLUSH_TIMEOUT = 5.0


class MedLensPipeline:
    def __init__(
        self,
        store: DocumentStore,
        knowledge: KnowledgeGraphStore,
        extractor: DocumentExtractor,
        llm: CompletionClient,
        pharma_api: PharmaceuticalAPI,
        pharma_timeout: float = 30.0,
    ) -> None:
        self.store = store
        self.knowledge = knowledge
        self.extractor = extractor
        self.writer = BackgroundWriter()
        self.pharma_api = pharma_api
        self.structured = StructuredDataExtractor(knowledge)
        self.recognizer = EntityRecognizer(knowledge)
        self.analyzer = ReportAnalyzer(knowledge, llm, store, self.writer)
        self.medicine = MedicineSearchService(knowledge, pharma_api, llm, external_timeout=pharma_timeout)

    async def process_document(self, artifact: DocumentArtifact) -> ProcessedDocument:
        """Extract, structure and score one uploaded document.

        Raises only :class:`MedLensError` subclasses.
        """

        await self.knowledge.initialize()
        started = time.perf_counter()
        try:
            extraction = await self.extractor.extract_text(artifact)
            text = extraction.text
            if not text.strip():
                raise EmptyDocumentError(f"No text could be extracted from {artifact.name or 'the upload'}")

            structured, entities = await asyncio.gather(
                asyncio.to_thread(self.structured.extract_structured_data, text),
                asyncio.to_thread(self.recognizer.extract_entities, text),
            )
        except MedLensError:
            raise
        except Exception as exc:
            logger.exception("Document processing failed")
            raise DocumentProcessingError("Failed to process document") from exc

        confidence = score(entities, structured)
        metadata = DocumentMetadata(
            file_type=extraction.media_type,
            file_size=artifact.size,
            processing_time=time.perf_counter() - started,
            ocr_engine=extraction.engine,
            language="en",
            quality=quality_tier(confidence),
        )
        logger.info(
            "Processed %s: %s, confidence %.2f (%s)",
            artifact.name or "upload",
            structured.report_type,
            confidence,
            metadata.quality,
        )
        return ProcessedDocument(
            extracted_text=text,
            structured_data=structured,
            confidence=confidence,
            processing_method=extraction.engine,
            entities=entities,
            metadata=metadata,
        )

    async def analyze_report(self, report_text: str, report_type: str) -> AIResponse:
        return await self.analyzer.analyze_report(report_text, report_type)

    async def search_medicine(self, query: str) -> AIResponse:
        return await self.medicine.search_medicine(query)

    async def aclose(self) -> None:
        await self.writer.flush(FLUSH_TIMEOUT)
        await self.pharma_api.aclose()
        if isinstance(self.store, SQLiteDocumentStore):
            self.store.close()

    async def __aenter__(self) -> "MedLensPipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def build_pipeline(
    settings: Optional[Settings] = None,
    *,
    store: Optional[DocumentStore] = None,
    llm: Optional[CompletionClient] = None,
    pharma_api: Optional[PharmaceuticalAPI] = None,
    extractor: Optional[DocumentExtractor] = None,
) -> MedLensPipeline:
    """Compose a pipeline from settings, letting callers swap any boundary."""

    settings = settings or Settings.from_env()
    if store is None:
        store = SQLiteDocumentStore(settings.store_path) if settings.store_path else InMemoryDocumentStore()
    if llm is None:
        llm = CrewAICompletionClient(settings.llm_model, settings.gemini_api_key, timeout=settings.ai_timeout)
    if pharma_api is None:
        if settings.openfda_enabled:
            pharma_api = OpenFDAClient(api_key=settings.openfda_api_key, timeout=settings.pharma_timeout)
        else:
            pharma_api = NullPharmaceuticalAPI()
    if extractor is None:
        extractor = DocumentExtractor(timeout=settings.extraction_timeout)

    return MedLensPipeline(
        store=store,
        knowledge=KnowledgeGraphStore(store),
        extractor=extractor,
        llm=llm,
        pharma_api=pharma_api,
        pharma_timeout=settings.pharma_timeout,
    )
