"""Tiered medicine lookup: knowledge graph, external API, then AI."""

import asyncio
import logging
from typing import List, Optional

from pydantic import ValidationError

from .contracts import AIResponse, DrugEntity, MedicalEntity, MedicineInfo
from .errors import ConfigurationError, ExternalServiceError
from .knowledge import KnowledgeGraphStore
from .llm import CompletionClient, parse_json_payload
from .pharma import PharmaceuticalAPI
from .prompts import build_medicine_search_prompt
from .seed import slugify

logger = logging.getLogger(__name__)

KNOWLEDGE_SOURCES = ["Medical Knowledge Base", "Open Medical Data"]
AI_SOURCES = ["AI Semantic Search", "Medical Literature"]
KNOWLEDGE_CONFIDENCE = 0.90
EXTERNAL_CONFIDENCE = 0.75
AI_CONFIDENCE = 0.65


def to_medicine_info(drug: DrugEntity, knowledge: KnowledgeGraphStore) -> MedicineInfo:
    """Flatten a drug entity, resolving graph neighbours for display."""

    cached_names = {slugify(name): name for name in drug.interactions}
    interactions: List[str] = []
    for edge in knowledge.get_relationships(drug.id, "interacts_with"):
        target = knowledge.get_entity(edge.target)
        label = target.name if target is not None else cached_names.get(edge.target, edge.target)
        if label not in interactions:
            interactions.append(label)

    return MedicineInfo(
        id=drug.id,
        name=drug.name,
        generic_name=drug.generic_name,
        category=drug.category,
        uses=list(drug.indications),
        side_effects=list(drug.side_effects),
        dosage=", ".join(drug.strength),
        contraindications=list(drug.contraindications),
        interactions=interactions or list(drug.interactions),
        price=drug.pricing,
        availability="Available",
        last_updated=drug.last_updated,
        related_conditions=[entity.name for entity in knowledge.get_related_entities(drug.id, "treats")],
        drug_interactions=[
            entity.name for entity in knowledge.get_related_entities(drug.id, "interacts_with")
        ],
        sources=list(drug.sources),
    )


class MedicineSearchService:
    def __init__(
        self,
        knowledge: KnowledgeGraphStore,
        pharma_api: PharmaceuticalAPI,
        llm: CompletionClient,
        external_timeout: float = 30.0,
    ) -> None:
        self.knowledge = knowledge
        self.pharma_api = pharma_api
        self.llm = llm
        self.external_timeout = external_timeout

    async def search_medicine(self, query: str) -> AIResponse:
        """Resolve ``query`` through each tier in turn; the first hit wins.

        Never raises except on cancellation.
        """

        try:
            await self.knowledge.initialize()

            found = self.search_knowledge_graph(query)
            if found:
                return AIResponse.ok(
                    [info.model_dump(mode="json") for info in found],
                    sources=KNOWLEDGE_SOURCES,
                    confidence=KNOWLEDGE_CONFIDENCE,
                )

            external = await self.search_external(query)
            if external is not None:
                return AIResponse.ok(
                    [external.model_dump(mode="json")],
                    sources=list(self.pharma_api.sources),
                    confidence=EXTERNAL_CONFIDENCE,
                    disclaimer=(
                        "This information is sourced from external databases. "
                        "Always verify with a healthcare professional."
                    ),
                )

            semantic = await self.search_semantic(query)
            if semantic is not None:
                return AIResponse.ok(
                    [semantic.model_dump(mode="json")],
                    sources=AI_SOURCES,
                    confidence=AI_CONFIDENCE,
                    disclaimer=(
                        "AI-generated results. Please verify with a healthcare professional "
                        "and official sources."
                    ),
                )

            return AIResponse.failure(
                "No information found for this medicine",
                error_type="not_found",
                disclaimer="Unable to find reliable information. Please consult a healthcare professional.",
            )
        except Exception:
            logger.exception("Medicine search failed for %r", query)
            return AIResponse.failure(
                "Search failed due to technical issues",
                error_type="technical",
                disclaimer="Technical error occurred. Please try again or consult a healthcare professional.",
            )

    def search_knowledge_graph(self, query: str) -> List[MedicineInfo]:
        hits: List[MedicalEntity] = self.knowledge.search_entities(query, "drug")
        return [to_medicine_info(hit, self.knowledge) for hit in hits if isinstance(hit, DrugEntity)]

    async def search_external(self, query: str) -> Optional[MedicineInfo]:
        try:
            drug = await asyncio.wait_for(self.pharma_api.lookup(query), self.external_timeout)
        except asyncio.TimeoutError:
            logger.warning("Pharmaceutical API timed out for %r", query)
            return None
        except ExternalServiceError as exc:
            logger.warning("Pharmaceutical API failed for %r: %s", query, exc)
            return None
        except Exception:
            logger.exception("Pharmaceutical API raised unexpectedly for %r", query)
            return None
        if drug is None:
            return None

        term = query.strip()
        if not drug.matches(term.lower()):
            drug.synonyms = [*drug.synonyms, term]
        # the cache entry stays valid even if this request is cancelled
        await asyncio.shield(self.knowledge.add_entity(drug))
        logger.info("Cached external medicine record %s", drug.id)
        return to_medicine_info(drug, self.knowledge)

    async def search_semantic(self, query: str) -> Optional[MedicineInfo]:
        if not self.llm.configured:
            return None
        try:
            completion = await self.llm.complete(build_medicine_search_prompt(query))
        except (ConfigurationError, ExternalServiceError) as exc:
            logger.warning("AI semantic search failed for %r: %s", query, exc)
            return None
        if completion is None:
            return None

        try:
            payload = parse_json_payload(completion)
        except ValueError:
            logger.warning("AI semantic search returned non-JSON output for %r", query)
            return None
        if not isinstance(payload, dict):
            return None
        try:
            info = MedicineInfo.model_validate(payload)
        except ValidationError as exc:
            logger.warning("AI semantic search payload rejected: %s", exc)
            return None
        info.sources = list(AI_SOURCES)
        return info
