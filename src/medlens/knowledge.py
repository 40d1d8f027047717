"""In-memory medical knowledge graph backed by a :class:`DocumentStore`.

Entities are nodes of a :class:`networkx.MultiDiGraph` (attribute
``entity``); relationships are parallel directed edges carrying ``type``
and ``weight``. A node without an ``entity`` attribute is the dangling end
of an edge whose target has not been loaded yet and is ignored by every
query.

Reads are synchronous and may run from worker threads. In-memory
mutation happens under ``_graph_lock`` only for the mutation itself, while
``_write_lock`` serialises each write together with its persistence.
"""

import asyncio
import logging
import threading
from collections import Counter
from typing import Dict, List, Optional, Tuple

import networkx as nx
from pydantic import TypeAdapter, ValidationError

from .contracts import KnowledgeEntity, KnowledgeStatistics, MedicalEntity, Relationship
from .seed import reference_entities, reference_relationships
from .store import KNOWLEDGE_COLLECTION, RELATIONSHIP_COLLECTION, DocumentStore

logger = logging.getLogger(__name__)

ENTITY_ADAPTER: TypeAdapter = TypeAdapter(KnowledgeEntity)


class KnowledgeGraphStore:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._graph = nx.MultiDiGraph()
        self._graph_lock = threading.RLock()
        self._write_lock = asyncio.Lock()
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load persisted knowledge, seeding reference data when empty.

        Safe to call repeatedly and concurrently; only the first call loads
        or seeds.
        """

        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self._load()
            if self.entity_count() == 0:
                await self._seed()
            self._initialized = True
            logger.info("Knowledge graph initialized with %d entities", self.entity_count())

    async def _load(self) -> None:
        try:
            entity_docs = await self._store.all(KNOWLEDGE_COLLECTION)
            relationship_docs = await self._store.all(RELATIONSHIP_COLLECTION)
        except Exception:
            logger.exception("Failed to load knowledge from the document store")
            return

        for doc in entity_docs:
            try:
                entity = ENTITY_ADAPTER.validate_python(doc)
            except ValidationError as exc:
                logger.warning("Skipping malformed entity record %s: %s", doc.get("id"), exc)
                continue
            self._put_node(entity)

        for doc in relationship_docs:
            try:
                relationship = Relationship.model_validate(doc)
            except ValidationError as exc:
                logger.warning("Skipping malformed relationship record: %s", exc)
                continue
            self._put_edge(relationship)
        logger.debug(
            "Loaded %d entity and %d relationship records",
            len(entity_docs),
            len(relationship_docs),
        )

    async def _seed(self) -> None:
        logger.info("Seeding knowledge graph with reference data")
        entities = reference_entities()
        for entity in entities:
            await self.add_entity(entity)
        for source, target, rel_type, weight in reference_relationships(entities):
            await self.add_relationship(source, target, rel_type, weight)

    def _put_node(self, entity: MedicalEntity) -> None:
        with self._graph_lock:
            self._graph.add_node(entity.id, entity=entity)

    def _put_edge(self, relationship: Relationship) -> None:
        with self._graph_lock:
            self._graph.add_edge(
                relationship.source,
                relationship.target,
                type=relationship.type,
                weight=relationship.weight,
            )

    async def add_entity(self, entity: MedicalEntity) -> None:
        """Upsert ``entity`` by id and persist it."""

        if not entity.id:
            raise ValueError("Entity id must not be empty")
        async with self._write_lock:
            self._put_node(entity)
            try:
                await self._store.put(KNOWLEDGE_COLLECTION, entity.id, entity.model_dump(mode="json"))
            except Exception:
                logger.warning("Failed to persist entity %s", entity.id, exc_info=True)

    async def add_relationship(self, source: str, target: str, rel_type: str, weight: float) -> None:
        """Append a relationship edge. Duplicates are kept."""

        relationship = Relationship(source=source, target=target, type=rel_type, weight=weight)
        async with self._write_lock:
            self._put_edge(relationship)
            try:
                await self._store.add(RELATIONSHIP_COLLECTION, relationship.model_dump(by_alias=True))
            except Exception:
                logger.warning(
                    "Failed to persist relationship %s -[%s]-> %s",
                    source,
                    rel_type,
                    target,
                    exc_info=True,
                )

    def entities(self) -> List[MedicalEntity]:
        with self._graph_lock:
            return [data["entity"] for _, data in self._graph.nodes(data=True) if "entity" in data]

    def relationships(self) -> List[Relationship]:
        with self._graph_lock:
            edges = list(self._graph.edges(data=True))
        return [
            Relationship(source=source, target=target, type=data["type"], weight=data["weight"])
            for source, target, data in edges
        ]

    def entity_count(self) -> int:
        return len(self.entities())

    def search_entities(self, query: str, entity_type: Optional[str] = None) -> List[MedicalEntity]:
        """Substring search over names and synonyms, exact name matches first."""

        term = query.strip().lower()
        if not term:
            return []
        matches = [
            entity
            for entity in self.entities()
            if (entity_type is None or entity.type == entity_type) and entity.matches(term)
        ]
        # sort is stable, so ties keep graph insertion order
        matches.sort(key=lambda entity: entity.name.lower() != term)
        return matches

    def get_entity(self, entity_id: str) -> Optional[MedicalEntity]:
        with self._graph_lock:
            if entity_id not in self._graph:
                return None
            return self._graph.nodes[entity_id].get("entity")

    def get_relationships(self, entity_id: str, rel_type: Optional[str] = None) -> List[Relationship]:
        with self._graph_lock:
            if entity_id not in self._graph:
                return []
            edges = list(self._graph.out_edges(entity_id, data=True))
        return [
            Relationship(source=source, target=target, type=data["type"], weight=data["weight"])
            for source, target, data in edges
            if rel_type is None or data["type"] == rel_type
        ]

    def get_related_entities(self, entity_id: str, rel_type: Optional[str] = None) -> List[MedicalEntity]:
        """One-hop neighbours by descending edge weight.

        A neighbour reached through several matching edges appears once,
        ranked by its heaviest edge. Dangling targets are skipped.
        """

        best: Dict[str, Tuple[MedicalEntity, float]] = {}
        with self._graph_lock:
            for relationship in self.get_relationships(entity_id, rel_type):
                entity = self._graph.nodes[relationship.target].get("entity")
                if entity is None:
                    continue
                current = best.get(relationship.target)
                if current is None or relationship.weight > current[1]:
                    best[relationship.target] = (entity, relationship.weight)
        ranked = sorted(best.values(), key=lambda pair: pair[1], reverse=True)
        return [entity for entity, _ in ranked]

    def get_statistics(self) -> KnowledgeStatistics:
        entities = self.entities()
        with self._graph_lock:
            total_relationships = self._graph.number_of_edges()
        return KnowledgeStatistics(
            total_entities=len(entities),
            total_relationships=total_relationships,
            entity_types=dict(Counter(entity.type for entity in entities)),
        )
