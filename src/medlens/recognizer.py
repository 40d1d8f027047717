import logging
import string
from typing import List, Tuple

from .contracts import ExtractedEntity, ExtractedType, Span
from .knowledge import KnowledgeGraphStore

logger = logging.getLogger(__name__)

ENTITY_CONFIDENCE = 0.8
MIN_TOKEN_LENGTH = 3

# (knowledge graph entity type, extracted entity type)
LOOKUPS: Tuple[Tuple[str, ExtractedType], ...] = (
    ("drug", "medication"),
    ("condition", "condition"),
    ("lab_test", "lab_test"),
)


class EntityRecognizer:
    """Tags whitespace tokens that resolve against the knowledge graph.

    Each token is looked up once per entity type, so a token known both as
    a condition and as a lab test yields two entities.
    """

    def __init__(self, knowledge: KnowledgeGraphStore) -> None:
        self.knowledge = knowledge

    def extract_entities(self, text: str) -> List[ExtractedEntity]:
        entities: List[ExtractedEntity] = []
        for index, raw_token in enumerate(text.lower().split()):
            token = raw_token.strip(string.punctuation)
            if len(token) < MIN_TOKEN_LENGTH:
                continue
            for kg_type, extracted_type in LOOKUPS:
                hits = self.knowledge.search_entities(token, kg_type)
                if not hits:
                    continue
                entities.append(
                    ExtractedEntity(
                        text=token,
                        type=extracted_type,
                        confidence=ENTITY_CONFIDENCE,
                        position=Span(start=index, end=index + 1),
                        normalized_form=hits[0].name,
                    )
                )
        logger.debug("Recognized %d knowledge graph entities", len(entities))
        return entities
