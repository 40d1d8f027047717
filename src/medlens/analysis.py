"""Knowledge-augmented AI analysis of report text."""

import logging
from typing import Any, Dict, List

from .background import BackgroundWriter
from .contracts import AIResponse, LabTestEntity, utcnow
from .errors import ConfigurationError, ExternalServiceError
from .knowledge import KnowledgeGraphStore
from .llm import CompletionClient, parse_json_payload
from .prompts import build_report_analysis_prompt, mentioned_terms
from .redaction import safe_harbor_redact
from .store import ANALYSIS_COLLECTION, DocumentStore

logger = logging.getLogger(__name__)

ANALYSIS_SOURCES = ["Gemini AI", "Medical Knowledge Base", "Open Medical Data"]
ANALYSIS_CONFIDENCE = 0.85
ANALYSIS_DISCLAIMER = (
    "AI analysis enhanced with medical knowledge base. "
    "This is not a diagnosis; always discuss results with your doctor or a healthcare professional."
)
RELATED_CONDITION_LIMIT = 3
RELATED_PER_TERM = 3
AUDIT_TEXT_LIMIT = 500


class ReportAnalyzer:
    def __init__(
        self,
        knowledge: KnowledgeGraphStore,
        llm: CompletionClient,
        store: DocumentStore,
        writer: BackgroundWriter,
    ) -> None:
        self.knowledge = knowledge
        self.llm = llm
        self.store = store
        self.writer = writer

    async def analyze_report(self, report_text: str, report_type: str) -> AIResponse:
        """Run the AI analysis and wrap the outcome in an :class:`AIResponse`.

        Never raises except on cancellation.
        """

        try:
            await self.knowledge.initialize()
            if not self.llm.configured:
                raise ConfigurationError("AI analysis not configured")

            terms = mentioned_terms(report_text)
            knowledge = self.relevant_knowledge(terms, report_type)
            prompt = build_report_analysis_prompt(report_text, report_type, knowledge)
            completion = await self.llm.complete(prompt)
            if completion is None:
                return AIResponse.failure(
                    "AI analysis failed",
                    error_type="external_service",
                    disclaimer="Unable to analyze report. Please consult a healthcare professional.",
                )

            analysis = self.enhance_analysis(completion, terms)
            self._record_analysis(report_text, report_type, analysis)
            return AIResponse.ok(
                analysis,
                sources=ANALYSIS_SOURCES,
                confidence=ANALYSIS_CONFIDENCE,
                disclaimer=ANALYSIS_DISCLAIMER,
            )
        except ConfigurationError as exc:
            logger.warning("Report analysis unavailable: %s", exc)
            return AIResponse.failure(
                "AI analysis not configured",
                error_type="configuration",
                disclaimer="AI analysis requires proper configuration. Please consult a healthcare professional.",
            )
        except ExternalServiceError as exc:
            logger.warning("Report analysis AI call failed: %s", exc)
            return AIResponse.failure(
                "AI analysis failed",
                error_type="external_service",
                disclaimer="Unable to analyze report. Please consult a healthcare professional.",
            )
        except Exception:
            logger.exception("Report analysis failed")
            return AIResponse.failure(
                "Analysis failed due to technical issues",
                error_type="technical",
                disclaimer="Technical error occurred. Please consult a healthcare professional.",
            )

    def relevant_knowledge(self, terms: List[str], report_type: str) -> str:
        lines: List[str] = []
        for term in terms:
            for test in self.knowledge.search_entities(term, "lab_test"):
                lines.append(f"{test.name}: {test.description}")
                if isinstance(test, LabTestEntity):
                    for reference in test.reference_ranges:
                        qualifier = ", ".join(
                            value for value in (reference.gender, reference.age, reference.condition) if value
                        )
                        normal = reference.normal_range
                        lines.append(
                            f"  Reference{f' ({qualifier})' if qualifier else ''}: "
                            f"{normal.min:g}-{normal.max:g} {normal.unit}"
                        )
        for condition in self.knowledge.search_entities(report_type)[:RELATED_CONDITION_LIMIT]:
            lines.append(f"Related condition: {condition.name} - {condition.description}")
        return "\n".join(lines)

    def enhance_analysis(self, completion: str, terms: List[str]) -> Any:
        """Attach knowledge graph cross-references to the parsed AI output.

        Output that is not a JSON object is returned as the raw text.
        """

        try:
            analysis = parse_json_payload(completion)
        except ValueError:
            logger.warning("AI analysis was not valid JSON; returning raw text")
            return completion
        if not isinstance(analysis, dict):
            return completion

        related_drugs: List[Dict[str, str]] = []
        related_conditions: List[Dict[str, str]] = []
        resources: List[str] = []
        for term in terms:
            drugs = self.knowledge.search_entities(term, "drug")[:RELATED_PER_TERM]
            for test in self.knowledge.search_entities(term, "lab_test"):
                for source in test.sources:
                    if source not in resources:
                        resources.append(source)
                for neighbour in self.knowledge.get_related_entities(test.id):
                    if neighbour.type == "drug" and neighbour not in drugs:
                        drugs.append(neighbour)
            related_drugs.extend({"name": drug.name, "indication": term} for drug in drugs[:RELATED_PER_TERM])
            related_conditions.extend(
                {"name": condition.name, "term": term}
                for condition in self.knowledge.search_entities(term, "condition")[:RELATED_PER_TERM]
            )

        analysis["knowledgeBaseEnhancements"] = {
            "extractedEntities": terms,
            "relatedDrugs": related_drugs,
            "relatedConditions": related_conditions,
            "additionalResources": resources,
        }
        return analysis

    def _record_analysis(self, report_text: str, report_type: str, analysis: Any) -> None:
        record = {
            "reportType": report_type,
            "reportText": safe_harbor_redact(report_text)[:AUDIT_TEXT_LIMIT],
            "analysis": analysis,
            "timestamp": utcnow().isoformat(),
        }
        self.writer.submit("analysis audit", lambda: self.store.add(ANALYSIS_COLLECTION, record))
