"""External pharmaceutical data boundary (tier 2 of medicine search)."""

import logging
import re
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from .contracts import DrugEntity
from .errors import ExternalServiceError
from .seed import slugify

logger = logging.getLogger(__name__)

OPENFDA_BASE_URL = "https://api.fda.gov/drug"
SUMMARY_LIMIT = 300


class PharmaceuticalAPI(Protocol):
    sources: List[str]

    async def lookup(self, query: str) -> Optional[DrugEntity]:
        """Return a drug record for ``query`` or ``None`` when unknown.

        Raises :class:`ExternalServiceError` when the service misbehaves.
        """

    async def aclose(self) -> None:
        ...


class NullPharmaceuticalAPI:
    """Tier-2 placeholder used when no external service is configured."""

    sources: List[str] = []

    async def lookup(self, query: str) -> Optional[DrugEntity]:
        return None

    async def aclose(self) -> None:
        return None


def _first(values: Optional[Sequence[str]]) -> str:
    return values[0].strip() if values else ""


def _summary(values: Optional[Sequence[str]], limit: int = SUMMARY_LIMIT) -> str:
    """First sentence of a label section, without its leading heading."""

    text = re.sub(r"\s+", " ", _first(values))
    text = re.sub(r"^(?:\d+(?:\.\d+)*\s+)?[A-Z][A-Z &]+\s+", "", text)
    sentence = re.split(r"(?<=[.!?])\s", text, maxsplit=1)[0]
    return sentence[:limit].strip()


class OpenFDAClient:
    sources = ["External Medical APIs", "FDA Database"]

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        base_url: str = OPENFDA_BASE_URL,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.api_key = api_key

    async def lookup(self, query: str) -> Optional[DrugEntity]:
        term = query.strip().replace('"', "")
        if not term:
            return None
        params: Dict[str, Any] = {
            "search": f'openfda.brand_name:"{term}" openfda.generic_name:"{term}"',
            "limit": 1,
        }
        if self.api_key:
            params["api_key"] = self.api_key

        try:
            response = await self._client.get("/label.json", params=params)
        except httpx.HTTPError as exc:
            raise ExternalServiceError("openFDA", f"request failed: {exc}") from exc

        if response.status_code == 404:
            logger.debug("openFDA has no label for %r", term)
            return None
        if response.status_code >= 400:
            raise ExternalServiceError("openFDA", f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceError("openFDA", "malformed JSON payload") from exc
        if not isinstance(payload, dict):
            raise ExternalServiceError("openFDA", "malformed JSON payload")
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise ExternalServiceError("openFDA", "malformed JSON payload")
        if not results:
            return None
        if not isinstance(results[0], dict):
            raise ExternalServiceError("openFDA", "malformed JSON payload")
        return self._to_entity(results[0], term)

    def _to_entity(self, label: Dict[str, Any], query: str) -> DrugEntity:
        openfda = label.get("openfda") or {}
        generic = _first(openfda.get("generic_name")).title()
        name = _first(openfda.get("brand_name")).title() or generic or query.title()
        synonyms: List[str] = []
        for candidate in (generic, query):
            if candidate and candidate.lower() != name.lower() and candidate not in synonyms:
                synonyms.append(candidate)

        def section(key: str) -> List[str]:
            summary = _summary(label.get(key))
            return [summary] if summary else []

        indications = section("indications_and_usage")
        return DrugEntity(
            id=slugify(name),
            name=name,
            generic_name=generic,
            brand_names=[brand.title() for brand in openfda.get("brand_name", [])],
            synonyms=synonyms,
            description=indications[0] if indications else _summary(label.get("purpose")),
            category=_first(openfda.get("pharm_class_epc")),
            dosage_form=[route.lower() for route in openfda.get("route", [])],
            strength=section("dosage_forms_and_strengths"),
            indications=indications,
            contraindications=section("contraindications"),
            side_effects=section("adverse_reactions"),
            mechanism=_summary(label.get("mechanism_of_action")),
            metadata={"setId": label.get("set_id"), "manufacturer": _first(openfda.get("manufacturer_name"))},
            sources=["openFDA"],
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
