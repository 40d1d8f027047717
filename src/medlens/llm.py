"""Generative-AI completion boundary.

One prompt in, one completion out. The default client goes through a
crewai ``LLM`` (LiteLLM under the hood), so any LiteLLM model id works;
the Gemini family is the default.
"""

import asyncio
import json
import logging
import re
from functools import lru_cache
from typing import Any, Optional, Protocol

from crewai import LLM

from .errors import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "generative-ai"
_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class CompletionClient(Protocol):
    @property
    def configured(self) -> bool:
        """Whether a credential is available."""

    async def complete(self, prompt: str) -> Optional[str]:
        """Return the completion text, or ``None`` when the model sent nothing.

        Raises :class:`ConfigurationError` without a credential and
        :class:`ExternalServiceError` on timeouts or provider errors.
        """


@lru_cache(maxsize=4)
def _shared_llm(model: str, api_key: str, timeout: float, temperature: float) -> LLM:
    """Return a shared LLM instance per model/credential pair."""

    return LLM(model=model, api_key=api_key, timeout=timeout, temperature=temperature)


class CrewAICompletionClient:
    def __init__(
        self,
        model: str,
        api_key: Optional[str],
        timeout: float = 30.0,
        temperature: float = 0.2,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, prompt: str) -> Optional[str]:
        if not self.api_key:
            raise ConfigurationError("No generative-AI credential configured (set GEMINI_API_KEY)")

        llm = _shared_llm(self.model, self.api_key, self.timeout, self.temperature)
        logger.debug("Calling %s with a %d character prompt", self.model, len(prompt))
        try:
            text = await asyncio.wait_for(asyncio.to_thread(llm.call, prompt), self.timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalServiceError(SERVICE_NAME, f"timed out after {self.timeout:.0f}s") from exc
        except Exception as exc:
            raise ExternalServiceError(SERVICE_NAME, str(exc)) from exc

        if text is None or not str(text).strip():
            logger.warning("Empty completion from %s", self.model)
            return None
        return str(text)


def parse_json_payload(text: str) -> Any:
    """Parse model output as JSON, tolerating a surrounding code fence.

    Raises ``ValueError`` when the text is not JSON.
    """

    stripped = text.strip()
    fenced = _FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1)
    return json.loads(stripped)
