import os
from typing import Optional

from pydantic import BaseModel

DEFAULT_LLM_MODEL = "gemini/gemini-1.5-flash"


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    llm_model: str = DEFAULT_LLM_MODEL
    ai_timeout: float = 30.0
    extraction_timeout: float = 60.0
    pharma_timeout: float = 30.0
    store_path: Optional[str] = None
    openfda_enabled: bool = False
    openfda_api_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment."""

        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or None,
            llm_model=os.getenv("MEDLENS_LLM_MODEL", DEFAULT_LLM_MODEL),
            ai_timeout=_seconds("MEDLENS_AI_TIMEOUT", 30.0),
            extraction_timeout=_seconds("MEDLENS_EXTRACTION_TIMEOUT", 60.0),
            pharma_timeout=_seconds("MEDLENS_PHARMA_TIMEOUT", 30.0),
            store_path=os.getenv("MEDLENS_STORE_PATH") or None,
            openfda_enabled=_flag("MEDLENS_OPENFDA"),
            openfda_api_key=os.getenv("OPENFDA_API_KEY") or None,
        )
