"""Text extraction from uploaded artifacts.

Each media family is handled by a swappable strategy. The defaults use
pdfplumber for PDFs and Tesseract (through pytesseract) for images; a
deployment can register a cloud OCR engine instead by passing its own
strategy list.
"""

import asyncio
import io
import logging
import mimetypes
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import pdfplumber
import pytesseract
from PIL import Image

from .contracts import DocumentArtifact
from .errors import DocumentExtractionError, UnsupportedMediaTypeError

logger = logging.getLogger(__name__)

FALLBACK_MEDIA_TYPE = "application/octet-stream"


class TextExtractionStrategy(Protocol):
    name: str

    def matches(self, media_type: str) -> bool:
        ...

    def extract(self, artifact: DocumentArtifact) -> str:
        """Blocking extraction; called from a worker thread."""


class PlainTextStrategy:
    name = "text"

    def matches(self, media_type: str) -> bool:
        return media_type.startswith("text/")

    def extract(self, artifact: DocumentArtifact) -> str:
        return artifact.content.decode("utf-8", errors="replace")


class PdfTextStrategy:
    name = "pdfplumber"

    def matches(self, media_type: str) -> bool:
        return media_type == "application/pdf"

    def extract(self, artifact: DocumentArtifact) -> str:
        pages: List[str] = []
        with pdfplumber.open(io.BytesIO(artifact.content)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
        return "\n".join(pages)


class TesseractImageStrategy:
    name = "tesseract"

    def __init__(self, lang: str = "eng") -> None:
        self.lang = lang

    def matches(self, media_type: str) -> bool:
        return media_type.startswith("image/")

    def extract(self, artifact: DocumentArtifact) -> str:
        with Image.open(io.BytesIO(artifact.content)) as image:
            return pytesseract.image_to_string(image, lang=self.lang)


def default_strategies() -> List[TextExtractionStrategy]:
    return [TesseractImageStrategy(), PdfTextStrategy(), PlainTextStrategy()]


def resolve_media_type(artifact: DocumentArtifact) -> str:
    """Declared media type, or one guessed from the file name."""

    if artifact.media_type:
        return artifact.media_type.split(";")[0].strip().lower()
    guessed, _ = mimetypes.guess_type(artifact.name or "")
    return guessed or FALLBACK_MEDIA_TYPE


@dataclass
class ExtractionResult:
    text: str
    media_type: str
    engine: str
    elapsed: float


class DocumentExtractor:
    def __init__(
        self,
        strategies: Optional[Sequence[TextExtractionStrategy]] = None,
        timeout: float = 60.0,
    ) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()
        self.timeout = timeout

    def strategy_for(self, media_type: str) -> TextExtractionStrategy:
        for strategy in self.strategies:
            if strategy.matches(media_type):
                return strategy
        raise UnsupportedMediaTypeError(media_type)

    async def extract_text(self, artifact: DocumentArtifact) -> ExtractionResult:
        """Extract plain text from ``artifact`` within the configured timeout.

        Raises :class:`UnsupportedMediaTypeError` for unknown media types and
        :class:`DocumentExtractionError` when the engine fails or times out.
        Cancelling the awaiting task abandons the extraction.
        """

        media_type = resolve_media_type(artifact)
        strategy = self.strategy_for(media_type)
        logger.debug("Extracting %s (%d bytes) with %s", artifact.name or "<upload>", artifact.size, strategy.name)

        started = time.perf_counter()
        try:
            text = await asyncio.wait_for(asyncio.to_thread(strategy.extract, artifact), self.timeout)
        except asyncio.TimeoutError as exc:
            raise DocumentExtractionError(
                f"{strategy.name} extraction timed out after {self.timeout:.0f}s"
            ) from exc
        except Exception as exc:
            raise DocumentExtractionError(f"{strategy.name} extraction failed: {exc}") from exc

        elapsed = time.perf_counter() - started
        logger.info("Extracted %d characters with %s in %.2fs", len(text), strategy.name, elapsed)
        return ExtractionResult(text=text, media_type=media_type, engine=strategy.name, elapsed=elapsed)
