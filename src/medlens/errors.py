class MedLensError(Exception):
    """Base class for errors raised across the medlens boundaries."""


class ConfigurationError(MedLensError):
    """A required external credential or setting is missing."""


class UnsupportedMediaTypeError(MedLensError):
    def __init__(self, media_type: str):
        super().__init__(f"Unsupported file type: {media_type or 'unknown'}")
        self.media_type = media_type


class DocumentExtractionError(MedLensError):
    """OCR or PDF parsing failed or timed out."""


class EmptyDocumentError(MedLensError, ValueError):
    """The document produced no text to analyse."""


class ExternalServiceError(MedLensError):
    """An AI or pharmaceutical API call timed out, errored, or returned garbage."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class DocumentProcessingError(MedLensError):
    """Unexpected failure while processing a document."""
