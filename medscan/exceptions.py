"""Error taxonomy for the document ingestion pipeline."""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


class DecodeError(PipelineError):
    """Raised when image bytes cannot be decoded."""


class PreprocessingError(PipelineError):
    """Raised when an image enhancement stage fails."""


class ExtractionError(PipelineError):
    """Raised when the recognition or PDF extraction engine fails."""


class Cancelled(PipelineError):
    """Raised when a cancellation signal is observed mid-stage."""
