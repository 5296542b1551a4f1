"""Pydantic request/response schemas for the FastAPI endpoints."""

from enum import StrEnum

from pydantic import BaseModel, Field


class PdfMode(StrEnum):
    """How PDF documents are read."""

    TEXT = "text"
    OCR = "ocr"


class DateResponse(BaseModel):
    """A date found in the document text."""

    raw: str
    format: str
    alternatives: list[str] = Field(default_factory=list)


class KeywordsResponse(BaseModel):
    """Categorized keywords and their union."""

    categorized: dict[str, list[str]]
    all: list[str]
    count: int


class AnalysisResponse(BaseModel):
    """Full text analysis of a document."""

    document_type: str
    dates: list[DateResponse]
    keywords: KeywordsResponse
    word_count: int
    summary: str


class MetadataResponse(BaseModel):
    """Metadata projection handed to the persistence layer."""

    has_text: bool
    text_length: int
    word_count: int
    document_type: str
    dates: list[DateResponse]
    keywords: list[str]
    ocr_confidence: float | None = None
    page_count: int | None = None


class ProcessingResponse(BaseModel):
    """Response schema for a document processing request."""

    success: bool
    document_id: str
    filename: str
    processing_method: str
    extracted_text: str
    analysis: AnalysisResponse
    metadata: MetadataResponse
    preset: str | None = None
    ocr_quality: str | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    processing_time_ms: float


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch request."""

    filename: str
    result: ProcessingResponse | None = None
    error: str | None = None


class BatchProcessingResponse(BaseModel):
    """Response schema for batch processing of multiple documents."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class CapabilityResponse(BaseModel):
    """Whether a media type can be processed, and how."""

    media_type: str
    supported: bool
    method: str


class FrequencyResponse(BaseModel):
    frequency: str
    times: int


class PrescriptionResponse(BaseModel):
    """Structured prescription fields parsed from a document."""

    filename: str
    processing_method: str
    medications: list[str]
    dosages: list[str]
    frequencies: list[FrequencyResponse]
    instructions: list[str]
    doctor_name: str | None = None
    date: str | None = None
    confidence: float | None = None
    extracted_text: str


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    pdftoppm_available: bool
