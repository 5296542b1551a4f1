"""FastAPI application for the medical document ingestion API.

Provides REST endpoints for document processing, batch processing,
prescription parsing, capability checks and health checks.
"""

import mimetypes
import shutil
import time
import uuid
from collections.abc import Sequence
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from medscan.exceptions import Cancelled
from medscan.extraction.analyzer import Analysis
from medscan.extraction.prescription import parse_prescription
from medscan.extraction.rule_extractor import DateMatch
from medscan.ocr.document_processor import (
    DocumentPipeline,
    ProcessingResult,
    RawDocument,
    can_process,
)
from medscan.ocr.extractors import describe_processing_method
from medscan.utils.config import load_config
from medscan.utils.logger import get_logger

from .schemas import (
    AnalysisResponse,
    BatchItemResponse,
    BatchProcessingResponse,
    CapabilityResponse,
    DateResponse,
    FrequencyResponse,
    HealthResponse,
    KeywordsResponse,
    MetadataResponse,
    PdfMode,
    PrescriptionResponse,
    ProcessingResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

app = FastAPI(
    title="Medical Document Ingestion API",
    description="Extract text and classified metadata from medical images and PDFs",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_pipeline() -> DocumentPipeline:
    """Build a pipeline from the current configuration."""
    return DocumentPipeline(load_config())


def _media_type(file: UploadFile) -> str:
    """Declared media type, guessed from the file name when missing."""
    content_type = file.content_type
    if not content_type or content_type == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(file.filename or "")
        return guessed or content_type or "application/octet-stream"
    return content_type


def _dates(dates: Sequence[DateMatch]) -> list[DateResponse]:
    return [
        DateResponse(raw=d.raw, format=d.format, alternatives=list(d.alternatives))
        for d in dates
    ]


def _analysis_response(analysis: Analysis) -> AnalysisResponse:
    return AnalysisResponse(
        document_type=analysis.document_type,
        dates=_dates(analysis.dates),
        keywords=KeywordsResponse(
            categorized=analysis.keywords.categorized,
            all=analysis.keywords.all,
            count=analysis.keywords.count,
        ),
        word_count=analysis.word_count,
        summary=analysis.summary,
    )


def _to_response(
    result: ProcessingResult, filename: str, started: float
) -> ProcessingResponse:
    metadata = result.metadata
    return ProcessingResponse(
        success=result.success,
        document_id=str(uuid.uuid4()),
        filename=filename,
        processing_method=result.processing_method.value,
        extracted_text=result.extracted_text,
        analysis=_analysis_response(result.analysis),
        metadata=MetadataResponse(
            has_text=metadata.has_text,
            text_length=metadata.text_length,
            word_count=metadata.word_count,
            document_type=metadata.document_type,
            dates=_dates(metadata.dates),
            keywords=metadata.keywords,
            ocr_confidence=metadata.ocr_confidence,
            page_count=metadata.page_count,
        ),
        preset=result.preset,
        ocr_quality=result.extraction.quality_label if result.extraction else None,
        warnings=list(result.warnings),
        error=result.error,
        processing_time_ms=(time.time() - started) * 1000,
    )


async def _run(file: UploadFile, pdf_mode: PdfMode) -> tuple[ProcessingResult, str]:
    media_type = _media_type(file)
    filename = file.filename or "document"
    if not can_process(media_type):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {media_type}",
        )

    content = await file.read()
    document = RawDocument(data=content, media_type=media_type, name=filename)
    try:
        result = await run_in_threadpool(
            _get_pipeline().process, document, pdf_mode=pdf_mode.value
        )
    except Cancelled as exc:
        raise HTTPException(status_code=499, detail=str(exc)) from exc
    return result, filename


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        pdftoppm_available=shutil.which("pdftoppm") is not None,
    )


@app.get("/capabilities", response_model=CapabilityResponse)
async def capabilities(
    media_type: Annotated[str, Query()],
) -> CapabilityResponse:
    """Report whether a media type can be processed."""
    return CapabilityResponse(
        media_type=media_type,
        supported=can_process(media_type),
        method=describe_processing_method(media_type),
    )


@app.post("/process", response_model=ProcessingResponse)
async def process_document(
    file: Annotated[UploadFile, File(...)],
    pdf_mode: Annotated[PdfMode, Query()] = PdfMode.TEXT,
) -> ProcessingResponse:
    """Extract text and metadata from an uploaded document.

    Args:
        file: Uploaded image or PDF.
        pdf_mode: Read the PDF text layer or OCR its pages.

    Returns:
        Processing result with analysis and metadata. Extraction
        failures are reported with ``success=False``.
    """
    started = time.time()
    result, filename = await _run(file, pdf_mode)
    return _to_response(result, filename, started)


@app.post("/process/batch", response_model=BatchProcessingResponse)
async def process_batch(
    files: Annotated[list[UploadFile], File(...)],
) -> BatchProcessingResponse:
    """Process multiple uploaded documents.

    Args:
        files: List of uploaded documents.

    Returns:
        Batch results with per-file outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for file in files:
        filename = file.filename or "unknown"
        try:
            response = await process_document(file, PdfMode.TEXT)
        except HTTPException as exc:
            results.append(BatchItemResponse(filename=filename, error=exc.detail))
            continue
        results.append(
            BatchItemResponse(filename=filename, result=response, error=response.error)
        )
        if response.success:
            successful += 1

    return BatchProcessingResponse(
        success=successful > 0,
        total_documents=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=results,
    )


@app.post("/prescriptions/parse", response_model=PrescriptionResponse)
async def parse_prescription_document(
    file: Annotated[UploadFile, File(...)],
) -> PrescriptionResponse:
    """Process a prescription and parse its medication details."""
    result, filename = await _run(file, PdfMode.TEXT)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)

    data = parse_prescription(result.extracted_text)
    return PrescriptionResponse(
        filename=filename,
        processing_method=result.processing_method.value,
        medications=data.medications,
        dosages=data.dosages,
        frequencies=[
            FrequencyResponse(frequency=f.frequency, times=f.times)
            for f in data.frequencies
        ],
        instructions=data.instructions,
        doctor_name=data.doctor_name,
        date=data.date,
        confidence=result.extraction.confidence if result.extraction else None,
        extracted_text=result.extracted_text,
    )
