"""Unified document processing pipeline.

Sequences quality analysis, image enhancement, text extraction and
text analysis for a single uploaded document, reporting progress and
assembling the result handed to the persistence layer.
"""

import threading
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from medscan.exceptions import DecodeError, ExtractionError, PreprocessingError
from medscan.extraction.analyzer import Analysis, TextAnalyzer
from medscan.extraction.rule_extractor import DateMatch
from medscan.preprocessing.pipeline import ImageEnhancer
from medscan.utils.config import AppConfig
from medscan.utils.logger import get_logger
from medscan.utils.progress import (
    CancellationToken,
    ProgressReporter,
    ProgressSink,
    Stage,
    check_cancelled,
)

from .extractors import ExtractionResult, create_extractor, is_image_type, is_pdf_type

logger = get_logger(__name__)

IMAGE_BASED_PDF_WARNING = "This PDF appears to be image-based. Consider using OCR."


class ProcessingMethod(StrEnum):
    """How the text of a document was obtained."""

    OCR = "ocr"
    PDF = "pdf"
    NONE = "none"
    FAILED = "failed"


@dataclass(frozen=True)
class RawDocument:
    """An uploaded document: bytes, declared media type and file name."""

    data: bytes
    media_type: str
    name: str = "document"


@dataclass(frozen=True)
class DocumentMetadata:
    """Projection of a processing result for the persistence layer."""

    has_text: bool
    text_length: int
    word_count: int
    document_type: str
    dates: tuple[DateMatch, ...]
    keywords: tuple[str, ...]
    ocr_confidence: float | None
    page_count: int | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_text": self.has_text,
            "text_length": self.text_length,
            "word_count": self.word_count,
            "document_type": self.document_type,
            "dates": [{"raw": d.raw, "format": d.format} for d in self.dates],
            "keywords": list(self.keywords),
            "ocr_confidence": self.ocr_confidence,
            "page_count": self.page_count,
        }


@dataclass(frozen=True)
class ProcessingResult:
    """Complete, immutable outcome of one pipeline run."""

    processing_method: ProcessingMethod
    extracted_text: str
    analysis: Analysis
    extraction: ExtractionResult | None
    preset: str | None = None
    warnings: tuple[str, ...] = ()
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.processing_method != ProcessingMethod.FAILED

    @property
    def metadata(self) -> DocumentMetadata:
        extraction = self.extraction
        return DocumentMetadata(
            has_text=len(self.extracted_text) > 0,
            text_length=len(self.extracted_text),
            word_count=self.analysis.word_count,
            document_type=self.analysis.document_type,
            dates=self.analysis.dates,
            keywords=self.analysis.keywords.all,
            ocr_confidence=extraction.confidence if extraction else None,
            page_count=extraction.page_count if extraction else None,
        )


def can_process(media_type: str | None) -> bool:
    """Whether a media type is a raster image or a PDF."""
    return is_image_type(media_type) or is_pdf_type(media_type)


@dataclass
class _RunState:
    warnings: list[str] = field(default_factory=list)
    preset: str | None = None


class DocumentPipeline:
    """End-to-end document ingestion pipeline.

    Each call to :meth:`process` is an independent sequential run with
    its own pixel buffers and state, so one instance may serve several
    threads at once.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()
        self.enhancer = ImageEnhancer(self.config.preprocessing)
        self.analyzer = TextAnalyzer(self.config.analysis)

    def process(
        self,
        document: RawDocument,
        progress: ProgressSink | None = None,
        cancel: CancellationToken | None = None,
        pdf_mode: str = "text",
    ) -> ProcessingResult:
        """Process a document into text and classified metadata.

        Args:
            document: The uploaded document.
            progress: Optional sink receiving ordered progress events.
            cancel: Optional cancellation token.
            pdf_mode: ``"text"`` reads the PDF text layer; ``"ocr"``
                rasterizes and recognizes PDF pages instead.

        Returns:
            The processing result. Extraction failures are reported as
            ``processing_method == "failed"`` with the error message.

        Raises:
            Cancelled: If the token fires during any stage.
        """
        reporter = ProgressReporter(progress)
        logger.info("Processing document: %s (%s)", document.name, document.media_type)

        if not can_process(document.media_type):
            logger.info(
                "Unsupported media type %s, skipping extraction", document.media_type
            )
            return self._finish(ProcessingMethod.NONE, "", None, _RunState(), reporter)

        state = _RunState()
        check_cancelled(cancel)
        try:
            if is_image_type(document.media_type):
                method = ProcessingMethod.OCR
                extraction = self._extract_image(document, state, reporter, cancel)
            else:
                method = (
                    ProcessingMethod.OCR if pdf_mode == "ocr" else ProcessingMethod.PDF
                )
                extraction = self._extract_pdf(document, pdf_mode, reporter, cancel)
        except ExtractionError as exc:
            logger.error("Extraction failed for %s: %s", document.name, exc)
            return ProcessingResult(
                processing_method=ProcessingMethod.FAILED,
                extracted_text="",
                analysis=Analysis(),
                extraction=None,
                preset=state.preset,
                warnings=tuple(state.warnings),
                error=str(exc),
            )

        if extraction.likely_image_based:
            state.warnings.append(IMAGE_BASED_PDF_WARNING)

        return self._finish(
            method, extraction.text, extraction, state, reporter, cancel
        )

    def _extract_image(
        self,
        document: RawDocument,
        state: _RunState,
        reporter: ProgressReporter,
        cancel: CancellationToken | None,
    ) -> ExtractionResult:
        reporter.emit(Stage.PREPROCESSING, 10)
        resolution = self.enhancer.resolve_profile(document.data)
        state.preset = resolution.profile.name
        if resolution.warning:
            state.warnings.append(resolution.warning)

        data = document.data
        try:
            enhanced = self.enhancer.enhance(
                document.data,
                document.media_type,
                document.name,
                resolution.profile,
                cancel,
            )
            data = enhanced.data
        except (DecodeError, PreprocessingError) as exc:
            logger.warning("Preprocessing failed, using original image: %s", exc)
            state.warnings.append(f"Preprocessing failed, original image used: {exc}")

        reporter.emit(Stage.EXTRACTING, 30)
        extractor = create_extractor(document.media_type, self.config.ocr)
        return extractor.extract(
            data,
            on_progress=reporter.window(Stage.EXTRACTING, 30, 80),
            cancel=cancel,
        )

    def _extract_pdf(
        self,
        document: RawDocument,
        pdf_mode: str,
        reporter: ProgressReporter,
        cancel: CancellationToken | None,
    ) -> ExtractionResult:
        reporter.emit(Stage.EXTRACTING, 20)
        extractor = create_extractor(document.media_type, self.config.ocr, pdf_mode)
        return extractor.extract(
            document.data,
            on_progress=reporter.window(Stage.EXTRACTING, 20, 80),
            cancel=cancel,
        )

    def _finish(
        self,
        method: ProcessingMethod,
        text: str,
        extraction: ExtractionResult | None,
        state: _RunState,
        reporter: ProgressReporter,
        cancel: CancellationToken | None = None,
    ) -> ProcessingResult:
        check_cancelled(cancel)
        reporter.emit(Stage.ANALYZING, 85)
        analysis = self.analyzer.analyze(text)
        reporter.emit(Stage.COMPLETE, 100)

        logger.info(
            "Document processing complete: method=%s length=%d type=%s",
            method.value,
            len(text),
            analysis.document_type,
        )
        return ProcessingResult(
            processing_method=method,
            extracted_text=text,
            analysis=analysis,
            extraction=extraction,
            preset=state.preset,
            warnings=tuple(state.warnings),
        )


def run_with_timeout(
    pipeline: DocumentPipeline,
    document: RawDocument,
    timeout: float,
    progress: ProgressSink | None = None,
    **kwargs: Any,
) -> ProcessingResult:
    """Run :meth:`DocumentPipeline.process` with a deadline.

    A timer cancels the in-flight stage when the deadline passes.

    Args:
        pipeline: Pipeline to run.
        document: Document to process.
        timeout: Deadline in seconds.
        progress: Optional progress sink.
        **kwargs: Forwarded to :meth:`DocumentPipeline.process`.

    Returns:
        The processing result.

    Raises:
        Cancelled: If the deadline passed before the run finished.
    """
    token = CancellationToken()
    reason = f"Processing timed out after {timeout}s"
    timer = threading.Timer(timeout, token.cancel, kwargs={"reason": reason})
    timer.daemon = True
    timer.start()
    try:
        return pipeline.process(document, progress, cancel=token, **kwargs)
    finally:
        timer.cancel()
