"""Text extraction adapters dispatched by media type.

Raster images go through Tesseract recognition; PDFs have their text
layer read verbatim. Scanned PDFs can be rasterized and recognized
when the caller asks for it explicitly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from medscan.utils.config import OCRConfig
from medscan.utils.logger import get_logger
from medscan.utils.progress import CancellationToken, FractionCallback, check_cancelled

from .pdf_handler import PAGE_SEPARATOR, PDFHandler
from .tesseract_engine import TesseractEngine, ocr_quality_label

logger = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
IMAGE_MEDIA_PREFIX = "image/"


def is_image_type(media_type: str | None) -> bool:
    return bool(media_type) and media_type.lower().startswith(IMAGE_MEDIA_PREFIX)


def is_pdf_type(media_type: str | None) -> bool:
    return bool(media_type) and media_type.lower() == PDF_MEDIA_TYPE


def describe_processing_method(media_type: str | None) -> str:
    """Human-readable name of the extraction route for a media type."""
    if is_image_type(media_type):
        return "OCR (Optical Character Recognition)"
    if is_pdf_type(media_type):
        return "PDF Text Extraction"
    return "Not Supported"


@dataclass(frozen=True)
class ExtractionResult:
    """Raw output of an extraction adapter.

    ``confidence`` is set only for recognized text; ``page_count`` only
    for PDFs.
    """

    text: str
    confidence: float | None = None
    page_count: int | None = None
    word_count: int | None = None
    likely_image_based: bool = False

    @property
    def quality_label(self) -> str | None:
        if self.confidence is None:
            return None
        return ocr_quality_label(self.confidence)


class Extractor(ABC):
    """Contract for all text extraction adapters."""

    method: str

    @abstractmethod
    def extract(
        self,
        data: bytes,
        on_progress: FractionCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExtractionResult:
        """Extract text from document bytes.

        Args:
            data: Raw document content.
            on_progress: Receives fractional progress in [0, 1].
            cancel: Optional cancellation token.

        Returns:
            Extracted text and metadata.

        Raises:
            ExtractionError: If extraction fails for any reason.
            Cancelled: If the token fires mid-extraction.
        """


class RasterExtractor(Extractor):
    """Recognizes text in a raster image with Tesseract."""

    method = "ocr"

    def __init__(self, engine: TesseractEngine) -> None:
        self.engine = engine

    def extract(
        self,
        data: bytes,
        on_progress: FractionCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExtractionResult:
        result = self.engine.extract_text(data, on_progress=on_progress, cancel=cancel)
        return ExtractionResult(
            text=result.text,
            confidence=result.confidence,
            word_count=result.word_count,
        )


class PdfTextExtractor(Extractor):
    """Reads the embedded PDF text layer without recognition.

    Args:
        handler: PDF handler used for parsing.
        image_based_threshold: Texts shorter than this are flagged as
            probably coming from a scanned, image-only PDF.
    """

    method = "pdf"

    def __init__(self, handler: PDFHandler, image_based_threshold: int = 50) -> None:
        self.handler = handler
        self.image_based_threshold = image_based_threshold

    def extract(
        self,
        data: bytes,
        on_progress: FractionCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExtractionResult:
        pdf_text = self.handler.extract_text(
            data, on_progress=on_progress, cancel=cancel
        )
        image_based = len(pdf_text.text) < self.image_based_threshold
        if image_based:
            logger.info(
                "PDF text layer has %d characters; document appears image-based",
                len(pdf_text.text),
            )
        return ExtractionResult(
            text=pdf_text.text,
            page_count=pdf_text.page_count,
            word_count=len(pdf_text.text.split()),
            likely_image_based=image_based,
        )


class ScannedPdfExtractor(Extractor):
    """Rasterizes each PDF page and recognizes it with Tesseract."""

    method = "ocr"

    def __init__(self, handler: PDFHandler, engine: TesseractEngine) -> None:
        self.handler = handler
        self.engine = engine

    def extract(
        self,
        data: bytes,
        on_progress: FractionCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ExtractionResult:
        check_cancelled(cancel)
        images = self.handler.pdf_to_images(data)
        page_count = len(images)
        texts: list[str] = []
        confidences: list[float] = []
        word_count = 0

        for index, image in enumerate(images):

            def page_progress(fraction: float, index: int = index) -> None:
                if on_progress is not None:
                    on_progress((index + fraction) / page_count)

            result = self.engine.extract_text(
                image, on_progress=page_progress, cancel=cancel
            )
            texts.append(result.text)
            confidences.append(result.confidence)
            word_count += result.word_count

        confidence = sum(confidences) / page_count if page_count else 0.0
        return ExtractionResult(
            text=PAGE_SEPARATOR.join(texts).strip(),
            confidence=confidence,
            page_count=page_count,
            word_count=word_count,
        )


def create_extractor(
    media_type: str, config: OCRConfig, pdf_mode: str = "text"
) -> Extractor:
    """Pick the extraction adapter for a media type.

    Args:
        media_type: Declared media type of the document.
        config: OCR configuration.
        pdf_mode: ``"text"`` to read the PDF text layer, ``"ocr"`` to
            rasterize and recognize pages.

    Returns:
        The matching extractor.

    Raises:
        ValueError: If the media type is not supported.
    """
    engine_kwargs = {
        "tesseract_cmd": config.tesseract_cmd,
        "languages": config.languages,
        "psm": config.psm,
        "oem": config.oem,
    }
    if is_image_type(media_type):
        return RasterExtractor(TesseractEngine(**engine_kwargs))
    if is_pdf_type(media_type):
        handler = PDFHandler(dpi=config.pdf_dpi)
        if pdf_mode == "ocr":
            return ScannedPdfExtractor(handler, TesseractEngine(**engine_kwargs))
        return PdfTextExtractor(handler, config.image_based_pdf_threshold)
    raise ValueError(f"Unsupported media type: {media_type}")
