"""PDF text-layer extraction and page rasterization.

Reads the embedded text of each page with pdfplumber, and converts
pages to images with pdf2image for scanned documents that need OCR.
"""

import io
from dataclasses import dataclass

import numpy as np
import pdfplumber
from pdf2image import convert_from_bytes

from medscan.exceptions import Cancelled, ExtractionError
from medscan.utils.logger import get_logger
from medscan.utils.progress import CancellationToken, FractionCallback, check_cancelled

logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n"


@dataclass
class PdfText:
    """Text layer of a PDF document."""

    text: str
    page_count: int
    pages: list[str]


class PDFHandler:
    """Handles PDF text extraction and PDF to image conversion.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def extract_text(
        self,
        pdf_bytes: bytes,
        on_progress: FractionCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> PdfText:
        """Extract the embedded text layer page by page.

        Words on a page are joined with single spaces; pages are joined
        with a blank line.

        Args:
            pdf_bytes: Raw PDF file content.
            on_progress: Receives pages-done / page-count after each page.
            cancel: Optional cancellation token, polled per page.

        Returns:
            Stripped text, page count, and per-page texts.

        Raises:
            ExtractionError: If the PDF cannot be parsed.
            Cancelled: If the token fires between pages.
        """
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                page_count = len(pdf.pages)
                logger.debug("PDF loaded: %d pages", page_count)
                pages: list[str] = []
                for number, page in enumerate(pdf.pages, 1):
                    check_cancelled(cancel)
                    words = page.extract_words() or []
                    pages.append(" ".join(w["text"] for w in words))
                    if on_progress is not None:
                        on_progress(number / page_count)
        except Cancelled:
            raise
        except Exception as exc:
            raise ExtractionError(f"PDF extraction failed: {exc}") from exc

        text = PAGE_SEPARATOR.join(pages).strip()
        logger.info(
            "PDF extraction completed: %d pages, %d characters", page_count, len(text)
        )
        return PdfText(text=text, page_count=page_count, pages=pages)

    def pdf_to_images(self, pdf_bytes: bytes) -> list[np.ndarray]:
        """Convert a PDF to a list of RGB images.

        Args:
            pdf_bytes: Raw PDF bytes.

        Returns:
            List of images as numpy arrays.

        Raises:
            ExtractionError: If PDF conversion fails.
        """
        try:
            pil_images = convert_from_bytes(pdf_bytes, dpi=self.dpi)
        except Exception as exc:
            raise ExtractionError(f"PDF conversion failed: {exc}") from exc

        images = [np.array(img.convert("RGB")) for img in pil_images]
        logger.info("Converted PDF to %d images at %d DPI", len(images), self.dpi)
        return images
