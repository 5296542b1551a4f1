"""Tesseract OCR engine wrapper with word-level confidence.

Provides text recognition with configurable languages, page
segmentation mode and engine mode, reporting coarse progress ticks.
"""

import io
from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image

from medscan.exceptions import Cancelled, ExtractionError
from medscan.utils.logger import get_logger
from medscan.utils.progress import CancellationToken, FractionCallback, check_cancelled

logger = get_logger(__name__)


@dataclass
class OCRWord:
    """A single recognized word with its confidence (0-100)."""

    text: str
    confidence: float


@dataclass
class OCRResult:
    """Complete OCR result for one image."""

    text: str
    words: list[OCRWord]
    language: str
    confidence: float

    @property
    def word_count(self) -> int:
        return len(self.words)


def ocr_quality_label(confidence: float) -> str:
    """Describe an OCR confidence percentage in words.

    Args:
        confidence: Mean recognition confidence, 0-100.

    Returns:
        ``"Excellent"``, ``"Good"``, ``"Fair"`` or ``"Poor"``.
    """
    if confidence >= 90:
        return "Excellent"
    if confidence >= 75:
        return "Good"
    if confidence >= 60:
        return "Fair"
    return "Poor"


class TesseractEngine:
    """Wrapper around Tesseract OCR for document text extraction.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        languages: Tesseract language codes, combined with ``+``.
        psm: Page segmentation mode (3 = fully automatic).
        oem: OCR engine mode (3 = best available).
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        languages: list[str] | None = None,
        psm: int = 3,
        oem: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.languages = languages or ["eng"]
        self.psm = psm
        self.oem = oem

    @property
    def lang(self) -> str:
        return "+".join(self.languages)

    @property
    def config(self) -> str:
        return f"--oem {self.oem} --psm {self.psm}"

    def extract_text(
        self,
        image: Image.Image | np.ndarray | bytes,
        on_progress: FractionCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> OCRResult:
        """Recognize text in an image.

        Args:
            image: PIL image, numpy array, or encoded image bytes.
            on_progress: Receives fractions in [0, 1] at each tick.
            cancel: Optional cancellation token, polled at each tick.

        Returns:
            OCRResult with stripped text, words, and mean confidence.

        Raises:
            ExtractionError: If Tesseract fails or the image is unreadable.
            Cancelled: If the token fires between ticks.
        """

        def tick(fraction: float) -> None:
            check_cancelled(cancel)
            if on_progress is not None:
                on_progress(fraction)

        tick(0.0)
        try:
            pil_image = self._to_pil(image)
            text = pytesseract.image_to_string(
                pil_image, lang=self.lang, config=self.config
            )
            tick(0.5)
            data = pytesseract.image_to_data(
                pil_image,
                lang=self.lang,
                config=self.config,
                output_type=pytesseract.Output.DICT,
            )
        except Cancelled:
            raise
        except Exception as exc:
            raise ExtractionError(f"OCR failed: {exc}") from exc

        words = self._collect_words(data)
        avg_conf = sum(w.confidence for w in words) / len(words) if words else 0.0
        tick(1.0)

        logger.info(
            "OCR extracted %d words with average confidence %.2f",
            len(words),
            avg_conf,
        )
        return OCRResult(
            text=text.strip(),
            words=words,
            language=self.lang,
            confidence=avg_conf,
        )

    @staticmethod
    def _collect_words(data: dict) -> list[OCRWord]:
        words: list[OCRWord] = []
        for raw_text, raw_conf in zip(data["text"], data["conf"]):
            word_text = str(raw_text).strip()
            conf = float(raw_conf)
            if conf >= 0 and word_text:
                words.append(OCRWord(text=word_text, confidence=conf))
        return words

    @staticmethod
    def _to_pil(image: Image.Image | np.ndarray | bytes) -> Image.Image:
        if isinstance(image, Image.Image):
            return image
        if isinstance(image, bytes):
            with Image.open(io.BytesIO(image)) as img:
                img.load()
                return img.copy()
        return Image.fromarray(image)
