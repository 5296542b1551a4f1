"""Heuristic image quality analysis on a downsampled preview.

Classifies brightness and contrast of an image so that an enhancement
preset can be chosen automatically.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from medscan.utils.logger import get_logger

from .pixel_buffer import decode_image

logger = get_logger(__name__)

DARK_THRESHOLD = 80.0
BRIGHT_THRESHOLD = 180.0
LOW_CONTRAST_THRESHOLD = 30.0
HIGH_CONTRAST_THRESHOLD = 70.0
# Low variance correlates with blur but does not prove it.
BLUR_THRESHOLD = 25.0


@dataclass(frozen=True)
class QualityProfile:
    """Brightness/contrast classification of an image preview."""

    average_brightness: float
    std_deviation: float
    is_dark: bool
    is_bright: bool
    is_low_contrast: bool
    is_high_contrast: bool
    is_blurry: bool


def profile_from_preview(preview: np.ndarray) -> QualityProfile:
    """Compute a quality profile from an RGB(A) preview array.

    Per-pixel brightness is the plain mean of the R, G and B components.

    Args:
        preview: Array of shape ``(h, w, 3)`` or ``(h, w, 4)``.

    Returns:
        Quality profile with fixed-threshold flags.
    """
    brightness = preview[:, :, :3].astype(np.float64).sum(axis=2) / 3.0
    avg = float(brightness.mean())
    std = float(brightness.std())
    return QualityProfile(
        average_brightness=avg,
        std_deviation=std,
        is_dark=avg < DARK_THRESHOLD,
        is_bright=avg > BRIGHT_THRESHOLD,
        is_low_contrast=std < LOW_CONTRAST_THRESHOLD,
        is_high_contrast=std > HIGH_CONTRAST_THRESHOLD,
        is_blurry=std < BLUR_THRESHOLD,
    )


def analyze_quality(data: bytes, preview_size: int = 100) -> QualityProfile:
    """Decode an image, downsample it, and classify its quality.

    Args:
        data: Encoded image bytes.
        preview_size: Edge length of the square preview.

    Returns:
        Quality profile of the preview.

    Raises:
        DecodeError: If the bytes are not a readable image.
    """
    image = np.array(decode_image(data), dtype=np.uint8)
    preview = cv2.resize(
        image, (preview_size, preview_size), interpolation=cv2.INTER_AREA
    )
    profile = profile_from_preview(preview)
    logger.info(
        "Image quality: brightness=%.1f std=%.1f dark=%s blurry=%s low_contrast=%s",
        profile.average_brightness,
        profile.std_deviation,
        profile.is_dark,
        profile.is_blurry,
        profile.is_low_contrast,
    )
    return profile
