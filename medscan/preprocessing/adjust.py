"""Per-pixel tone adjustments: grayscale, contrast and brightness.

All functions operate in place on the color channels of a
:class:`PixelBuffer`; alpha is never touched. Contrast and brightness
depend only on the input value, so they run as 256-entry lookup tables.
"""

import cv2
import numpy as np

from medscan.utils.logger import get_logger

from .pixel_buffer import PixelBuffer

logger = get_logger(__name__)

# Rows converted per grayscale pass; bounds the float64 temporaries.
GRAYSCALE_BAND_ROWS = 256

_LEVELS = np.arange(256, dtype=np.float64)


def clamp_round(values: np.ndarray) -> np.ndarray:
    """Round half up and clamp to the 0-255 byte range.

    Args:
        values: Float array of intermediate results.

    Returns:
        uint8 array.
    """
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def contrast_factor(contrast: float) -> float:
    """Contrast multiplier applied around the midpoint 128."""
    c = contrast * 255
    return (259 * (c + 255)) / (255 * (259 - c))


def apply_table(buffer: PixelBuffer, table: np.ndarray) -> PixelBuffer:
    """Map every color channel value through a 256-entry table.

    Args:
        buffer: Pixel buffer to modify.
        table: uint8 array of 256 output values.

    Returns:
        The same buffer, with alpha unchanged.
    """
    lut = np.empty((1, 256, 4), dtype=np.uint8)
    lut[0, :, :3] = table[:, np.newaxis]
    lut[0, :, 3] = np.arange(256, dtype=np.uint8)
    buffer.pixels = cv2.LUT(np.ascontiguousarray(buffer.pixels), lut)
    return buffer


def convert_to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Replace R, G and B with luminosity-weighted gray."""
    for y0 in range(0, buffer.height, GRAYSCALE_BAND_ROWS):
        band = buffer.pixels[y0 : y0 + GRAYSCALE_BAND_ROWS]
        rgb = band[:, :, :3].astype(np.float64)
        gray = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
        gray_u8 = np.clip(np.rint(gray), 0, 255).astype(np.uint8)
        band[:, :, :3] = gray_u8[:, :, np.newaxis]
    logger.debug("Converted to grayscale")
    return buffer


def adjust_contrast(buffer: PixelBuffer, contrast: float) -> PixelBuffer:
    """Remap each color channel around 128 by the contrast factor.

    Args:
        buffer: Pixel buffer to modify.
        contrast: Contrast level; ``1.0`` leaves the buffer untouched.

    Returns:
        The same buffer.
    """
    if contrast == 1.0:
        return buffer
    factor = contrast_factor(contrast)
    apply_table(buffer, clamp_round(factor * (_LEVELS - 128) + 128))
    logger.debug("Adjusted contrast: %.2f (factor=%.3f)", contrast, factor)
    return buffer


def adjust_brightness(buffer: PixelBuffer, brightness: float) -> PixelBuffer:
    """Add a constant offset to each color channel."""
    if brightness == 0:
        return buffer
    apply_table(buffer, clamp_round(_LEVELS + brightness))
    logger.debug("Adjusted brightness: %+.1f", brightness)
    return buffer
