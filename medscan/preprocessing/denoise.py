"""3x3 convolution filters for sharpening and noise reduction.

Out-of-bounds taps contribute nothing to the sum and the divisor stays
fixed, so border pixels are darkened rather than renormalized.
"""

import cv2
import numpy as np

from medscan.utils.logger import get_logger
from medscan.utils.progress import CancellationToken, check_cancelled

from .adjust import clamp_round
from .pixel_buffer import PixelBuffer

logger = get_logger(__name__)

SHARPEN_KERNEL = np.array(
    [[0, -1, 0], [-1, 5, -1], [0, -1, 0]],
    dtype=np.float32,
)
GAUSSIAN_KERNEL = np.array(
    [[1, 2, 1], [2, 4, 2], [1, 2, 1]],
    dtype=np.float32,
)

# Rows filtered between cancellation checks.
BAND_ROWS = 64


def apply_convolution(
    buffer: PixelBuffer,
    kernel: np.ndarray,
    divisor: float = 1.0,
    cancel: CancellationToken | None = None,
    band_rows: int = BAND_ROWS,
) -> PixelBuffer:
    """Convolve the color channels with a symmetric square kernel.

    The image is filtered in bands of rows, each read with enough
    overlap for the kernel, so a cancellation token can be polled
    between bands and the float temporaries stay band-sized.

    Args:
        buffer: Pixel buffer to modify in place.
        kernel: Odd-sized, symmetric square kernel.
        divisor: Fixed divisor applied to every weighted sum.
        cancel: Optional cancellation token.
        band_rows: Rows per band.

    Returns:
        The same buffer.

    Raises:
        Cancelled: If the token fires mid-pass.
    """
    half = kernel.shape[0] // 2
    h = buffer.height
    # filter2D correlates, which equals convolution for symmetric kernels.
    weights = (kernel / divisor).astype(np.float32)
    source = buffer.rgb
    output = np.empty(source.shape, dtype=np.uint8)

    for y0 in range(0, h, band_rows):
        check_cancelled(cancel)
        y1 = min(h, y0 + band_rows)
        top = max(0, y0 - half)
        bottom = min(h, y1 + half)
        band = source[top:bottom].astype(np.float32)
        # Constant zero border makes out-of-bounds taps contribute nothing.
        filtered = cv2.filter2D(band, -1, weights, borderType=cv2.BORDER_CONSTANT)
        output[y0:y1] = clamp_round(filtered[y0 - top : y1 - top])

    buffer.pixels[:, :, :3] = output
    return buffer


def sharpen(
    buffer: PixelBuffer, cancel: CancellationToken | None = None
) -> PixelBuffer:
    """Enhance edges with a Laplacian-style sharpening kernel."""
    result = apply_convolution(buffer, SHARPEN_KERNEL, 1, cancel)
    logger.debug("Applied sharpening")
    return result


def denoise(
    buffer: PixelBuffer, cancel: CancellationToken | None = None
) -> PixelBuffer:
    """Smooth noise with a 3x3 Gaussian kernel."""
    result = apply_convolution(buffer, GAUSSIAN_KERNEL, 16, cancel)
    logger.debug("Applied Gaussian denoise")
    return result
