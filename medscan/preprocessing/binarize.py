"""Adaptive thresholding for document images.

Each pixel is compared against the mean of a square window centered on
it, clipped at the image borders, making text distinct under uneven
lighting where one global cutoff would fail.
"""

import cv2
import numpy as np

from medscan.utils.logger import get_logger
from medscan.utils.progress import CancellationToken, check_cancelled

from .pixel_buffer import PixelBuffer

logger = get_logger(__name__)


def binarize_adaptive(
    buffer: PixelBuffer,
    radius: int = 15,
    c: float = 5.0,
    cancel: CancellationToken | None = None,
) -> PixelBuffer:
    """Binarize all color channels against a local mean.

    The reference brightness is the first color channel, which equals
    luminance once the image is grayscale. Window sums come from a
    summed-area table of the unmodified values, giving the same result
    as summing each window directly.

    Args:
        buffer: Pixel buffer to modify in place.
        radius: Half-width of the window (``2*radius+1`` square at most).
        c: Constant subtracted from the local mean.
        cancel: Optional cancellation token, polled per row.

    Returns:
        The same buffer, with color channels set to 0 or 255.

    Raises:
        Cancelled: If the token fires mid-pass.
    """
    h, w = buffer.height, buffer.width
    source = np.ascontiguousarray(buffer.pixels[:, :, 0])
    integral = cv2.integral(source, sdepth=cv2.CV_64F)

    xs = np.arange(w)
    x0 = np.maximum(xs - radius, 0)
    x1 = np.minimum(xs + radius + 1, w)
    widths = (x1 - x0).astype(np.float64)

    result = np.empty((h, w), dtype=np.uint8)
    for y in range(h):
        check_cancelled(cancel)
        y0 = max(y - radius, 0)
        y1 = min(y + radius + 1, h)
        sums = (
            integral[y1, x1] - integral[y0, x1] - integral[y1, x0] + integral[y0, x0]
        )
        mean = sums / (widths * (y1 - y0))
        result[y] = np.where(source[y] > mean - c, 255, 0)

    buffer.pixels[:, :, :3] = result[:, :, np.newaxis]
    logger.debug("Applied adaptive threshold (radius=%d, c=%.1f)", radius, c)
    return buffer
