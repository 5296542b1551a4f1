"""Owned RGBA pixel surface for the enhancement stages.

Decodes image bytes into an ``(height, width, 4)`` uint8 array,
upscales it once, and re-encodes it in the source media type.
"""

import io
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from medscan.exceptions import DecodeError
from medscan.utils.logger import get_logger

logger = get_logger(__name__)

# Media type -> (PIL format, supports alpha)
_ENCODERS: dict[str, tuple[str, bool]] = {
    "image/png": ("PNG", True),
    "image/jpeg": ("JPEG", False),
    "image/jpg": ("JPEG", False),
    "image/webp": ("WEBP", True),
    "image/bmp": ("BMP", False),
    "image/tiff": ("TIFF", True),
}


def decode_image(data: bytes) -> Image.Image:
    """Decode raw bytes into an RGBA PIL image.

    Args:
        data: Encoded image bytes.

    Returns:
        RGBA image.

    Raises:
        DecodeError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise DecodeError(f"Failed to load image: {exc}") from exc


@dataclass
class PixelBuffer:
    """RGBA pixel storage owned by a single enhancement pass.

    Stages mutate :attr:`pixels` in place and hand the buffer on.
    """

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def rgb(self) -> np.ndarray:
        """View of the three color channels (alpha excluded)."""
        return self.pixels[:, :, :3]

    @classmethod
    def decode(cls, data: bytes) -> "PixelBuffer":
        """Build a buffer from encoded image bytes.

        Raises:
            DecodeError: If the bytes are not a readable image.
        """
        image = decode_image(data)
        return cls(np.array(image, dtype=np.uint8))

    def upscale(self, scale: float) -> "PixelBuffer":
        """Resize by ``scale`` with bicubic interpolation.

        This is the only step allowed to change the buffer dimensions.

        Args:
            scale: Multiplier applied to width and height.

        Returns:
            The buffer itself, with resized pixel storage.
        """
        new_w = max(1, int(self.width * scale))
        new_h = max(1, int(self.height * scale))
        if (new_w, new_h) != (self.width, self.height):
            self.pixels = cv2.resize(
                self.pixels, (new_w, new_h), interpolation=cv2.INTER_CUBIC
            )
        logger.debug("Upscaled buffer to %dx%d (scale=%.2f)", new_w, new_h, scale)
        return self

    def encode(self, media_type: str, quality: int = 95) -> tuple[bytes, str]:
        """Encode the buffer back into bytes.

        Media types without an encoder fall back to PNG.

        Args:
            media_type: Desired output media type.
            quality: Lossy encoder quality.

        Returns:
            Tuple of (encoded_bytes, actual_media_type).
        """
        fmt, has_alpha = _ENCODERS.get(media_type.lower(), ("PNG", True))
        if media_type.lower() not in _ENCODERS:
            media_type = "image/png"

        image = Image.fromarray(self.pixels)
        if not has_alpha:
            image = image.convert("RGB")

        buf = io.BytesIO()
        if fmt in ("JPEG", "WEBP"):
            image.save(buf, format=fmt, quality=quality)
        else:
            image.save(buf, format=fmt)
        return buf.getvalue(), media_type
