"""Image enhancement pipeline for OCR.

Orchestrates upscaling, tone adjustment, convolution filters and
adaptive thresholding according to a :class:`PreprocessingProfile`,
and resolves the ``auto`` preset from a quality analysis.
"""

from dataclasses import dataclass

from medscan.exceptions import Cancelled, DecodeError, PreprocessingError
from medscan.utils.config import PreprocessingConfig
from medscan.utils.logger import get_logger
from medscan.utils.progress import CancellationToken, check_cancelled

from .adjust import adjust_brightness, adjust_contrast, convert_to_grayscale
from .binarize import binarize_adaptive
from .denoise import denoise, sharpen
from .pixel_buffer import PixelBuffer
from .profiles import AUTO, STANDARD, PreprocessingProfile, get_profile, select_profile
from .quality import QualityProfile, analyze_quality

logger = get_logger(__name__)

PREPROCESSED_PREFIX = "preprocessed_"


@dataclass(frozen=True)
class EnhancedImage:
    """Output of an enhancement pass."""

    data: bytes
    media_type: str
    name: str
    profile: PreprocessingProfile
    width: int
    height: int


@dataclass(frozen=True)
class ProfileResolution:
    """Preset chosen for a document and the evidence behind it."""

    profile: PreprocessingProfile
    quality: QualityProfile | None
    warning: str | None = None


class ImageEnhancer:
    """Applies an ordered sequence of pixel transforms to an image.

    Args:
        config: Preprocessing configuration (preset mode, threshold
            window, encoder quality).
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def resolve_profile(
        self, data: bytes, mode: str | None = None
    ) -> ProfileResolution:
        """Pick the preset for an image.

        In ``auto`` mode the quality analysis always runs first; an
        undecodable preview falls back to ``standard``.

        Args:
            data: Encoded image bytes.
            mode: Preset name or ``"auto"``. Defaults to the configured mode.

        Returns:
            The chosen preset, the quality profile when one was computed,
            and a warning when auto-detection was skipped.
        """
        mode = mode or self.config.mode
        if mode != AUTO:
            return ProfileResolution(profile=get_profile(mode), quality=None)

        try:
            quality = analyze_quality(data, self.config.preview_size)
        except DecodeError as exc:
            logger.warning("Quality analysis failed, using standard preset: %s", exc)
            return ProfileResolution(
                profile=STANDARD,
                quality=None,
                warning=f"Quality analysis skipped: {exc}",
            )

        profile = select_profile(quality)
        logger.info("Auto-selected '%s' preprocessing preset", profile.name)
        return ProfileResolution(profile=profile, quality=quality)

    def enhance_buffer(
        self,
        buffer: PixelBuffer,
        profile: PreprocessingProfile,
        cancel: CancellationToken | None = None,
    ) -> PixelBuffer:
        """Run every enhancement step on a decoded buffer.

        Args:
            buffer: Decoded pixel buffer, consumed by this call.
            profile: Preset controlling the optional steps.
            cancel: Optional cancellation token.

        Returns:
            The binarized, upscaled buffer.
        """
        buffer = buffer.upscale(profile.scale)
        check_cancelled(cancel)

        if profile.grayscale:
            buffer = convert_to_grayscale(buffer)
        buffer = adjust_contrast(buffer, profile.contrast)
        buffer = adjust_brightness(buffer, profile.brightness)
        check_cancelled(cancel)

        if profile.sharpen:
            buffer = sharpen(buffer, cancel)
        if profile.denoise:
            buffer = denoise(buffer, cancel)

        return binarize_adaptive(
            buffer,
            radius=self.config.threshold_radius,
            c=self.config.threshold_offset,
            cancel=cancel,
        )

    def enhance(
        self,
        data: bytes,
        media_type: str,
        name: str,
        profile: PreprocessingProfile,
        cancel: CancellationToken | None = None,
    ) -> EnhancedImage:
        """Decode, enhance and re-encode an image.

        Args:
            data: Encoded image bytes.
            media_type: Declared media type, reused for the output.
            name: Original file name.
            profile: Preset to apply.
            cancel: Optional cancellation token.

        Returns:
            The enhanced image, named with a ``preprocessed_`` prefix.

        Raises:
            DecodeError: If the image cannot be decoded.
            PreprocessingError: If any enhancement stage fails.
            Cancelled: If the token fires mid-pass.
        """
        logger.info("Preprocessing %s with '%s' preset", name, profile.name)
        buffer = PixelBuffer.decode(data)

        try:
            buffer = self.enhance_buffer(buffer, profile, cancel)
            encoded, out_type = buffer.encode(media_type, self.config.jpeg_quality)
        except (Cancelled, PreprocessingError):
            raise
        except Exception as exc:
            raise PreprocessingError(f"Image enhancement failed: {exc}") from exc

        logger.info(
            "Preprocessing complete: %dx%d, %d bytes",
            buffer.width,
            buffer.height,
            len(encoded),
        )
        return EnhancedImage(
            data=encoded,
            media_type=out_type,
            name=f"{PREPROCESSED_PREFIX}{name}",
            profile=profile,
            width=buffer.width,
            height=buffer.height,
        )
