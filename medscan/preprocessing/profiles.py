"""Named enhancement presets and the quality-driven strategy selector."""

from dataclasses import dataclass

from medscan.utils.logger import get_logger

from .quality import QualityProfile

logger = get_logger(__name__)


@dataclass(frozen=True)
class PreprocessingProfile:
    """A named bundle of enhancement parameters."""

    name: str
    grayscale: bool
    contrast: float
    brightness: float
    sharpen: bool
    denoise: bool
    scale: float


QUICK = PreprocessingProfile(
    name="quick",
    grayscale=True,
    contrast=1.3,
    brightness=5,
    sharpen=False,
    denoise=False,
    scale=1.5,
)
STANDARD = PreprocessingProfile(
    name="standard",
    grayscale=True,
    contrast=1.5,
    brightness=10,
    sharpen=True,
    denoise=False,
    scale=2.0,
)
HEAVY = PreprocessingProfile(
    name="heavy",
    grayscale=True,
    contrast=1.8,
    brightness=15,
    sharpen=True,
    denoise=True,
    scale=2.5,
)

PROFILES: dict[str, PreprocessingProfile] = {
    p.name: p for p in (QUICK, STANDARD, HEAVY)
}

AUTO = "auto"


def select_profile(quality: QualityProfile) -> PreprocessingProfile:
    """Map a quality classification to a preset.

    Dark or blurry images get ``heavy``, low-contrast images ``standard``,
    everything else ``quick``.
    """
    if quality.is_dark or quality.is_blurry:
        return HEAVY
    if quality.is_low_contrast:
        return STANDARD
    return QUICK


def get_profile(name: str) -> PreprocessingProfile:
    """Look up a fixed preset by name.

    Raises:
        ValueError: If the name is not a known preset.
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown preprocessing profile '{name}'. Choose from: {list(PROFILES)}"
        ) from None
