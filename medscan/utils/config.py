"""Configuration management for the document ingestion pipeline.

Loads and validates YAML configuration with sensible defaults
for preprocessing, OCR, and text analysis settings.
"""

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class PreprocessingConfig(BaseModel):
    """Configuration for the image enhancement stage."""

    mode: Literal["auto", "quick", "standard", "heavy"] = "auto"
    preview_size: int = Field(default=100, gt=0)
    threshold_radius: int = Field(default=15, ge=0)
    threshold_offset: float = 5.0
    jpeg_quality: int = Field(default=95, ge=1, le=100)


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR and PDF text extraction."""

    tesseract_cmd: str | None = None
    languages: list[str] = Field(default_factory=lambda: ["eng"])
    psm: int = 3
    oem: int = 3
    pdf_dpi: int = 300
    image_based_pdf_threshold: int = 50


class AnalysisConfig(BaseModel):
    """Configuration for text analysis."""

    min_text_length: int = 10
    max_proper_nouns: int = 10


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
