"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from medscan.utils.config import (
    AnalysisConfig,
    AppConfig,
    OCRConfig,
    PreprocessingConfig,
    load_config,
)


class TestPreprocessingConfig:
    """Tests for PreprocessingConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = PreprocessingConfig()
        assert cfg.mode == "auto"
        assert cfg.preview_size == 100
        assert cfg.threshold_radius == 15
        assert cfg.threshold_offset == 5.0
        assert cfg.jpeg_quality == 95

    def test_override(self) -> None:
        cfg = PreprocessingConfig(mode="heavy", threshold_radius=7)
        assert cfg.mode == "heavy"
        assert cfg.threshold_radius == 7

    def test_invalid_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PreprocessingConfig(mode="extreme")


class TestOCRConfig:
    """Tests for OCRConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = OCRConfig()
        assert cfg.languages == ["eng"]
        assert cfg.psm == 3
        assert cfg.oem == 3
        assert cfg.pdf_dpi == 300
        assert cfg.tesseract_cmd is None
        assert cfg.image_based_pdf_threshold == 50

    def test_custom_languages(self) -> None:
        cfg = OCRConfig(languages=["eng", "fra"], psm=6)
        assert cfg.languages == ["eng", "fra"]
        assert cfg.psm == 6


class TestAnalysisConfig:
    """Tests for AnalysisConfig defaults."""

    def test_defaults(self) -> None:
        cfg = AnalysisConfig()
        assert cfg.min_text_length == 10
        assert cfg.max_proper_nouns == 10


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.preprocessing, PreprocessingConfig)
        assert isinstance(cfg.ocr, OCRConfig)
        assert isinstance(cfg.analysis, AnalysisConfig)
        assert cfg.log_level == "INFO"

    def test_nested_override(self) -> None:
        cfg = AppConfig(
            preprocessing=PreprocessingConfig(mode="quick"),
            log_level="DEBUG",
        )
        assert cfg.preprocessing.mode == "quick"
        assert cfg.log_level == "DEBUG"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert isinstance(cfg, AppConfig)
        assert cfg.ocr.languages == ["eng"]
        assert cfg.preprocessing.mode == "auto"

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.ocr.languages == ["eng"]

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "preprocessing": {"mode": "standard"},
            "ocr": {"languages": ["deu"], "psm": 6},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.preprocessing.mode == "standard"
        assert cfg.ocr.languages == ["deu"]
        assert cfg.ocr.psm == 6
        assert cfg.log_level == "DEBUG"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)

    def test_load_none_defaults_to_standard_path(self) -> None:
        cfg = load_config()
        assert isinstance(cfg, AppConfig)
