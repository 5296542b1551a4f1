"""Shared test fixtures for the document ingestion test suite."""

import io
import struct
import zlib
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def _encode_png(array: np.ndarray) -> bytes:
    """Encode a numpy image array as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(array).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def document_image() -> np.ndarray:
    """Synthetic RGB page: light background with dark text-like bars."""
    image = np.full((60, 80, 3), 200, dtype=np.uint8)
    image[10:14, 10:70] = 30
    image[25:29, 10:60] = 30
    image[40:44, 10:65] = 30
    return image


@pytest.fixture
def document_png(document_image: np.ndarray) -> bytes:
    """PNG bytes of the synthetic page."""
    return _encode_png(document_image)


@pytest.fixture
def uniform_gray_png() -> bytes:
    """PNG bytes of a 100x100 image where every pixel is 128."""
    return _encode_png(np.full((100, 100, 3), 128, dtype=np.uint8))


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def oversized_png() -> bytes:
    """2x2 PNG whose header claims 20000x20000 pixels."""
    data = bytearray(_encode_png(np.zeros((2, 2, 3), dtype=np.uint8)))
    # IHDR payload starts at byte 16: width, height, then 5 more bytes.
    data[16:24] = struct.pack(">II", 20000, 20000)
    data[29:33] = struct.pack(">I", zlib.crc32(bytes(data[12:29])))
    return bytes(data)
