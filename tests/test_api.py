"""Tests for the FastAPI REST endpoints."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from medscan.api.app import app
from medscan.exceptions import Cancelled
from medscan.extraction.analyzer import Analysis, analyze_text
from medscan.ocr.document_processor import (
    DocumentPipeline,
    ProcessingMethod,
    ProcessingResult,
)
from medscan.ocr.extractors import ExtractionResult

NOTE_TEXT = (
    "Patient seen on 03/15/2024, prescribed Lisinopril 10mg once daily with food."
)
PRESCRIPTION_TEXT = (
    "Dr. John Smith, MD\n"
    "Date: 03/15/2024\n"
    "1. Amoxicillin 500mg\n"
    "Take twice daily with water\n"
    "Take with food"
)


@pytest.fixture
def client() -> TestClient:
    """Create a FastAPI test client."""
    return TestClient(app)


def _ocr_result(text: str = NOTE_TEXT) -> ProcessingResult:
    return ProcessingResult(
        processing_method=ProcessingMethod.OCR,
        extracted_text=text,
        analysis=analyze_text(text),
        extraction=ExtractionResult(
            text=text, confidence=91.5, word_count=len(text.split())
        ),
        preset="standard",
    )


def _failed_result() -> ProcessingResult:
    return ProcessingResult(
        processing_method=ProcessingMethod.FAILED,
        extracted_text="",
        analysis=Analysis(),
        extraction=None,
        error="OCR failed: engine crashed",
    )


def _mock_pipeline(mock_get: MagicMock, result: ProcessingResult) -> MagicMock:
    pipeline = MagicMock(spec=DocumentPipeline)
    pipeline.process.return_value = result
    mock_get.return_value = pipeline
    return pipeline


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_check(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)
        assert isinstance(data["pdftoppm_available"], bool)


class TestCapabilitiesEndpoint:
    """Tests for GET /capabilities."""

    def test_image_supported(self, client: TestClient) -> None:
        response = client.get("/capabilities", params={"media_type": "image/png"})
        assert response.status_code == 200
        data = response.json()
        assert data["supported"] is True
        assert data["method"].startswith("OCR")

    def test_text_not_supported(self, client: TestClient) -> None:
        response = client.get("/capabilities", params={"media_type": "text/plain"})
        data = response.json()
        assert data["supported"] is False
        assert data["method"] == "Not Supported"


class TestProcessEndpoint:
    """Tests for POST /process."""

    @patch("medscan.api.app._get_pipeline")
    def test_process_image(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        pipeline = _mock_pipeline(mock_get, _ocr_result())

        response = client.post(
            "/process", files={"file": ("note.png", document_png, "image/png")}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["filename"] == "note.png"
        assert data["processing_method"] == "ocr"
        assert data["extracted_text"] == NOTE_TEXT
        assert data["analysis"]["document_type"] == "Medical Report"
        assert data["analysis"]["dates"] == [
            {
                "raw": "03/15/2024",
                "format": "MM/DD/YYYY",
                "alternatives": ["DD/MM/YYYY"],
            }
        ]
        assert data["metadata"]["ocr_confidence"] == 91.5
        assert data["metadata"]["keywords"] == ["mg", "Patient", "Lisinopril"]
        assert data["ocr_quality"] == "Excellent"
        assert data["preset"] == "standard"
        assert data["processing_time_ms"] >= 0

        document = pipeline.process.call_args.args[0]
        assert document.media_type == "image/png"
        assert document.data == document_png
        assert pipeline.process.call_args.kwargs["pdf_mode"] == "text"

    @patch("medscan.api.app._get_pipeline")
    def test_media_type_guessed_from_name(
        self, mock_get: MagicMock, client: TestClient
    ) -> None:
        pipeline = _mock_pipeline(mock_get, _ocr_result())
        client.post(
            "/process",
            files={"file": ("scan.pdf", b"%PDF-1.4", "application/octet-stream")},
            params={"pdf_mode": "ocr"},
        )
        assert pipeline.process.call_args.args[0].media_type == "application/pdf"
        assert pipeline.process.call_args.kwargs["pdf_mode"] == "ocr"

    def test_unsupported_type(self, client: TestClient) -> None:
        response = client.post(
            "/process", files={"file": ("notes.txt", b"hello", "text/plain")}
        )
        assert response.status_code == 400
        assert "Unsupported" in response.json()["detail"]

    def test_invalid_pdf_mode(self, client: TestClient, document_png: bytes) -> None:
        response = client.post(
            "/process",
            files={"file": ("a.png", document_png, "image/png")},
            params={"pdf_mode": "magic"},
        )
        assert response.status_code == 422

    @patch("medscan.api.app._get_pipeline")
    def test_extraction_failure_reported(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        _mock_pipeline(mock_get, _failed_result())
        response = client.post(
            "/process", files={"file": ("a.png", document_png, "image/png")}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["processing_method"] == "failed"
        assert data["error"] == "OCR failed: engine crashed"

    @patch("medscan.api.app._get_pipeline")
    def test_cancelled_run(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        pipeline = _mock_pipeline(mock_get, _ocr_result())
        pipeline.process.side_effect = Cancelled("Processing timed out after 30s")
        response = client.post(
            "/process", files={"file": ("a.png", document_png, "image/png")}
        )
        assert response.status_code == 499
        assert "timed out" in response.json()["detail"]

    @patch("medscan.api.app._get_pipeline")
    def test_pipeline_runs_off_the_event_loop(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        pipeline = _mock_pipeline(mock_get, _ocr_result())
        loop_running: list[bool] = []

        def record_loop(*args: object, **kwargs: object) -> ProcessingResult:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                loop_running.append(False)
            else:
                loop_running.append(True)
            return _ocr_result()

        pipeline.process.side_effect = record_loop
        response = client.post(
            "/process", files={"file": ("a.png", document_png, "image/png")}
        )
        assert response.status_code == 200
        assert loop_running == [False]


class TestBatchEndpoint:
    """Tests for POST /process/batch."""

    @patch("medscan.api.app._get_pipeline")
    def test_mixed_batch(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        _mock_pipeline(mock_get, _ocr_result())
        response = client.post(
            "/process/batch",
            files=[
                ("files", ("a.png", document_png, "image/png")),
                ("files", ("b.txt", b"plain", "text/plain")),
            ],
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_documents"] == 2
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][0]["result"]["success"] is True
        assert data["results"][1]["result"] is None
        assert "Unsupported" in data["results"][1]["error"]


class TestPrescriptionEndpoint:
    """Tests for POST /prescriptions/parse."""

    @patch("medscan.api.app._get_pipeline")
    def test_parse_prescription(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        _mock_pipeline(mock_get, _ocr_result(PRESCRIPTION_TEXT))
        response = client.post(
            "/prescriptions/parse",
            files={"file": ("rx.png", document_png, "image/png")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["medications"] == ["Amoxicillin"]
        assert data["dosages"] == ["500mg"]
        assert data["frequencies"] == [{"frequency": "daily", "times": 2}]
        assert data["doctor_name"] == "John Smith"
        assert data["date"] == "03/15/2024"
        assert data["confidence"] == 91.5

    @patch("medscan.api.app._get_pipeline")
    def test_failed_extraction(
        self, mock_get: MagicMock, client: TestClient, document_png: bytes
    ) -> None:
        _mock_pipeline(mock_get, _failed_result())
        response = client.post(
            "/prescriptions/parse",
            files={"file": ("rx.png", document_png, "image/png")},
        )
        assert response.status_code == 422
