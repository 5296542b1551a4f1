"""Command-line interface for document processing and CSV export.

Provides subcommands for processing single documents, processing
folders of documents concurrently, and analyzing plain text files.
"""

import argparse
import csv
import json
import mimetypes
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from pathlib import Path

from medscan.extraction.analyzer import TextAnalyzer
from medscan.extraction.prescription import parse_prescription
from medscan.ocr.document_processor import (
    DocumentPipeline,
    ProcessingResult,
    RawDocument,
)
from medscan.utils.config import load_config
from medscan.utils.logger import get_logger, setup_logging
from medscan.utils.progress import ProgressEvent

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = (
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.webp",
    "*.bmp",
    "*.tiff",
    "*.tif",
    "*.pdf",
)
_CSV_COLUMNS = [
    "filename",
    "status",
    "processing_method",
    "document_type",
    "has_text",
    "text_length",
    "word_count",
    "ocr_confidence",
    "page_count",
    "dates",
    "keywords",
    "processing_time_s",
    "warnings",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def load_document(path: Path) -> RawDocument:
    """Read a file into a :class:`RawDocument`, guessing its media type."""
    media_type, _ = mimetypes.guess_type(path.name)
    return RawDocument(
        data=path.read_bytes(),
        media_type=media_type or "application/octet-stream",
        name=path.name,
    )


def result_to_dict(result: ProcessingResult, filename: str) -> dict[str, object]:
    """Serialize a processing result for JSON output."""
    return {
        "filename": filename,
        "success": result.success,
        "processing_method": result.processing_method.value,
        "preset": result.preset,
        "extracted_text": result.extracted_text,
        "analysis": asdict(result.analysis),
        "metadata": result.metadata.to_dict(),
        "warnings": list(result.warnings),
        "error": result.error,
    }


def _csv_row(result: ProcessingResult, filename: str) -> dict[str, object]:
    metadata = result.metadata.to_dict()
    return {
        "filename": filename,
        "status": "success" if result.success else "failed",
        "processing_method": result.processing_method.value,
        "document_type": metadata["document_type"],
        "has_text": metadata["has_text"],
        "text_length": metadata["text_length"],
        "word_count": metadata["word_count"],
        "ocr_confidence": metadata["ocr_confidence"],
        "page_count": metadata["page_count"],
        "dates": "; ".join(d["raw"] for d in metadata["dates"]),
        "keywords": "; ".join(metadata["keywords"]),
        "warnings": "; ".join(result.warnings),
        "error": result.error,
    }


def _process_file(
    file_path: Path, pipeline: DocumentPipeline, pdf_mode: str
) -> dict[str, object]:
    """Run one document through the pipeline and build its CSV row."""
    start_time = time.time()
    try:
        result = pipeline.process(load_document(file_path), pdf_mode=pdf_mode)
        row = _csv_row(result, file_path.name)
    except Exception as exc:
        logger.error("Failed to process %s: %s", file_path.name, exc)
        row = {"filename": file_path.name, "status": "failed", "error": str(exc)}
    row["processing_time_s"] = round(time.time() - start_time, 2)
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    workers: int = 1,
    pdf_mode: str = "text",
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export metadata to CSV.

    Documents are independent runs, so they are processed on a thread
    pool of ``workers`` threads.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        workers: Number of documents processed concurrently.
        pdf_mode: ``"text"`` or ``"ocr"`` for PDFs.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = load_config()
    pipeline = DocumentPipeline(config)

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        futures = [executor.submit(_process_file, f, pipeline, pdf_mode) for f in files]
        results: list[dict[str, object]] = []
        for i, future in enumerate(futures, 1):
            row = future.result()
            if verbose:
                print(
                    f"Processed [{i}/{len(files)}]: {row['filename']} "
                    f"({row['status']})"
                )
            results.append(row)

    successful = sum(1 for r in results if r["status"] == "success")
    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {
        "total": len(files),
        "successful": successful,
        "failed": len(files) - successful,
    }
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write per-document metadata rows to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed documents.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def process_single(
    file_path: Path, pdf_mode: str = "text", prescription: bool = False
) -> dict[str, object]:
    """Process a single document and return serializable results.

    Args:
        file_path: Path to the document file.
        pdf_mode: ``"text"`` or ``"ocr"`` for PDFs.
        prescription: Also parse the text as a prescription.

    Returns:
        Dictionary with method, text, analysis, and metadata.
    """
    pipeline = DocumentPipeline(load_config())

    def show_progress(event: ProgressEvent) -> None:
        logger.info("[%3d%%] %s", event.percent, event.stage.value)

    result = pipeline.process(
        load_document(file_path), progress=show_progress, pdf_mode=pdf_mode
    )
    output = result_to_dict(result, file_path.name)
    if prescription and result.success:
        output["prescription"] = asdict(parse_prescription(result.extracted_text))
    return output


def analyze_file(file_path: Path) -> dict[str, object]:
    """Analyze a plain text file without extraction."""
    config = load_config()
    analysis = TextAnalyzer(config.analysis).analyze(file_path.read_text())
    return asdict(analysis)


def _emit(output: dict[str, object], destination: Path | None) -> None:
    output_str = json.dumps(output, indent=2, default=str)
    if destination:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(output_str)
        print(f"Output written to {destination}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Medical Document Ingestion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-w", "--workers", type=int, default=1, help="Concurrent documents"
    )
    batch_parser.add_argument(
        "--pdf-ocr", action="store_true", help="OCR PDF pages instead of text layer"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("process", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "--pdf-ocr", action="store_true", help="OCR PDF pages instead of text layer"
    )
    single_parser.add_argument(
        "--prescription", action="store_true", help="Parse prescription fields"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a text file")
    analyze_parser.add_argument("file", type=Path, help="Plain text file")
    analyze_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            args.workers,
            "ocr" if args.pdf_ocr else "text",
            args.verbose,
        )
    elif args.command in ("process", "analyze"):
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        if args.command == "process":
            output = process_single(
                args.file, "ocr" if args.pdf_ocr else "text", args.prescription
            )
        else:
            output = analyze_file(args.file)
        _emit(output, args.output)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
