#!/usr/bin/env python
"""
Command-line interface for scanocr.

Usage:
    scanocr --input <image_or_pdf> [options]

Examples:
    # Recognize a photo with English and Arabic
    scanocr --input receipt.jpg --lang eng ara

    # Extract a PDF and save the result as JSON
    scanocr --input document.pdf --mode english_arabic --output result.json
"""

import sys
import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from .config import OCR_MODES, get_config, languages_for_mode, setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger("scanocr")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="scanocr",
        description="scanocr - Offline OCR for photographed and scanned documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Recognize an image:
    scanocr --input photo.jpg --lang eng

  Extract a PDF with English and Arabic, narrowing to the detected script:
    scanocr --input document.pdf --mode english_arabic

  Save the result and a thumbnail of the first page:
    scanocr --input document.pdf --output result.json --thumbnail thumb.png
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input image or PDF file"
    )

    # Optional arguments
    languages = parser.add_mutually_exclusive_group()
    languages.add_argument(
        "--lang", "-l",
        nargs="+",
        default=None,
        help="Tesseract language codes in preference order (default: eng)"
    )
    languages.add_argument(
        "--mode", "-m",
        choices=sorted(OCR_MODES),
        default=None,
        help="Named language preset"
    )

    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Write the result as JSON to this path"
    )

    parser.add_argument(
        "--thumbnail",
        default=None,
        help="Write the first page thumbnail to this path (PDF input only)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def resolve_languages(args) -> List[str]:
    """Pick the language list from --mode, --lang or the default."""
    if args.mode:
        return languages_for_mode(args.mode)
    if args.lang:
        return list(args.lang)
    return [get_config().ocr.default_language]


def check_dependencies() -> bool:
    """Check if required dependencies are available."""
    missing = []
    optional_missing = []

    # Required
    try:
        import cv2
    except ImportError:
        missing.append("opencv-python")

    try:
        import numpy
    except ImportError:
        missing.append("numpy")

    try:
        import pytesseract
        # Test if tesseract is actually installed
        try:
            pytesseract.get_tesseract_version()
        except Exception:
            missing.append("tesseract-ocr (system package)")
    except ImportError:
        missing.append("pytesseract")

    # PDF support
    try:
        import pdf2image
    except ImportError:
        optional_missing.append("pdf2image (for PDF support)")

    # Report
    if missing:
        logger.error("Missing required dependencies:")
        for dep in missing:
            logger.error(f"  - {dep}")
        logger.error("\nInstall with: pip install scanocr")
        return False

    if optional_missing:
        logger.warning("Missing optional dependencies (some features may be limited):")
        for dep in optional_missing:
            logger.warning(f"  - {dep}")

    return True


def select_log_level(args, debug_mode: bool = False) -> int:
    """Map --verbose, --quiet and SCANOCR_DEBUG to a root log level."""
    if args.verbose or debug_mode:
        return logging.DEBUG
    if args.quiet:
        return logging.ERROR
    return logging.INFO


def log_progress(update) -> None:
    if update.status_message:
        logger.info(f"[{update.current_page}/{update.total_pages}] {update.status_message}")


def run_pipeline(args) -> int:
    """Recognize an image or extract a PDF."""
    from .service import OcrService
    from .utils.io import detect_input_type, save_json, save_image

    start_time = time.time()

    input_path = Path(args.input)
    input_type = detect_input_type(input_path)
    logger.info(f"Input type detected: {input_type}")

    if input_type == "unknown":
        logger.error(f"Unsupported input: {input_path}")
        return 1

    try:
        languages = resolve_languages(args)
    except ValueError as e:
        logger.error(str(e))
        return 1

    with OcrService(get_config()) as service:
        if not service.initialize(languages).result():
            logger.error(f"Failed to initialize OCR for languages: {languages}")
            return 1

        if input_type == "pdf":
            result = service.extract_document(input_path, languages, on_progress=log_progress).result()
            if result.text.startswith("Error"):
                logger.error(result.text)
                return 1
            text = result.text
            summary = {
                "Pages": f"{result.pages_processed}/{result.page_count}",
                "Language": result.detected_language,
                "Average confidence": f"{result.average_confidence}%",
            }
            payload = result.to_dict()

            if args.thumbnail and result.thumbnail is not None:
                save_image(result.thumbnail, args.thumbnail)
                logger.info(f"Saved thumbnail: {args.thumbnail}")
        else:
            result = service.recognize_file(input_path).result()
            if result is None:
                logger.error(f"Recognition failed: {input_path}")
                return 1
            text = result.text
            summary = {
                "Languages": "+".join(result.languages),
                "Confidence": f"{result.confidence}%",
            }
            payload = result.to_dict()

    if args.output:
        payload["source"] = str(input_path)
        save_json(payload, args.output)
        logger.info(f"Saved JSON: {args.output}")

    elapsed = time.time() - start_time

    if not args.quiet:
        print(text if text else "(no text found)")
        print("\n" + "="*60)
        print(f"Source: {input_path}")
        for label, value in summary.items():
            print(f"{label}: {value}")
        print(f"Processing time: {elapsed:.2f}s")
        print("="*60)

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    # Configure logging level
    logging.getLogger().setLevel(select_log_level(args, get_config().debug_mode))

    # Check dependencies
    if not check_dependencies():
        sys.exit(1)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
