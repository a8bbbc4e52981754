"""
Text OCR module for scanocr.

Provides:
- Tesseract engine adapter (one pass = one image_to_data call)
- Recognition result types
- Post-processing (garbage removal, whitespace cleanup, RTL marking)
"""

import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import List, Optional, Tuple, Dict, Any, Union
import numpy as np

from ..config import GARBAGE_CHARS, RTL_MARK, TESSERACT_OEM, LANGUAGE_SEPARATOR

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

class PageSegMode(IntEnum):
    """Tesseract page segmentation modes used by the recognizer."""
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK = 6
    SPARSE_TEXT = 11
    SPARSE_TEXT_OSD = 12

    @property
    def is_sparse(self) -> bool:
        return self in (PageSegMode.SPARSE_TEXT, PageSegMode.SPARSE_TEXT_OSD)


@dataclass(frozen=True)
class EngineOutput:
    """Raw output of one engine pass."""
    text: str
    confidence: int
    page_seg_mode: Optional[PageSegMode] = None


@dataclass(frozen=True)
class OCRResult:
    """Complete OCR result for one recognition call."""
    text: str
    confidence: int
    languages: Tuple[str, ...] = ()
    processing_time_ms: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.text

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= 80

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "languages": list(self.languages),
            "processing_time_ms": self.processing_time_ms
        }


class EngineInitError(RuntimeError):
    """The recognition engine could not be constructed."""


# ============================================================================
# Tesseract Engine
# ============================================================================

class TesseractEngine:
    """
    OCR using Tesseract through pytesseract.

    Each pass runs the tesseract binary with the language selector, a page
    segmentation mode and a set of -c variables. The instance is not
    reentrant; callers serialize access to it.
    """

    def __init__(
        self,
        language: str = "eng",
        tessdata_dir: Optional[Union[str, Path]] = None,
        oem: int = TESSERACT_OEM,
        tesseract_cmd: Optional[str] = None
    ):
        try:
            import pytesseract
            self.pytesseract = pytesseract

            if tesseract_cmd:
                pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

            # Test that tesseract is installed
            version = pytesseract.get_tesseract_version()
        except Exception as e:
            raise EngineInitError(
                f"Tesseract not available: {e}\n"
                "Install with: pip install pytesseract\n"
                "Also install Tesseract: https://github.com/tesseract-ocr/tesseract"
            )

        self.language = language
        self.tessdata_dir = Path(tessdata_dir) if tessdata_dir else None
        self.oem = oem
        self._closed = False

        installed = self._installed_languages()
        missing = [code for code in language.split(LANGUAGE_SEPARATOR) if code not in installed]
        if missing:
            raise EngineInitError(
                f"Tesseract languages not installed: {missing} (tessdata: {self.tessdata_dir})"
            )

        logger.info(f"Tesseract {version} ready with '{language}'")

    def _tessdata_flag(self) -> str:
        if self.tessdata_dir is None:
            return ""
        return f'--tessdata-dir "{self.tessdata_dir}"'

    def _installed_languages(self) -> List[str]:
        try:
            return list(self.pytesseract.get_languages(config=self._tessdata_flag()))
        except Exception as e:
            raise EngineInitError(f"Could not list Tesseract languages: {e}")

    def build_config(self, page_seg_mode: PageSegMode, variables: Dict[str, str]) -> str:
        """Build the tesseract command-line configuration string."""
        parts = [f"--oem {self.oem}", f"--psm {int(page_seg_mode)}"]
        tessdata = self._tessdata_flag()
        if tessdata:
            parts.append(tessdata)
        for name, value in variables.items():
            parts.append(f"-c {name}={value}")
        return " ".join(parts)

    def recognize(
        self,
        image: np.ndarray,
        page_seg_mode: PageSegMode = PageSegMode.AUTO,
        variables: Optional[Dict[str, str]] = None
    ) -> EngineOutput:
        """Run one Tesseract pass."""
        if self._closed:
            raise RuntimeError("Tesseract engine has been closed")

        data = self.pytesseract.image_to_data(
            image,
            lang=self.language,
            config=self.build_config(page_seg_mode, variables or {}),
            output_type=self.pytesseract.Output.DICT
        )
        text, confidence = assemble_text(data)
        return EngineOutput(text=text, confidence=confidence, page_seg_mode=page_seg_mode)

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


def assemble_text(data: Dict[str, List[Any]]) -> Tuple[str, int]:
    """
    Rebuild text and mean confidence from image_to_data output.

    Words are joined into lines by (block, paragraph, line) numbers;
    paragraphs are separated by a blank line. Confidence is the integer
    mean of the non-negative word confidences.
    """
    paragraphs: List[List[str]] = []
    current_line: List[str] = []
    line_key = None
    par_key = None
    confidences = []

    for i in range(len(data.get('text', []))):
        word = str(data['text'][i]).strip()
        conf = float(data['conf'][i])
        if conf < 0 or not word:  # -1 means no valid confidence
            continue

        key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        if key != line_key:
            if current_line:
                paragraphs[-1].append(' '.join(current_line))
            current_line = []
            if key[:2] != par_key:
                paragraphs.append([])
                par_key = key[:2]
            line_key = key

        current_line.append(word)
        confidences.append(conf)

    if current_line:
        paragraphs[-1].append(' '.join(current_line))

    text = '\n\n'.join('\n'.join(lines) for lines in paragraphs)
    confidence = int(round(np.mean(confidences))) if confidences else 0
    return text, max(0, min(100, confidence))


# ============================================================================
# Post-processing
# ============================================================================

GARBAGE_PATTERN = re.compile("[" + re.escape(GARBAGE_CHARS) + "]")
_ARABIC_PATTERN = re.compile("[؀-ۿݐ-ݿ]")


def contains_arabic(text: str) -> bool:
    """Check if text contains Arabic characters."""
    return _ARABIC_PATTERN.search(text) is not None


def _is_noise_line(line: str) -> bool:
    """Lines without a single letter or digit are noise."""
    return not any(ch.isalnum() for ch in line)


def post_process(text: str) -> str:
    """
    Clean raw engine text.

    - Remove common OCR garbage characters (digits are left alone)
    - Collapse runs of spaces/tabs and excess blank lines
    - Drop empty lines and lines made only of symbols
    - Prefix an RTL mark to lines containing Arabic
    """
    if not text or not text.strip():
        return ""

    result = GARBAGE_PATTERN.sub("", text)
    result = re.sub(r"[ \t]+", " ", result)
    result = re.sub(r"\n{3,}", "\n\n", result)

    lines = []
    for line in result.split("\n"):
        line = line.strip()
        if not line or _is_noise_line(line):
            continue
        if contains_arabic(line):
            line = RTL_MARK + line
        lines.append(line)

    return "\n".join(lines)


# ============================================================================
# Example Usage
# ============================================================================

if __name__ == "__main__":
    import sys
    import cv2

    if len(sys.argv) > 1:
        image_path = sys.argv[1]
        language = sys.argv[2] if len(sys.argv) > 2 else "eng"

        image = cv2.imread(image_path, cv2.IMREAD_GRAYSCALE)
        if image is None:
            print(f"Failed to load image: {image_path}")
            sys.exit(1)

        engine = TesseractEngine(language=language)
        output = engine.recognize(image)

        print(f"Confidence: {output.confidence}")
        print("\n--- Text ---")
        print(post_process(output.text))
    else:
        print("Usage: python -m scanocr.utils.ocr_text <image_path> [language]")
