"""
Configuration and constants for the scanocr pipeline.

This module provides:
- Preprocessing and quality-tier thresholds
- Recognition retry/confidence policy
- Language asset locations
- Document rendering limits
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from pathlib import Path

logger = logging.getLogger("scanocr")


# ============================================================================
# Logging Configuration
# ============================================================================

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging the same way the CLI does."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


# ============================================================================
# Image Constants
# ============================================================================

MAX_DIMENSION = 2500
MIN_DIMENSION = 600

# Quality detection
QUALITY_SAMPLE_SIZE = 100
MIN_SAMPLE_SIZE = 16
HIGH_CONTRAST_THRESHOLD = 0.7
MEDIUM_CONTRAST_THRESHOLD = 0.4
LOW_NOISE_THRESHOLD = 0.1

# Empty page detection
EMPTY_SAMPLE_SIZE = 80
EMPTY_VARIANCE_THRESHOLD = 15.0

# Edge density (segmentation mode selection)
EDGE_SAMPLE_SIZE = 150
EDGE_DIFF_THRESHOLD = 25
DENSE_EDGE_DENSITY = 0.08
SPARSE_EDGE_DENSITY = 0.02

# Linear contrast factors per quality tier
CONTRAST_FACTORS = {
    "HIGH": 1.15,
    "MEDIUM": 1.35,
    "LOW": 1.6,
}


# ============================================================================
# Recognition Constants
# ============================================================================

DEFAULT_LANGUAGE = "eng"
ARABIC_LANGUAGE = "ara"
LANGUAGE_SEPARATOR = "+"

TESSERACT_OEM = 3

# Retry when both hold
RETRY_CONFIDENCE_FLOOR = 60
RETRY_TEXT_LENGTH = 50
# A retry pass replaces the current best when it is this much better
RETRY_CONFIDENCE_GAIN = 10
RETRY_LENGTH_GAIN = 1.5
RETRY_COMPARABLE_CONFIDENCE = 5

# Below both: report "ran but found nothing"
MIN_CONFIDENCE_THRESHOLD = 30
MIN_TEXT_LENGTH = 10

GARBAGE_CHARS = "|[]{}\\<>^`~©®™•§¶"
RTL_MARK = "\u200f"

ARABIC_NON_DICT_PENALTY = 0.3


# ============================================================================
# Language Assets
# ============================================================================

TRAINEDDATA_SUFFIX = ".traineddata"
# Corrupt or truncated traineddata files are smaller than this
MIN_TRAINEDDATA_SIZE = 100_000

SYSTEM_TESSDATA_DIR = Path("/usr/share/tesseract-ocr/5/tessdata")
DEFAULT_DATA_DIR = Path.home() / ".cache" / "scanocr"


# ============================================================================
# Document Constants
# ============================================================================

TARGET_DPI = 300
MAX_PAGE_DIMENSION = 2480  # ~8.5" at 300 DPI
THUMBNAIL_WIDTH = 400
DETECTION_DPI = 100
DETECTION_MAX_DIMENSION = 800
MIN_DETECTION_TEXT_LENGTH = 20


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class ImageConfig:
    """Image preprocessing configuration."""
    max_dimension: int = MAX_DIMENSION
    min_dimension: int = MIN_DIMENSION
    contrast_factors: Dict[str, float] = field(
        default_factory=lambda: dict(CONTRAST_FACTORS)
    )
    empty_variance_threshold: float = EMPTY_VARIANCE_THRESHOLD


@dataclass
class OCRConfig:
    """Recognition configuration."""
    default_language: str = DEFAULT_LANGUAGE
    tesseract_oem: int = TESSERACT_OEM
    tesseract_cmd: Optional[str] = None
    retry_confidence_floor: int = RETRY_CONFIDENCE_FLOOR
    retry_text_length: int = RETRY_TEXT_LENGTH
    min_confidence: int = MIN_CONFIDENCE_THRESHOLD
    min_text_length: int = MIN_TEXT_LENGTH


@dataclass
class AssetConfig:
    """Location of traineddata files."""
    bundle_dir: Path = SYSTEM_TESSDATA_DIR
    data_dir: Path = DEFAULT_DATA_DIR
    min_size: int = MIN_TRAINEDDATA_SIZE

    @property
    def tessdata_dir(self) -> Path:
        return Path(self.data_dir) / "tessdata"


@dataclass
class DocumentConfig:
    """PDF extraction configuration."""
    target_dpi: int = TARGET_DPI
    max_page_dimension: int = MAX_PAGE_DIMENSION
    thumbnail_width: int = THUMBNAIL_WIDTH
    detection_dpi: int = DETECTION_DPI
    detection_max_dimension: int = DETECTION_MAX_DIMENSION
    min_detection_text_length: int = MIN_DETECTION_TEXT_LENGTH


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    image: ImageConfig = field(default_factory=ImageConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    document: DocumentConfig = field(default_factory=DocumentConfig)

    # Global settings
    workers: int = 2
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    bundle = os.environ.get("SCANOCR_TESSDATA_BUNDLE") or os.environ.get("TESSDATA_PREFIX")
    if bundle:
        config.assets.bundle_dir = Path(bundle)

    data_dir = os.environ.get("SCANOCR_DATA_DIR")
    if data_dir:
        config.assets.data_dir = Path(data_dir)

    if os.environ.get("SCANOCR_DEBUG", "").lower() == "true":
        config.debug_mode = True

    workers = os.environ.get("SCANOCR_WORKERS")
    if workers:
        try:
            config.workers = max(1, int(workers))
        except ValueError:
            logger.warning(f"Ignoring invalid SCANOCR_WORKERS value: {workers!r}")

    config.ocr.tesseract_cmd = os.environ.get("TESSERACT_CMD")

    return config


# ============================================================================
# OCR Mode Presets
# ============================================================================

OCR_MODES: Dict[str, Dict[str, object]] = {
    "english_arabic": {"label": "English + Arabic", "languages": ["eng", "ara"]},
    "english": {"label": "English Only", "languages": ["eng"]},
    "arabic": {"label": "Arabic Only", "languages": ["ara"]},
    "french": {"label": "French", "languages": ["fra"]},
}


def languages_for_mode(mode: str) -> List[str]:
    """Return the language list of a named OCR mode."""
    try:
        return list(OCR_MODES[mode]["languages"])
    except KeyError:
        raise ValueError(f"Unknown OCR mode: {mode}")
