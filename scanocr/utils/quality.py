"""
Image quality analysis for adaptive preprocessing.

Provides:
- Quality tier classification (contrast / noise on a centered sample)
- Blank page detection
- Edge density estimation used for segmentation mode selection
"""

import logging
from enum import Enum
from typing import Tuple

import numpy as np

from ..config import (
    QUALITY_SAMPLE_SIZE,
    MIN_SAMPLE_SIZE,
    HIGH_CONTRAST_THRESHOLD,
    MEDIUM_CONTRAST_THRESHOLD,
    LOW_NOISE_THRESHOLD,
    EMPTY_SAMPLE_SIZE,
    EMPTY_VARIANCE_THRESHOLD,
    EDGE_SAMPLE_SIZE,
    EDGE_DIFF_THRESHOLD,
)

logger = logging.getLogger(__name__)


class ImageQuality(Enum):
    """Image quality levels for adaptive preprocessing."""
    HIGH = "high"      # Clean scanned document
    MEDIUM = "medium"  # Photo with good lighting
    LOW = "low"        # Photo with poor lighting/noise


def _gray_view(image: np.ndarray) -> np.ndarray:
    """Return a 2D gray view of the image without touching the caller's buffer."""
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] in (3, 4):
        # BT.601 luma on BGR(A)
        b = image[:, :, 0].astype(np.float32)
        g = image[:, :, 1].astype(np.float32)
        r = image[:, :, 2].astype(np.float32)
        return (0.114 * b + 0.587 * g + 0.299 * r).astype(np.uint8)
    raise ValueError(f"Unexpected image shape: {image.shape}")


def center_window(image: np.ndarray, height: int, width: int) -> np.ndarray:
    """Slice a window of the given size centered on the image."""
    h, w = image.shape[:2]
    height = min(height, h)
    width = min(width, w)
    y0 = (h - height) // 2
    x0 = (w - width) // 2
    return image[y0:y0 + height, x0:x0 + width]


def measure_sample(image: np.ndarray) -> Tuple[float, float]:
    """
    Measure contrast ratio and noise proxy on the centered quality sample.

    Returns:
        (contrast, noise), both in [0, 1]
    """
    gray = _gray_view(image)
    size = min(QUALITY_SAMPLE_SIZE, min(gray.shape[:2]) // 2)
    sample = center_window(gray, size, size).astype(np.int16)

    contrast = float(sample.max() - sample.min()) / 255.0
    if sample.shape[1] > 1:
        noise = float(np.abs(np.diff(sample, axis=1)).mean()) / 255.0
    else:
        noise = 0.0
    return contrast, noise


def detect_quality(image: np.ndarray) -> ImageQuality:
    """
    Classify an image into a quality tier.

    Samples a square window centered on the image and computes the
    contrast ratio (max - min brightness) / 255 and a noise proxy, the mean
    absolute brightness difference between horizontally adjacent pixels.
    Images too small for the sample window are treated as MEDIUM.

    Args:
        image: Input image (BGR or grayscale)

    Returns:
        ImageQuality tier
    """
    size = min(QUALITY_SAMPLE_SIZE, min(image.shape[:2]) // 2)
    if size < MIN_SAMPLE_SIZE:
        logger.debug(f"Image too small for quality sample ({image.shape[:2]}), assuming MEDIUM")
        return ImageQuality.MEDIUM

    contrast, noise = measure_sample(image)

    if contrast >= HIGH_CONTRAST_THRESHOLD and noise <= LOW_NOISE_THRESHOLD:
        quality = ImageQuality.HIGH
    elif contrast >= MEDIUM_CONTRAST_THRESHOLD:
        quality = ImageQuality.MEDIUM
    else:
        quality = ImageQuality.LOW

    logger.debug(f"Quality: contrast={contrast:.2f}, noise={noise:.3f} -> {quality.name}")
    return quality


def is_likely_empty(
    image: np.ndarray,
    variance_threshold: float = EMPTY_VARIANCE_THRESHOLD
) -> bool:
    """
    Check whether an image is likely blank using the variance of a center sample.

    Only near-uniform samples are reported as empty; images too small to
    sample are never reported as empty.
    """
    gray = _gray_view(image)
    size = min(EMPTY_SAMPLE_SIZE, min(gray.shape[:2]) // 3)
    if size < MIN_SAMPLE_SIZE:
        return False

    sample = center_window(gray, size, size).astype(np.float64)
    variance = float(sample.var())
    is_empty = variance < variance_threshold

    logger.debug(f"Empty check: variance={variance:.1f}, mean={sample.mean():.1f}, isEmpty={is_empty}")
    return is_empty


def calculate_edge_density(image: np.ndarray) -> float:
    """
    Fraction of pixels in a centered window whose right or lower
    neighbour differs by more than EDGE_DIFF_THRESHOLD gray levels.

    Returns:
        0.0 (no edges) to 1.0 (all edges)
    """
    gray = _gray_view(image)
    window = center_window(gray, EDGE_SAMPLE_SIZE, EDGE_SAMPLE_SIZE).astype(np.int16)
    h, w = window.shape
    if h < 3 or w < 3:
        return 0.0

    center = window[1:-1, 1:-1]
    right = window[1:-1, 2:]
    down = window[2:, 1:-1]
    edges = (np.abs(center - right) > EDGE_DIFF_THRESHOLD) | (np.abs(center - down) > EDGE_DIFF_THRESHOLD)

    return float(edges.mean())
