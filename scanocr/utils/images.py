"""
Image preprocessing utilities for the scanocr pipeline.

Provides:
- Resizing into the recognizer's working size range
- Grayscale conversion
- Linear contrast enhancement by quality tier
- Otsu binarization
- Median denoising
- Quality-adaptive preprocessing pipeline
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Tuple, Optional, List
import numpy as np

from ..config import MAX_DIMENSION, MIN_DIMENSION, CONTRAST_FACTORS
from .quality import ImageQuality, detect_quality

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class StageRecord:
    """Geometry of the buffer a pipeline stage produced."""
    name: str
    shape: Tuple[int, ...]


@dataclass
class PreprocessingResult:
    """Result of image preprocessing."""
    image: np.ndarray
    original_shape: Tuple[int, int]
    quality: ImageQuality = ImageQuality.MEDIUM
    threshold: Optional[int] = None
    transformations: List[str] = field(default_factory=list)
    stages: List[StageRecord] = field(default_factory=list)

    @property
    def was_binarized(self) -> bool:
        return self.threshold is not None


# ============================================================================
# Core Preprocessing Functions
# ============================================================================

def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert image to grayscale if it's color.

    Args:
        image: Input image (BGR, BGRA or grayscale)

    Returns:
        Grayscale image
    """
    import cv2

    if len(image.shape) == 2:
        return image
    elif len(image.shape) == 3:
        if image.shape[2] == 3:
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        elif image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        elif image.shape[2] == 1:
            return image.squeeze(axis=2)

    raise ValueError(f"Unexpected image shape: {image.shape}")


def compute_target_size(
    width: int,
    height: int,
    max_dimension: int = MAX_DIMENSION,
    min_dimension: int = MIN_DIMENSION
) -> Tuple[int, int]:
    """
    Compute the (width, height) an image should be resized to.

    The long edge is capped at max_dimension and the short edge raised to
    min_dimension, keeping the aspect ratio. When an extreme aspect ratio
    makes both impossible, the max_dimension cap wins.
    """
    long_edge = max(width, height)
    short_edge = min(width, height)

    if long_edge > max_dimension:
        scale = max_dimension / long_edge
    elif short_edge < min_dimension:
        scale = min(min_dimension / short_edge, max_dimension / long_edge)
    else:
        return width, height

    new_width = max(1, int(round(width * scale)))
    new_height = max(1, int(round(height * scale)))
    return new_width, new_height


def resize_for_ocr(
    image: np.ndarray,
    max_dimension: int = MAX_DIMENSION,
    min_dimension: int = MIN_DIMENSION
) -> np.ndarray:
    """
    Resize image so its edges lie within [min_dimension, max_dimension].

    Args:
        image: Input image
        max_dimension: Upper bound for the long edge
        min_dimension: Lower bound for the short edge

    Returns:
        Resized image, or the input itself when already within bounds
    """
    import cv2

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        raise ValueError(f"Cannot resize empty image: {image.shape}")

    new_width, new_height = compute_target_size(w, h, max_dimension, min_dimension)
    if (new_width, new_height) == (w, h):
        return image

    interpolation = cv2.INTER_CUBIC if new_width > w else cv2.INTER_AREA
    resized = cv2.resize(image, (new_width, new_height), interpolation=interpolation)

    logger.debug(f"Resized image: {image.shape[:2]} -> {resized.shape[:2]}")
    return resized


def enhance_contrast(image: np.ndarray, factor: float) -> np.ndarray:
    """
    Linear contrast stretch around mid-gray.

    out = factor * (p - 127.5) + 127.5, clipped to [0, 255]
    """
    stretched = image.astype(np.float32)
    stretched -= 127.5
    stretched *= factor
    stretched += 127.5
    enhanced = np.clip(stretched, 0, 255).astype(np.uint8)

    logger.debug(f"Applied linear contrast enhancement (factor={factor})")
    return enhanced


def otsu_threshold(gray: np.ndarray) -> int:
    """
    Compute a global binarization threshold with Otsu's method.

    Builds a 256-bin histogram, scans every candidate threshold while
    tracking the cumulative weight and mean on each side, and keeps the
    threshold maximizing wB * wF * (mB - mF)^2. When a flat run of
    thresholds shares the maximum (empty bins between two modes), the middle
    of that run is returned.

    Args:
        gray: Grayscale uint8 image

    Returns:
        Threshold in [0, 255]; pixels above it are foreground-white
    """
    hist = np.bincount(gray.ravel(), minlength=256).astype(np.float64)
    total = hist.sum()
    if total == 0:
        return 128

    levels = np.arange(256, dtype=np.float64)
    weight_b = np.cumsum(hist)
    weight_f = total - weight_b
    sum_b = np.cumsum(hist * levels)
    sum_total = sum_b[-1]

    valid = (weight_b > 0) & (weight_f > 0)
    if not valid.any():
        # Single gray level
        return int(np.flatnonzero(hist)[0])

    between = np.zeros(256, dtype=np.float64)
    mean_b = sum_b[valid] / weight_b[valid]
    mean_f = (sum_total - sum_b[valid]) / weight_f[valid]
    between[valid] = weight_b[valid] * weight_f[valid] * (mean_b - mean_f) ** 2

    best = np.flatnonzero(between == between.max())
    return int((best[0] + best[-1]) // 2)


def binarize(gray: np.ndarray, threshold: Optional[int] = None) -> Tuple[np.ndarray, int]:
    """
    Convert a grayscale image to pure black and white.

    Pages that come out mostly black (light text on a dark background)
    are inverted so text is dark on light.

    Args:
        gray: Grayscale uint8 image
        threshold: Fixed threshold (None = Otsu)

    Returns:
        Tuple of (binary image, threshold used)
    """
    if threshold is None:
        threshold = otsu_threshold(gray)

    binary = np.where(gray > threshold, 255, 0).astype(np.uint8)

    if np.count_nonzero(binary) < binary.size / 2:
        logger.debug("Inverted image detected (white on dark), inverting")
        np.subtract(255, binary, out=binary)

    logger.debug(f"Applied Otsu binarization: threshold={threshold}")
    return binary, threshold


def denoise(gray: np.ndarray) -> np.ndarray:
    """
    3x3 median filter for salt-and-pepper noise removal.

    Interior pixels take the median of their 3x3 neighbourhood; border
    rows and columns are copied unchanged.
    """
    import cv2

    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return gray.copy()

    denoised = cv2.medianBlur(gray, 3)
    denoised[0, :] = gray[0, :]
    denoised[-1, :] = gray[-1, :]
    denoised[:, 0] = gray[:, 0]
    denoised[:, -1] = gray[:, -1]

    logger.debug("Applied 3x3 median denoising")
    return denoised


# ============================================================================
# Main Preprocessing Pipeline
# ============================================================================

def preprocess_image(
    image: np.ndarray,
    quality: Optional[ImageQuality] = None,
    preserve_diacritics: bool = False,
    max_dimension: int = MAX_DIMENSION,
    min_dimension: int = MIN_DIMENSION,
    contrast_factors: Optional[Dict[str, float]] = None
) -> PreprocessingResult:
    """
    Apply the quality-adaptive preprocessing pipeline to an image.

    Stages: resize -> grayscale -> contrast, then for LOW quality input
    Otsu binarization and median denoising. Each stage rebinds the single
    working reference, so a superseded buffer is released as soon as the
    next stage's output exists. The caller's image is never modified.

    Args:
        image: Input image (BGR or grayscale)
        quality: Quality hint; detected after grayscale conversion when None
        preserve_diacritics: Skip median denoising (Arabic dots/nuqta)
        max_dimension: Upper bound for the long edge
        min_dimension: Lower bound for the short edge
        contrast_factors: Contrast factor per quality tier name (defaults to CONTRAST_FACTORS)

    Returns:
        PreprocessingResult with processed image and metadata
    """
    original_shape = image.shape[:2]
    transformations = []
    stages = []

    # 1. Resize
    processed = resize_for_ocr(image, max_dimension, min_dimension)
    if processed is not image:
        transformations.append(f"resize_{processed.shape[1]}x{processed.shape[0]}")
        stages.append(StageRecord("resize", processed.shape))

    # 2. Grayscale
    gray = to_grayscale(processed)
    if gray is not processed:
        transformations.append("grayscale")
        stages.append(StageRecord("grayscale", gray.shape))
    processed = gray
    del gray

    # 3. Quality tier
    if quality is None:
        quality = detect_quality(processed)

    # 4. Contrast
    factor = (contrast_factors or CONTRAST_FACTORS)[quality.name]
    processed = enhance_contrast(processed, factor)
    transformations.append(f"contrast_{factor}")
    stages.append(StageRecord("contrast", processed.shape))

    threshold = None
    if quality is ImageQuality.LOW:
        # 5. Binarize
        processed, threshold = binarize(processed)
        transformations.append(f"threshold_{threshold}")
        stages.append(StageRecord("threshold", processed.shape))

        # 6. Denoise
        if preserve_diacritics:
            logger.debug("Skipping median filter (preserves diacritics)")
        else:
            processed = denoise(processed)
            transformations.append("denoise")
            stages.append(StageRecord("denoise", processed.shape))

    logger.info(f"Preprocessing complete ({quality.name}): {' -> '.join(transformations)}")

    return PreprocessingResult(
        image=processed,
        original_shape=original_shape,
        quality=quality,
        threshold=threshold,
        transformations=transformations,
        stages=stages
    )


# ============================================================================
# Example Usage
# ============================================================================

if __name__ == "__main__":
    import sys
    import cv2

    if len(sys.argv) > 1:
        image_path = sys.argv[1]
        output_path = sys.argv[2] if len(sys.argv) > 2 else "preprocessed.png"

        image = cv2.imread(image_path)
        if image is None:
            print(f"Failed to load image: {image_path}")
            sys.exit(1)

        result = preprocess_image(image)

        print(f"Quality: {result.quality.name}")
        print(f"Transformations: {result.transformations}")

        cv2.imwrite(output_path, result.image)
        print(f"Saved preprocessed image to: {output_path}")
    else:
        print("Usage: python -m scanocr.utils.images <input_image> [output_image]")
