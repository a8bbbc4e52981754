"""
I/O utilities for the scanocr pipeline.

Handles:
- Page-at-a-time PDF rendering (pdf2image / poppler)
- Image loading and validation
- Thumbnails
- JSON serialization
- Input type detection
"""

import json
import logging
import re
from pathlib import Path
from typing import Union, Optional, Any, Tuple
from dataclasses import asdict

import numpy as np

from ..config import TARGET_DPI, MAX_PAGE_DIMENSION, THUMBNAIL_WIDTH

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tiff', '.tif', '.bmp', '.webp')

POINTS_PER_INCH = 72.0
_PAGE_SIZE_PATTERN = re.compile(r"([\d.]+)\s*x\s*([\d.]+)")


# ============================================================================
# PDF Rendering
# ============================================================================

def parse_page_size(value: Optional[str]) -> Optional[Tuple[float, float]]:
    """Parse pdfinfo's "Page size" field ("612 x 792 pts (letter)") into points."""
    if not value:
        return None
    match = _PAGE_SIZE_PATTERN.search(str(value))
    if not match:
        return None
    return float(match.group(1)), float(match.group(2))


class PdfPageRenderer:
    """
    Renders one PDF page at a time so only a single page raster is alive.

    Args:
        pdf_path: Path to the PDF file

    Raises:
        FileNotFoundError: If the PDF file doesn't exist
        RuntimeError: If the PDF cannot be parsed or poppler is missing
    """

    def __init__(self, pdf_path: Union[str, Path]):
        self.pdf_path = Path(pdf_path)
        if not self.pdf_path.exists():
            raise FileNotFoundError(f"PDF file not found: {self.pdf_path}")

        try:
            from pdf2image import pdfinfo_from_path
            from pdf2image.exceptions import PDFPageCountError, PDFSyntaxError, PDFInfoNotInstalledError
        except ImportError:
            raise ImportError(
                "pdf2image is required. Install with: pip install pdf2image\n"
                "Also ensure poppler is installed on your system."
            )

        try:
            info = pdfinfo_from_path(str(self.pdf_path))
        except PDFInfoNotInstalledError:
            raise RuntimeError(
                "Poppler is not installed. Install with:\n"
                "  macOS: brew install poppler\n"
                "  Linux: sudo apt-get install poppler-utils"
            )
        except (PDFPageCountError, PDFSyntaxError) as e:
            raise RuntimeError(f"Failed to parse PDF: {e}")

        self.page_count = int(info.get("Pages", 0))
        self.page_size = parse_page_size(info.get("Page size"))
        self._closed = False

        logger.debug(f"Opened PDF: {self.pdf_path} ({self.page_count} pages, size={self.page_size})")

    def effective_dpi(self, dpi: int, max_dimension: int) -> int:
        """Lower dpi so the rendered long edge stays within max_dimension."""
        if not self.page_size:
            return dpi
        long_edge_points = max(self.page_size)
        if long_edge_points <= 0:
            return dpi
        long_edge_pixels = long_edge_points / POINTS_PER_INCH * dpi
        if long_edge_pixels <= max_dimension:
            return dpi
        return max(1, int(max_dimension * POINTS_PER_INCH / long_edge_points))

    def render_page(
        self,
        index: int,
        dpi: int = TARGET_DPI,
        max_dimension: int = MAX_PAGE_DIMENSION
    ) -> np.ndarray:
        """
        Render a single page.

        Args:
            index: 0-based page index
            dpi: Requested resolution
            max_dimension: Upper bound for the long edge of the raster

        Returns:
            Page raster (BGR format)
        """
        from pdf2image import convert_from_path

        if self._closed:
            raise RuntimeError("Renderer has been closed")
        if not 0 <= index < self.page_count:
            raise IndexError(f"Page index {index} out of range (0-{self.page_count - 1})")

        render_dpi = self.effective_dpi(dpi, max_dimension)
        pil_images = convert_from_path(
            str(self.pdf_path),
            dpi=render_dpi,
            first_page=index + 1,
            last_page=index + 1
        )
        if not pil_images:
            raise RuntimeError(f"Page {index + 1} could not be rendered")

        # RGB -> BGR for OpenCV compatibility
        page = np.array(pil_images[0].convert("RGB"))[:, :, ::-1].copy()
        del pil_images

        h, w = page.shape[:2]
        if max(h, w) > max_dimension:
            import cv2
            scale = max_dimension / max(h, w)
            page = cv2.resize(
                page,
                (max(1, int(w * scale)), max(1, int(h * scale))),
                interpolation=cv2.INTER_AREA
            )

        logger.debug(f"Rendered page {index + 1} at {render_dpi} DPI: {page.shape[:2]}")
        return page

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "PdfPageRenderer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


# ============================================================================
# Image Loading
# ============================================================================

def load_image(
    image_path: Union[str, Path],
    grayscale: bool = False
) -> np.ndarray:
    """
    Load an image from file.

    Args:
        image_path: Path to the image file
        grayscale: If True, load as grayscale

    Returns:
        Numpy array representing the image (BGR format if color)

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be decoded
    """
    import cv2

    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    flag = cv2.IMREAD_GRAYSCALE if grayscale else cv2.IMREAD_COLOR
    img = cv2.imread(str(image_path), flag)

    if img is None:
        raise ValueError(f"Could not decode image: {image_path}")

    logger.debug(f"Loaded image: {image_path}, shape: {img.shape}")
    return img


def save_image(image: np.ndarray, output_path: Union[str, Path]) -> Path:
    """Save an image to file, creating parent directories."""
    import cv2

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(output_path), image):
        raise ValueError(f"Could not encode image: {output_path}")

    logger.debug(f"Saved image: {output_path}")
    return output_path


def make_thumbnail(image: np.ndarray, width: int = THUMBNAIL_WIDTH) -> Optional[np.ndarray]:
    """
    Scale an image to the given width, keeping the aspect ratio.

    Returns:
        Thumbnail, or None for degenerate (empty) images
    """
    import cv2

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        return None

    height = max(1, int(round(h * width / w)))
    interpolation = cv2.INTER_AREA if width < w else cv2.INTER_LINEAR
    return cv2.resize(image, (width, height), interpolation=interpolation)


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types, dataclasses and paths."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


# ============================================================================
# File Type Detection
# ============================================================================

def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of an input file.

    Returns:
        One of: 'pdf', 'image', 'unknown'
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        return 'unknown'

    suffix = input_path.suffix.lower()
    if suffix == '.pdf':
        return 'pdf'
    elif suffix in IMAGE_EXTENSIONS:
        return 'image'

    return 'unknown'
