"""
Utility modules for the scanocr pipeline.
"""

from .io import PdfPageRenderer, load_image, save_json, make_thumbnail
from .quality import ImageQuality, detect_quality, is_likely_empty, calculate_edge_density
from .images import preprocess_image, binarize, denoise, enhance_contrast, otsu_threshold
from .scripts import Script, detect_script, select_best_language, detect_and_select_language
from .languages import LanguageAssetManager, SUPPORTED_LANGUAGES
from .ocr_text import TesseractEngine, OCRResult, PageSegMode, EngineInitError, post_process
from .recognition import RecognitionOrchestrator, ScriptProfile, TuningDecision, candidate_modes
from .document import DocumentPageExtractor, PdfExtractionResult, ProgressUpdate

__all__ = [
    # IO
    "PdfPageRenderer", "load_image", "save_json", "make_thumbnail",
    # Quality
    "ImageQuality", "detect_quality", "is_likely_empty", "calculate_edge_density",
    # Images
    "preprocess_image", "binarize", "denoise", "enhance_contrast", "otsu_threshold",
    # Scripts
    "Script", "detect_script", "select_best_language", "detect_and_select_language",
    # Languages
    "LanguageAssetManager", "SUPPORTED_LANGUAGES",
    # OCR
    "TesseractEngine", "OCRResult", "PageSegMode", "EngineInitError", "post_process",
    "RecognitionOrchestrator", "ScriptProfile", "TuningDecision", "candidate_modes",
    # Documents
    "DocumentPageExtractor", "PdfExtractionResult", "ProgressUpdate",
]
