"""
Multi-page document extraction.

Provides:
- Page-sequential PDF text extraction (one page raster alive at a time)
- Script detection on the first page to narrow the language set
- Blank page skipping, per-page error isolation and cooperative cancellation
- Progress callbacks and aggregated confidence
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
import numpy as np

from ..config import DEFAULT_LANGUAGE, LANGUAGE_SEPARATOR, DocumentConfig, ImageConfig
from .images import preprocess_image
from .io import PdfPageRenderer, make_thumbnail
from .languages import language_selector_string
from .quality import is_likely_empty
from .recognition import RecognitionOrchestrator
from .scripts import detect_and_select_language

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ProgressUpdate:
    """Progress report emitted while a document is processed."""
    current_page: int
    total_pages: int
    extracted_text: str = ""
    status_message: str = ""
    page_confidence: int = 0


@dataclass
class PageRecord:
    """Outcome of one page."""
    page_number: int
    status: str  # "ok", "blank" or "error"
    confidence: int = 0
    text: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "page_number": self.page_number,
            "status": self.status,
            "confidence": self.confidence,
            "text": self.text,
        }
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class PdfExtractionResult:
    """Aggregated result of a document extraction."""
    text: str
    thumbnail: Optional[np.ndarray] = None
    detected_language: str = DEFAULT_LANGUAGE
    average_confidence: int = 0
    page_count: int = 0
    pages: List[PageRecord] = field(default_factory=list)
    cancelled: bool = False

    @property
    def pages_processed(self) -> int:
        return sum(1 for page in self.pages if page.status == "ok")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "detected_language": self.detected_language,
            "average_confidence": self.average_confidence,
            "page_count": self.page_count,
            "cancelled": self.cancelled,
            "pages": [page.to_dict() for page in self.pages],
        }


ProgressCallback = Callable[[ProgressUpdate], None]


# ============================================================================
# Document Page Extractor
# ============================================================================

class DocumentPageExtractor:
    """
    Drives preprocessing and recognition across the pages of a PDF.

    Pages are rendered, recognized and dropped one at a time. The
    orchestrator is (re)initialized with the enabled languages when it
    holds any other set, and may then be narrowed to a single detected
    language.

    Args:
        orchestrator: Recognition orchestrator
        renderer_factory: Callable path -> renderer (page_count, render_page, close)
        config: Rendering limits
        image_config: Preprocessing limits and blank-page threshold
    """

    def __init__(
        self,
        orchestrator: RecognitionOrchestrator,
        renderer_factory: Callable[[Union[str, Path]], Any] = PdfPageRenderer,
        config: Optional[DocumentConfig] = None,
        image_config: Optional[ImageConfig] = None
    ):
        self.orchestrator = orchestrator
        self.renderer_factory = renderer_factory
        self.config = config or DocumentConfig()
        self.image_config = image_config or ImageConfig()

    def extract(
        self,
        source: Union[str, Path],
        enabled_languages: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> PdfExtractionResult:
        """
        Extract text from every page of a PDF.

        Args:
            source: Path to the PDF
            enabled_languages: User's enabled language codes, in preference order
            on_progress: Called with a ProgressUpdate after each step
            cancel_event: Checked between pages; when set, the partial result is returned

        Returns:
            PdfExtractionResult; failures are reported in its text, never raised
        """
        detected_language = enabled_languages[0] if enabled_languages else DEFAULT_LANGUAGE

        try:
            renderer = self.renderer_factory(source)
        except Exception as e:
            logger.error(f"Failed to load PDF: {e}")
            return PdfExtractionResult(
                text=f"Error: Could not load PDF file: {e}",
                detected_language=detected_language
            )

        parts: List[str] = []
        pages: List[PageRecord] = []
        thumbnail = None
        page_count = 0
        cancelled = False

        try:
            page_count = renderer.page_count
            logger.info(
                f"Starting PDF extraction. Total pages: {page_count}, "
                f"enabled languages: {list(enabled_languages)}"
            )

            if not self._prepare_engine(enabled_languages):
                return PdfExtractionResult(
                    text=f"Error: Could not initialize OCR for languages: {list(enabled_languages)}",
                    detected_language=detected_language,
                    page_count=page_count
                )

            if page_count > 0 and len(enabled_languages) > 1:
                detected_language = self._detect_language(
                    renderer, page_count, enabled_languages, detected_language, on_progress
                )

            for index in range(page_count):
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Extraction cancelled after {index} of {page_count} pages")
                    cancelled = True
                    break

                record, thumbnail = self._process_page(renderer, index, page_count, thumbnail, on_progress)
                pages.append(record)

                if record.status == "ok" and record.text:
                    parts.append(f"--- Page {record.page_number} ---\n{record.text}\n\n")
                elif record.status == "error":
                    parts.append(f"--- Page {record.page_number} (Error) ---\n\n")

            ok_pages = [page for page in pages if page.status == "ok"]
            average_confidence = (
                sum(page.confidence for page in ok_pages) // len(ok_pages) if ok_pages else 0
            )

            return PdfExtractionResult(
                text="".join(parts),
                thumbnail=thumbnail,
                detected_language=detected_language,
                average_confidence=average_confidence,
                page_count=page_count,
                pages=pages,
                cancelled=cancelled
            )
        except Exception as e:
            logger.error(f"Critical PDF extraction error: {e}")
            return PdfExtractionResult(
                text=f"Error processing PDF: {e}",
                thumbnail=thumbnail,
                detected_language=detected_language,
                page_count=page_count,
                pages=pages
            )
        finally:
            try:
                renderer.close()
            except Exception as e:
                logger.error(f"Error closing PDF resources: {e}")

    def _prepare_engine(self, enabled_languages: Sequence[str]) -> bool:
        """Make sure the orchestrator holds exactly the enabled language set."""
        wanted = language_selector_string(enabled_languages).split(LANGUAGE_SEPARATOR)
        if self.orchestrator.is_ready and self.orchestrator.languages == wanted:
            return True

        logger.info(f"Configuring OCR for enabled languages: {wanted}")
        return self.orchestrator.reinitialize(wanted)

    def _detect_language(
        self,
        renderer,
        page_count: int,
        enabled_languages: Sequence[str],
        fallback: str,
        on_progress: Optional[ProgressCallback]
    ) -> str:
        """Recognize a low-resolution first page and narrow to its script's language."""
        self._report(on_progress, ProgressUpdate(0, page_count, "", "Detecting document language..."))

        try:
            sample = renderer.render_page(
                0,
                dpi=self.config.detection_dpi,
                max_dimension=self.config.detection_max_dimension
            )
            preprocessed = self._preprocess(sample)
            del sample
            sample_result = self.orchestrator.recognize(preprocessed.image, quality=preprocessed.quality)
            del preprocessed
        except Exception as e:
            logger.warning(f"Language detection failed, keeping enabled languages: {e}")
            return fallback

        if sample_result is None or len(sample_result.text) <= self.config.min_detection_text_length:
            logger.debug("Sample text too short for script detection, keeping enabled languages")
            return fallback

        language = detect_and_select_language(sample_result.text, enabled_languages)
        logger.info(f"Detected language: {language} from sample: '{sample_result.text[:50]}...'")

        if language != LANGUAGE_SEPARATOR.join(enabled_languages):
            self._report(on_progress, ProgressUpdate(0, page_count, "", f"Optimizing for {language}..."))
            if not self.orchestrator.reinitialize([language]):
                logger.warning(f"Reinitialization for '{language}' failed, restoring enabled languages")
                self.orchestrator.initialize(list(enabled_languages))
                return fallback

        return language

    def _process_page(
        self,
        renderer,
        index: int,
        page_count: int,
        thumbnail: Optional[np.ndarray],
        on_progress: Optional[ProgressCallback]
    ):
        page_number = index + 1
        page = None
        try:
            page = renderer.render_page(
                index,
                dpi=self.config.target_dpi,
                max_dimension=self.config.max_page_dimension
            )

            if thumbnail is None:
                thumbnail = make_thumbnail(page, self.config.thumbnail_width)

            if is_likely_empty(page, self.image_config.empty_variance_threshold):
                logger.debug(f"Page {page_number} appears empty, skipping OCR")
                self._report(on_progress, ProgressUpdate(
                    current_page=page_number,
                    total_pages=page_count,
                    extracted_text="",
                    status_message=f"Page {page_number} is blank",
                    page_confidence=0
                ))
                return PageRecord(page_number=page_number, status="blank"), thumbnail

            preprocessed = self._preprocess(page)
            page = None
            result = self.orchestrator.recognize(preprocessed.image, quality=preprocessed.quality)
            del preprocessed

            text = result.text if result is not None else ""
            confidence = result.confidence if result is not None else 0

            self._report(on_progress, ProgressUpdate(
                current_page=page_number,
                total_pages=page_count,
                extracted_text=text,
                status_message=f"Processing page {page_number} of {page_count}",
                page_confidence=confidence
            ))
            logger.debug(f"Page {page_number}/{page_count} processed, confidence: {confidence}%")

            return PageRecord(
                page_number=page_number,
                status="ok",
                confidence=confidence,
                text=text
            ), thumbnail

        except Exception as e:
            logger.error(f"Error processing page {page_number}: {e}")
            self._report(on_progress, ProgressUpdate(page_number, page_count, "", f"Error on page {page_number}"))
            return PageRecord(page_number=page_number, status="error", error=str(e)), thumbnail
        finally:
            page = None

    def _preprocess(self, page: np.ndarray):
        profile = self.orchestrator.profile
        return preprocess_image(
            page,
            preserve_diacritics=bool(profile and profile.preserve_diacritics),
            max_dimension=self.image_config.max_dimension,
            min_dimension=self.image_config.min_dimension,
            contrast_factors=self.image_config.contrast_factors
        )

    @staticmethod
    def _report(on_progress: Optional[ProgressCallback], update: ProgressUpdate) -> None:
        if on_progress is None:
            return
        try:
            on_progress(update)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
