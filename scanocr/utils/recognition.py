"""
Recognition orchestrator for scanocr.

Provides:
- Script profiles (Arabic / Latin) fixing segmentation and dictionary policy
- Per-call tuning decisions (quality, edge density, segmentation mode)
- Confidence-gated retry across segmentation modes
- A stateful, single-flight wrapper around one engine instance
"""

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
import numpy as np

from ..config import (
    ARABIC_LANGUAGE,
    ARABIC_NON_DICT_PENALTY,
    LANGUAGE_SEPARATOR,
    DENSE_EDGE_DENSITY,
    SPARSE_EDGE_DENSITY,
    RETRY_CONFIDENCE_GAIN,
    RETRY_LENGTH_GAIN,
    RETRY_COMPARABLE_CONFIDENCE,
    ImageConfig,
    OCRConfig,
)
from .quality import ImageQuality, detect_quality, calculate_edge_density
from .languages import LanguageAssetManager
from .ocr_text import (
    EngineInitError,
    EngineOutput,
    OCRResult,
    PageSegMode,
    TesseractEngine,
    post_process,
)

logger = logging.getLogger(__name__)


# Garbage glyphs the engine should never emit. Kept free of quotes and
# backslashes since the config string is shell-split by pytesseract.
BLACKLIST_CHARS = "|[]{}<>^~©®™•§¶"


# ============================================================================
# Data Classes
# ============================================================================

class OrchestratorState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    RECOGNIZING = "recognizing"
    RELEASING = "releasing"


@dataclass(frozen=True)
class TuningDecision:
    """Engine tuning for a single recognition call."""
    quality: ImageQuality
    edge_density: float
    page_seg_mode: PageSegMode
    use_dictionary: bool

    def with_mode(self, page_seg_mode: PageSegMode) -> "TuningDecision":
        return replace(self, page_seg_mode=page_seg_mode)


class ScriptProfile:
    """
    Script-specific engine policy, fixed for the lifetime of an engine.

    Subclasses decide the segmentation mode for an image and the -c
    variables sent with each pass.
    """

    preserve_diacritics = False

    def decide(self, quality: ImageQuality, edge_density: float) -> TuningDecision:
        raise NotImplementedError

    def variables(self, decision: TuningDecision) -> Dict[str, str]:
        raise NotImplementedError

    @staticmethod
    def for_languages(languages: Sequence[str]) -> "ScriptProfile":
        if ARABIC_LANGUAGE in languages:
            return ArabicProfile()
        return LatinProfile()


@dataclass(frozen=True)
class ArabicProfile(ScriptProfile):
    """
    Arabic script: connected glyphs and dots above/below the baseline.

    Segmentation is always AUTO (sparse modes split ligatures), dictionary
    correction stays on, and the engine's own noise removal is disabled so
    dots survive.
    """
    non_dict_penalty: float = ARABIC_NON_DICT_PENALTY

    preserve_diacritics = True

    def decide(self, quality: ImageQuality, edge_density: float) -> TuningDecision:
        return TuningDecision(
            quality=quality,
            edge_density=edge_density,
            page_seg_mode=PageSegMode.AUTO,
            use_dictionary=True
        )

    def variables(self, decision: TuningDecision) -> Dict[str, str]:
        return {
            "load_system_dawg": "1",
            "load_freq_dawg": "1",
            "tessedit_enable_dict_correction": "1",
            "textord_force_make_prop_words": "1",
            "preserve_interword_spaces": "1",
            "language_model_penalty_non_dict_word": str(self.non_dict_penalty),
            "enable_noise_removal": "0",
            "tessedit_char_blacklist": BLACKLIST_CHARS,
        }


@dataclass(frozen=True)
class LatinProfile(ScriptProfile):
    """Latin (and other non-Arabic) scripts: segmentation follows the image."""
    dense_edge_density: float = DENSE_EDGE_DENSITY
    sparse_edge_density: float = SPARSE_EDGE_DENSITY

    def decide(self, quality: ImageQuality, edge_density: float) -> TuningDecision:
        if quality is ImageQuality.HIGH and edge_density >= self.dense_edge_density:
            mode = PageSegMode.SINGLE_BLOCK
        elif quality is ImageQuality.LOW and edge_density < self.sparse_edge_density:
            mode = PageSegMode.SPARSE_TEXT
        else:
            mode = PageSegMode.AUTO

        return TuningDecision(
            quality=quality,
            edge_density=edge_density,
            page_seg_mode=mode,
            use_dictionary=quality is not ImageQuality.LOW
        )

    def variables(self, decision: TuningDecision) -> Dict[str, str]:
        flag = "1" if decision.use_dictionary else "0"
        return {
            "load_system_dawg": flag,
            "load_freq_dawg": flag,
            "tessedit_char_blacklist": BLACKLIST_CHARS,
        }


def candidate_modes(languages: Sequence[str]) -> List[PageSegMode]:
    """
    Segmentation modes worth trying for a language set, in retry order.

    Sets containing Arabic never get a sparse mode.
    """
    if ARABIC_LANGUAGE in languages:
        return [PageSegMode.AUTO, PageSegMode.SINGLE_BLOCK, PageSegMode.SINGLE_COLUMN]
    return [
        PageSegMode.SINGLE_BLOCK,
        PageSegMode.AUTO,
        PageSegMode.SINGLE_COLUMN,
        PageSegMode.SPARSE_TEXT,
    ]


def is_better_pass(candidate: EngineOutput, best: EngineOutput) -> bool:
    """A retry pass wins on clearly higher confidence, or much more text at similar confidence."""
    if candidate.confidence >= best.confidence + RETRY_CONFIDENCE_GAIN:
        return True
    candidate_length = len(candidate.text.strip())
    best_length = len(best.text.strip())
    return (
        candidate_length > best_length
        and candidate_length >= best_length * RETRY_LENGTH_GAIN
        and abs(candidate.confidence - best.confidence) <= RETRY_COMPARABLE_CONFIDENCE
    )


# ============================================================================
# Recognition Orchestrator
# ============================================================================

EngineFactory = Callable[[str, Optional[Path]], TesseractEngine]


class RecognitionOrchestrator:
    """
    Owns one engine instance and serializes every call into it.

    initialize / recognize / release / reinitialize all run under one lock,
    so at most one call is inside the engine at any time. Public methods
    report failure through their return value and never raise.

    Args:
        asset_manager: Materializes traineddata files before the engine starts
        engine_factory: Callable (language_string, tessdata_dir) -> engine
        config: Recognition thresholds
        image_config: Preprocessing limits used by recognize_file
    """

    def __init__(
        self,
        asset_manager: LanguageAssetManager,
        engine_factory: Optional[EngineFactory] = None,
        config: Optional[OCRConfig] = None,
        image_config: Optional[ImageConfig] = None
    ):
        self.asset_manager = asset_manager
        self.config = config or OCRConfig()
        self.image_config = image_config or ImageConfig()
        self.engine_factory = engine_factory or self._default_engine_factory

        self._lock = threading.Lock()
        self._engine = None
        self._state = OrchestratorState.UNINITIALIZED
        self._languages: Tuple[str, ...] = ()
        self._language_string = ""
        self._profile: Optional[ScriptProfile] = None

    def _default_engine_factory(self, language: str, tessdata_dir: Optional[Path]) -> TesseractEngine:
        return TesseractEngine(
            language=language,
            tessdata_dir=tessdata_dir,
            oem=self.config.tesseract_oem,
            tesseract_cmd=self.config.tesseract_cmd
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._engine is not None and self._state in (
            OrchestratorState.READY, OrchestratorState.RECOGNIZING
        )

    @property
    def languages(self) -> List[str]:
        return list(self._languages)

    @property
    def language_string(self) -> str:
        return self._language_string

    @property
    def profile(self) -> Optional[ScriptProfile]:
        return self._profile

    @property
    def has_arabic(self) -> bool:
        return ARABIC_LANGUAGE in self._languages

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, languages: Sequence[str]) -> bool:
        """
        Prepare language assets and start the engine.

        Returns:
            True when the orchestrator is READY for the requested languages
        """
        with self._lock:
            return self._initialize_locked(languages)

    def release(self) -> None:
        """Close the engine and forget the language set. Idempotent."""
        with self._lock:
            self._release_locked()

    def reinitialize(self, languages: Sequence[str]) -> bool:
        """Release and initialize again with no call able to run in between."""
        with self._lock:
            self._release_locked()
            return self._initialize_locked(languages)

    def _initialize_locked(self, languages: Sequence[str]) -> bool:
        if not languages:
            logger.error("Cannot initialize without languages")
            return False

        if self._engine is not None:
            self._release_locked()

        self._state = OrchestratorState.INITIALIZING
        try:
            if not self.asset_manager.ensure_available(languages):
                logger.error(f"Failed to prepare language data for {list(languages)}")
                self._state = OrchestratorState.UNINITIALIZED
                return False

            language_string = self.asset_manager.language_selector_string(languages)
            codes = tuple(language_string.split(LANGUAGE_SEPARATOR))
            logger.info(f"Initializing Tesseract with languages: {language_string}")

            self._engine = self.engine_factory(language_string, self.asset_manager.data_dir)
            self._languages = codes
            self._language_string = language_string
            self._profile = ScriptProfile.for_languages(codes)
            self._state = OrchestratorState.READY

            logger.info(f"Tesseract ready ({type(self._profile).__name__})")
            return True
        except EngineInitError as e:
            logger.error(f"Tesseract initialization failed: {e}")
        except Exception as e:
            logger.error(f"Unexpected error during initialization: {e}")

        self._engine = None
        self._state = OrchestratorState.UNINITIALIZED
        return False

    def _release_locked(self) -> None:
        if self._engine is None and self._state is OrchestratorState.UNINITIALIZED:
            return

        self._state = OrchestratorState.RELEASING
        try:
            if self._engine is not None:
                self._engine.close()
            logger.debug("Tesseract resources released")
        except Exception as e:
            logger.error(f"Error releasing Tesseract: {e}")
        finally:
            self._engine = None
            self._languages = ()
            self._language_string = ""
            self._profile = None
            self._state = OrchestratorState.UNINITIALIZED

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    def recognize(
        self,
        image: np.ndarray,
        quality: Optional[ImageQuality] = None
    ) -> Optional[OCRResult]:
        """
        Recognize text in an already preprocessed image.

        Args:
            image: Preprocessed raster
            quality: Quality tier from preprocessing; detected when None

        Returns:
            OCRResult, or None when not initialized or the engine failed
        """
        with self._lock:
            if self._engine is None or self._state is not OrchestratorState.READY:
                logger.error("Recognizer not initialized")
                return None

            self._state = OrchestratorState.RECOGNIZING
            try:
                return self._recognize_locked(image, quality)
            except Exception as e:
                logger.error(f"OCR recognition failed: {e}")
                return None
            finally:
                self._state = OrchestratorState.READY

    def _recognize_locked(self, image: np.ndarray, quality: Optional[ImageQuality]) -> OCRResult:
        start_time = time.time()

        if quality is None:
            quality = detect_quality(image)
        decision = self._profile.decide(quality, calculate_edge_density(image))
        logger.debug(
            f"Tuning: quality={decision.quality.name}, edges={decision.edge_density:.3f}, "
            f"psm={decision.page_seg_mode.name}, dictionary={decision.use_dictionary}"
        )

        best = self._engine.recognize(image, decision.page_seg_mode, self._profile.variables(decision))

        if (best.confidence < self.config.retry_confidence_floor
                and len(best.text.strip()) < self.config.retry_text_length):
            best = self._retry(image, decision, best)

        processing_time = int((time.time() - start_time) * 1000)
        logger.debug(f"Raw OCR completed in {processing_time}ms, confidence: {best.confidence}%")

        if best.confidence < self.config.min_confidence and len(best.text) < self.config.min_text_length:
            logger.warning(f"OCR confidence too low ({best.confidence}%), likely garbage")
            return OCRResult(
                text="",
                confidence=best.confidence,
                languages=self._languages,
                processing_time_ms=processing_time
            )

        cleaned = post_process(best.text)
        logger.debug(f"OCR completed. Cleaned text length: {len(cleaned)}")

        return OCRResult(
            text=cleaned,
            confidence=best.confidence,
            languages=self._languages,
            processing_time_ms=processing_time
        )

    def _retry(self, image: np.ndarray, decision: TuningDecision, best: EngineOutput) -> EngineOutput:
        logger.info(
            f"Low confidence ({best.confidence}%) with short text, retrying other segmentation modes"
        )
        for mode in candidate_modes(self._languages):
            if mode == decision.page_seg_mode:
                continue
            retry_decision = decision.with_mode(mode)
            candidate = self._engine.recognize(image, mode, self._profile.variables(retry_decision))
            logger.debug(f"Retry {mode.name}: confidence={candidate.confidence}, length={len(candidate.text)}")
            if is_better_pass(candidate, best):
                best = candidate
        if best.page_seg_mode is not None:
            logger.info(f"Keeping {best.page_seg_mode.name} pass, confidence: {best.confidence}%")
        return best

    def recognize_file(self, path: Union[str, Path]) -> Optional[OCRResult]:
        """
        Decode, preprocess and recognize an image file.

        Returns:
            OCRResult, or None if the file cannot be decoded or preprocessed
        """
        from .io import load_image
        from .images import preprocess_image

        if not self.is_ready:
            logger.error("Recognizer not initialized")
            return None

        profile = self._profile
        try:
            image = load_image(path)
            preprocessed = preprocess_image(
                image,
                preserve_diacritics=bool(profile and profile.preserve_diacritics),
                max_dimension=self.image_config.max_dimension,
                min_dimension=self.image_config.min_dimension,
                contrast_factors=self.image_config.contrast_factors
            )
            del image
        except Exception as e:
            logger.error(f"Image preprocessing failed: {e}")
            return None

        try:
            return self.recognize(preprocessed.image, quality=preprocessed.quality)
        finally:
            del preprocessed
