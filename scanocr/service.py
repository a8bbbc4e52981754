"""
Background OCR service.

Wraps one RecognitionOrchestrator and one DocumentPageExtractor behind a
thread pool so callers never block on the engine. Every method returns a
concurrent.futures.Future.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union
import numpy as np

from .config import PipelineConfig, get_config
from .utils.document import DocumentPageExtractor, PdfExtractionResult, ProgressUpdate
from .utils.languages import LanguageAssetManager
from .utils.ocr_text import OCRResult
from .utils.quality import ImageQuality
from .utils.recognition import RecognitionOrchestrator

logger = logging.getLogger(__name__)


class OcrService:
    """
    Consumer-facing OCR facade.

    Args:
        config: Pipeline configuration (defaults to get_config())
        engine_factory: Optional engine factory passed to the orchestrator
        renderer_factory: Optional PDF renderer factory passed to the extractor
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        engine_factory=None,
        renderer_factory=None
    ):
        self.config = config or get_config()

        asset_manager = LanguageAssetManager(
            bundle_dir=self.config.assets.bundle_dir,
            data_dir=self.config.assets.tessdata_dir,
            min_size=self.config.assets.min_size
        )
        self.orchestrator = RecognitionOrchestrator(
            asset_manager,
            engine_factory=engine_factory,
            config=self.config.ocr,
            image_config=self.config.image
        )

        extractor_kwargs = {"config": self.config.document, "image_config": self.config.image}
        if renderer_factory is not None:
            extractor_kwargs["renderer_factory"] = renderer_factory
        self.extractor = DocumentPageExtractor(self.orchestrator, **extractor_kwargs)

        self._executor = ThreadPoolExecutor(
            max_workers=max(1, self.config.workers),
            thread_name_prefix="scanocr"
        )

    # ------------------------------------------------------------------
    # Engine lifecycle
    # ------------------------------------------------------------------

    def initialize(self, languages: Sequence[str]) -> "Future[bool]":
        return self._executor.submit(self.orchestrator.initialize, list(languages))

    def reinitialize(self, languages: Sequence[str]) -> "Future[bool]":
        return self._executor.submit(self.orchestrator.reinitialize, list(languages))

    def release(self) -> "Future[None]":
        return self._executor.submit(self.orchestrator.release)

    @property
    def is_ready(self) -> bool:
        return self.orchestrator.is_ready

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    def recognize(
        self,
        image: np.ndarray,
        quality: Optional[ImageQuality] = None
    ) -> "Future[Optional[OCRResult]]":
        """Recognize an already preprocessed raster."""
        return self._executor.submit(self.orchestrator.recognize, image, quality)

    def recognize_file(self, path: Union[str, Path]) -> "Future[Optional[OCRResult]]":
        """Decode, preprocess and recognize an image file."""
        return self._executor.submit(self.orchestrator.recognize_file, path)

    def recognize_files(self, paths: Sequence[Union[str, Path]]) -> Dict[str, Optional[OCRResult]]:
        """
        Recognize several image files, blocking until all are done.

        Calls still enter the engine one at a time; the pool only keeps
        decoding and preprocessing off the caller's thread.
        """
        results: Dict[str, Optional[OCRResult]] = {}
        future_to_path = {self.recognize_file(path): str(path) for path in paths}

        for future in as_completed(future_to_path):
            path = future_to_path[future]
            try:
                results[path] = future.result()
            except Exception as e:
                logger.error(f"Failed to process {path}: {e}")
                results[path] = None

        return results

    def extract_document(
        self,
        source: Union[str, Path],
        languages: Sequence[str],
        on_progress: Optional[Callable[[ProgressUpdate], None]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> "Future[PdfExtractionResult]":
        """Extract text from a PDF page by page."""
        return self._executor.submit(
            self.extractor.extract, source, list(languages), on_progress, cancel_event
        )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Release the engine and stop the worker pool."""
        try:
            self._executor.submit(self.orchestrator.release).result()
        except RuntimeError:
            # Pool already shut down
            self.orchestrator.release()
        self._executor.shutdown(wait=wait)
        logger.debug("OCR service shut down")

    def __enter__(self) -> "OcrService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
