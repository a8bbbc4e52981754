"""
Shared fixtures: a scripted stand-in for the Tesseract engine, an in-memory
page renderer and a throwaway traineddata bundle.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pytest

from scanocr.utils.languages import LanguageAssetManager
from scanocr.utils.ocr_text import EngineInitError, EngineOutput, PageSegMode
from scanocr.utils.recognition import RecognitionOrchestrator


DEFAULT_TEXT = "Hello World sample text recognized"


@dataclass
class EngineCall:
    language: str
    page_seg_mode: PageSegMode
    variables: Dict[str, str]
    shape: Tuple[int, ...] = ()


class FakeEngine:
    """Records every pass; output comes from the owning factory's responder."""

    def __init__(self, factory: "FakeEngineFactory", language: str, tessdata_dir):
        self.factory = factory
        self.language = language
        self.tessdata_dir = tessdata_dir
        self.closed = False

    def recognize(self, image, page_seg_mode=PageSegMode.AUTO, variables=None):
        factory = self.factory
        with factory.lock:
            factory.in_flight += 1
            factory.max_in_flight = max(factory.max_in_flight, factory.in_flight)
        try:
            if factory.delay:
                time.sleep(factory.delay)
            factory.calls.append(EngineCall(self.language, page_seg_mode, dict(variables or {}), image.shape))
            return factory.responder(self.language, page_seg_mode, variables or {})
        finally:
            with factory.lock:
                factory.in_flight -= 1

    def close(self):
        self.closed = True


class FakeEngineFactory:
    """Callable (language_string, tessdata_dir) -> FakeEngine."""

    def __init__(
        self,
        responder: Optional[Callable[[str, PageSegMode, Dict[str, str]], EngineOutput]] = None,
        fail: bool = False,
        delay: float = 0.0
    ):
        self.responder = responder or (lambda language, psm, variables: EngineOutput(DEFAULT_TEXT, 90))
        self.fail = fail
        self.delay = delay
        self.engines: List[FakeEngine] = []
        self.calls: List[EngineCall] = []
        self.lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0

    def __call__(self, language, tessdata_dir):
        if self.fail:
            raise EngineInitError("tesseract missing")
        engine = FakeEngine(self, language, tessdata_dir)
        self.engines.append(engine)
        return engine

    @property
    def languages_created(self) -> List[str]:
        return [engine.language for engine in self.engines]


class FakeRenderer:
    """In-memory page source with the PdfPageRenderer interface."""

    def __init__(self, pages: List[np.ndarray], failing_pages=()):
        self.pages = pages
        self.failing_pages = set(failing_pages)
        self.rendered = []
        self.closed = False

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def render_page(self, index, dpi=300, max_dimension=2480):
        self.rendered.append((index, dpi, max_dimension))
        if index in self.failing_pages:
            raise RuntimeError(f"cannot render page {index + 1}")
        return self.pages[index].copy()

    def close(self):
        self.closed = True


def make_text_page(height: int = 800, width: int = 600, lines: int = 18) -> np.ndarray:
    """White BGR page covered in lines of dark text."""
    import cv2

    page = np.ones((height, width, 3), dtype=np.uint8) * 255
    for i in range(lines):
        y = 40 + i * (height - 60) // lines
        cv2.putText(
            page, f"Sample text line {i + 1} for OCR", (20, y),
            cv2.FONT_HERSHEY_SIMPLEX, 0.9, (0, 0, 0), 2
        )
    return page


def make_blank_page(height: int = 800, width: int = 600) -> np.ndarray:
    return np.ones((height, width, 3), dtype=np.uint8) * 255


@pytest.fixture
def tessdata_bundle(tmp_path):
    """A bundle directory with small but valid-sized traineddata files."""
    bundle = tmp_path / "bundle"
    bundle.mkdir()
    for code in ("eng", "ara", "fra", "deu"):
        (bundle / f"{code}.traineddata").write_bytes(b"\x00" * 256)
    return bundle


@pytest.fixture
def asset_manager(tmp_path, tessdata_bundle):
    return LanguageAssetManager(
        bundle_dir=tessdata_bundle,
        data_dir=tmp_path / "tessdata",
        min_size=128
    )


@pytest.fixture
def engine_factory():
    return FakeEngineFactory()


@pytest.fixture
def orchestrator(asset_manager, engine_factory):
    return RecognitionOrchestrator(asset_manager, engine_factory=engine_factory)
