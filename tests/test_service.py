"""
Tests for the background OCR service and the command-line helpers.
"""

import threading

import numpy as np
import pytest

from conftest import DEFAULT_TEXT, FakeEngineFactory, FakeRenderer, make_text_page


@pytest.fixture
def pipeline_config(tmp_path, tessdata_bundle):
    from scanocr.config import PipelineConfig

    config = PipelineConfig()
    config.assets.bundle_dir = tessdata_bundle
    config.assets.data_dir = tmp_path / "data"
    config.assets.min_size = 128
    return config


@pytest.fixture
def service(pipeline_config):
    from scanocr.service import OcrService

    renderer = FakeRenderer([make_text_page(), make_text_page()])
    factory = FakeEngineFactory(delay=0.005)
    with OcrService(pipeline_config, engine_factory=factory, renderer_factory=lambda source: renderer) as svc:
        svc.fake_factory = factory
        svc.fake_renderer = renderer
        yield svc


class TestOcrService:
    """Test the future-returning facade."""

    def test_initialize_and_recognize(self, service, pipeline_config):
        assert service.initialize(["eng"]).result(timeout=5)
        assert service.is_ready
        assert service.fake_factory.engines[0].tessdata_dir == pipeline_config.assets.tessdata_dir

        result = service.recognize(np.full((700, 700), 255, dtype=np.uint8)).result(timeout=5)

        assert result.text == DEFAULT_TEXT

    def test_recognize_before_initialize(self, service):
        assert service.recognize(np.zeros((100, 100), dtype=np.uint8)).result(timeout=5) is None

    def test_parallel_submissions_are_serialized(self, service):
        service.initialize(["eng"]).result(timeout=5)
        image = np.full((700, 700), 255, dtype=np.uint8)

        futures = [service.recognize(image) for _ in range(6)]
        results = [future.result(timeout=10) for future in futures]

        assert all(result is not None for result in results)
        assert service.fake_factory.max_in_flight == 1

    def test_recognize_files(self, service, tmp_path):
        import cv2

        good = tmp_path / "good.png"
        cv2.imwrite(str(good), make_text_page())
        service.initialize(["eng"]).result(timeout=5)

        results = service.recognize_files([good, tmp_path / "missing.png"])

        assert results[str(good)].text == DEFAULT_TEXT
        assert results[str(tmp_path / "missing.png")] is None

    def test_extract_document(self, service):
        service.initialize(["eng"]).result(timeout=5)
        updates = []

        result = service.extract_document("doc.pdf", ["eng"], on_progress=updates.append).result(timeout=10)

        assert result.page_count == 2
        assert result.pages_processed == 2
        assert [update.current_page for update in updates] == [1, 2]

    def test_extract_document_without_initialize(self, service):
        result = service.extract_document("doc.pdf", ["eng"]).result(timeout=10)

        assert service.fake_factory.languages_created == ["eng"]
        assert result.pages_processed == 2
        assert DEFAULT_TEXT in result.text

    def test_image_config_reaches_extractor(self, pipeline_config):
        from scanocr.service import OcrService

        pipeline_config.image.empty_variance_threshold = 0.0
        with OcrService(pipeline_config, engine_factory=FakeEngineFactory()) as svc:
            assert svc.extractor.image_config.empty_variance_threshold == 0.0
            assert svc.orchestrator.image_config is pipeline_config.image

    def test_extract_document_cancel_before_start(self, service):
        service.initialize(["eng"]).result(timeout=5)
        cancel = threading.Event()
        cancel.set()

        result = service.extract_document("doc.pdf", ["eng"], cancel_event=cancel).result(timeout=10)

        assert result.cancelled
        assert result.pages == []

    def test_reinitialize_and_release(self, service):
        service.initialize(["eng", "ara"]).result(timeout=5)
        assert service.reinitialize(["ara"]).result(timeout=5)
        assert service.orchestrator.language_string == "ara"

        service.release().result(timeout=5)
        assert not service.is_ready

    def test_shutdown_releases_engine(self, pipeline_config):
        from scanocr.service import OcrService

        factory = FakeEngineFactory()
        service = OcrService(pipeline_config, engine_factory=factory)
        service.initialize(["eng"]).result(timeout=5)

        service.shutdown()

        assert factory.engines[0].closed
        assert not service.is_ready


class TestConfig:
    """Test configuration helpers."""

    def test_env_overrides(self, monkeypatch, tmp_path):
        from scanocr.config import get_config

        monkeypatch.setenv("SCANOCR_TESSDATA_BUNDLE", str(tmp_path / "bundle"))
        monkeypatch.setenv("SCANOCR_DATA_DIR", str(tmp_path / "data"))
        monkeypatch.setenv("SCANOCR_WORKERS", "4")
        monkeypatch.setenv("SCANOCR_DEBUG", "true")

        config = get_config()

        assert config.assets.bundle_dir == tmp_path / "bundle"
        assert config.assets.tessdata_dir == tmp_path / "data" / "tessdata"
        assert config.workers == 4
        assert config.debug_mode

    def test_invalid_workers_ignored(self, monkeypatch):
        from scanocr.config import get_config, PipelineConfig

        monkeypatch.setenv("SCANOCR_WORKERS", "many")

        assert get_config().workers == PipelineConfig().workers

    def test_modes(self):
        from scanocr.config import languages_for_mode

        assert languages_for_mode("english_arabic") == ["eng", "ara"]
        with pytest.raises(ValueError):
            languages_for_mode("klingon")


class TestCli:
    """Test argument handling."""

    def test_resolve_languages(self):
        from scanocr.cli import setup_argparser, resolve_languages

        parser = setup_argparser()

        assert resolve_languages(parser.parse_args(["-i", "x.png"])) == ["eng"]
        assert resolve_languages(parser.parse_args(["-i", "x.png", "--lang", "ara", "eng"])) == ["ara", "eng"]
        assert resolve_languages(parser.parse_args(["-i", "x.png", "--mode", "arabic"])) == ["ara"]

    def test_lang_and_mode_exclusive(self):
        from scanocr.cli import setup_argparser

        with pytest.raises(SystemExit):
            setup_argparser().parse_args(["-i", "x.png", "--lang", "eng", "--mode", "arabic"])

    def test_select_log_level(self):
        import logging
        from scanocr.cli import setup_argparser, select_log_level

        parser = setup_argparser()

        assert select_log_level(parser.parse_args(["-i", "x.png"])) == logging.INFO
        assert select_log_level(parser.parse_args(["-i", "x.png", "-q"])) == logging.ERROR
        assert select_log_level(parser.parse_args(["-i", "x.png", "-v"])) == logging.DEBUG
        assert select_log_level(parser.parse_args(["-i", "x.png", "-q"]), debug_mode=True) == logging.DEBUG

    def test_unknown_input_fails(self, tmp_path):
        from scanocr.cli import setup_argparser, run_pipeline

        args = setup_argparser().parse_args(["-i", str(tmp_path / "notes.txt")])

        assert run_pipeline(args) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
