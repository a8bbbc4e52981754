"""
Tests for text OCR module.
"""

import pytest
import numpy as np


class TestOCRResult:
    """Test OCRResult class."""

    def test_ocr_result_creation(self):
        """Test OCR result creation."""
        from scanocr.utils.ocr_text import OCRResult

        result = OCRResult(
            text="Hello World",
            confidence=95,
            languages=("eng",),
            processing_time_ms=120
        )

        assert result.text == "Hello World"
        assert result.confidence == 95
        assert result.is_high_confidence is True
        assert result.is_empty is False

    def test_ocr_result_is_frozen(self):
        import dataclasses
        from scanocr.utils.ocr_text import OCRResult

        result = OCRResult(text="x", confidence=10)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.text = "y"

    def test_ocr_result_to_dict(self):
        """Test OCR result serialization."""
        from scanocr.utils.ocr_text import OCRResult

        data = OCRResult("Test", 85, ("eng", "ara"), 42).to_dict()

        assert data == {
            "text": "Test",
            "confidence": 85,
            "languages": ["eng", "ara"],
            "processing_time_ms": 42,
        }


class TestAssembleText:
    """Test rebuilding text from image_to_data output."""

    @pytest.fixture
    def data(self):
        return {
            "text":      ["", "Hello", "World", "", "Second", "line", "", "New", "para", "x"],
            "conf":      [-1, 90, 80, -1, 70, 60, -1, 50, 40, -1],
            "block_num": [1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
            "par_num":   [1, 1, 1, 1, 1, 1, 2, 2, 2, 2],
            "line_num":  [1, 1, 1, 2, 2, 2, 1, 1, 1, 1],
        }

    def test_lines_and_paragraphs(self, data):
        from scanocr.utils.ocr_text import assemble_text

        text, confidence = assemble_text(data)

        assert text == "Hello World\nSecond line\n\nNew para"
        assert confidence == 65

    def test_empty(self):
        from scanocr.utils.ocr_text import assemble_text

        empty = {"text": [], "conf": [], "block_num": [], "par_num": [], "line_num": []}
        assert assemble_text(empty) == ("", 0)


class TestPostProcess:
    """Test text cleanup rules."""

    def test_garbage_removed(self):
        from scanocr.utils.ocr_text import post_process

        assert post_process("Hel|lo [World]") == "Hello World"

    def test_digits_preserved(self):
        from scanocr.utils.ocr_text import post_process

        assert post_process("Order 0010 at 10:00") == "Order 0010 at 10:00"

    def test_whitespace_collapsed(self):
        from scanocr.utils.ocr_text import post_process

        assert post_process("a  \t b\n\n\n\nc") == "a b\nc"

    def test_symbol_lines_dropped(self):
        from scanocr.utils.ocr_text import post_process

        assert post_process("Title\n---\n.\n!!\nBody") == "Title\nBody"

    def test_arabic_lines_marked(self):
        from scanocr.utils.ocr_text import post_process
        from scanocr.config import RTL_MARK

        result = post_process("English line\nمرحبا بالعالم")

        lines = result.split("\n")
        assert lines[0] == "English line"
        assert lines[1] == RTL_MARK + "مرحبا بالعالم"

    @pytest.mark.parametrize("text", ["", "   ", "\n\n"])
    def test_blank(self, text):
        from scanocr.utils.ocr_text import post_process

        assert post_process(text) == ""

    def test_contains_arabic(self):
        from scanocr.utils.ocr_text import contains_arabic

        assert contains_arabic("abc ب")
        assert not contains_arabic("abc")


class TestTesseractEngine:
    """Test the Tesseract adapter."""

    @pytest.fixture
    def text_image(self):
        """Create a simple image with text."""
        import cv2

        img = np.ones((200, 800), dtype=np.uint8) * 255
        cv2.putText(
            img, "Hello World", (20, 120),
            cv2.FONT_HERSHEY_SIMPLEX, 2.5, 0, 4
        )
        return img

    def test_build_config(self):
        from pathlib import Path
        from scanocr.utils.ocr_text import TesseractEngine, PageSegMode

        engine = TesseractEngine.__new__(TesseractEngine)
        engine.oem = 3
        engine.tessdata_dir = Path("/tmp/tessdata")

        config = engine.build_config(PageSegMode.SINGLE_BLOCK, {"load_system_dawg": "0"})

        assert config == '--oem 3 --psm 6 --tessdata-dir "/tmp/tessdata" -c load_system_dawg=0'

    def test_build_config_without_tessdata(self):
        from scanocr.utils.ocr_text import TesseractEngine, PageSegMode

        engine = TesseractEngine.__new__(TesseractEngine)
        engine.oem = 1
        engine.tessdata_dir = None

        assert engine.build_config(PageSegMode.AUTO, {}) == "--oem 1 --psm 3"

    def test_sparse_modes(self):
        from scanocr.utils.ocr_text import PageSegMode

        assert PageSegMode.SPARSE_TEXT.is_sparse
        assert PageSegMode.SPARSE_TEXT_OSD.is_sparse
        assert not PageSegMode.AUTO.is_sparse

    def test_tesseract_recognize(self, text_image):
        """Test Tesseract recognition."""
        from scanocr.utils.ocr_text import TesseractEngine, EngineInitError, PageSegMode

        try:
            engine = TesseractEngine("eng")
        except EngineInitError:
            pytest.skip("Tesseract not available")

        output = engine.recognize(text_image, PageSegMode.SINGLE_BLOCK)

        assert isinstance(output.confidence, int)
        assert 0 <= output.confidence <= 100
        assert output.page_seg_mode is PageSegMode.SINGLE_BLOCK

    def test_closed_engine_refuses(self, text_image):
        from scanocr.utils.ocr_text import TesseractEngine

        engine = TesseractEngine.__new__(TesseractEngine)
        engine._closed = False
        engine.close()

        assert engine.closed
        with pytest.raises(RuntimeError):
            engine.recognize(text_image)

    def test_missing_language_raises(self):
        from scanocr.utils.ocr_text import TesseractEngine, EngineInitError

        with pytest.raises(EngineInitError):
            TesseractEngine("not_a_language")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
