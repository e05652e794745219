"""Tests for the Tesseract backend. pytesseract is mocked."""

import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from subtrans.backends.base import Language
from subtrans.backends.ocr import TesseractOCRBackend, clean_ocr_text
from subtrans.capture import CaptureRegion
from subtrans.errors import OcrFault
from subtrans.preprocess import ProcessedFrame


@pytest.fixture
def frame():
    return ProcessedFrame(
        image=np.zeros((10, 40), dtype=np.uint8),
        scale=1.0,
        captured_at=0.0,
        region=CaptureRegion(0, 0, 40, 10),
    )


@pytest.fixture
def mock_pytesseract():
    module = MagicMock()
    module.get_tesseract_version.return_value = "5.3.0"
    with patch.dict(sys.modules, {"pytesseract": module}):
        yield module


def tesseract_data(words):
    """Build an image_to_data dict from (text, conf, line_num) tuples."""
    return {
        "text": [w[0] for w in words],
        "conf": [w[1] for w in words],
        "block_num": [1] * len(words),
        "par_num": [1] * len(words),
        "line_num": [w[2] for w in words],
    }


class TestCleanOcrText:
    """Tests for clean_ocr_text()."""

    def test_joins_lines_and_collapses_whitespace(self):
        assert clean_ocr_text("Hello\n  there\tfriend ") == "Hello there friend"

    def test_strips_control_characters(self):
        assert clean_ocr_text("Hel\x0clo") == "Hello"

    def test_lone_pipe_becomes_i(self):
        assert clean_ocr_text("| am here") == "I am here"

    def test_empty(self):
        assert clean_ocr_text("") == ""


class TestLanguage:
    """Tests for Language.from_code()."""

    def test_regional_code(self):
        assert Language.from_code("pt-BR") == Language.PORTUGUESE
        assert Language.from_code("EN") == Language.ENGLISH

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            Language.from_code("xx")


class TestTesseractOCRBackend:
    """Tests for TesseractOCRBackend."""

    def test_recognize_filters_low_confidence(self, frame, mock_pytesseract):
        mock_pytesseract.image_to_data.return_value = tesseract_data([
            ("Hello", 95, 1),
            ("world", 85, 1),
            ("", -1, 1),
            ("~~", 20, 1),
            ("Next", 90, 2),
        ])

        result = TesseractOCRBackend(language=Language.ENGLISH).recognize(frame)

        assert result.text == "Hello world Next"
        assert result.confidence == pytest.approx(0.9)
        assert mock_pytesseract.image_to_data.call_args.kwargs["lang"] == "eng"

    def test_no_text(self, frame, mock_pytesseract):
        mock_pytesseract.image_to_data.return_value = tesseract_data([("", -1, 1)])

        result = TesseractOCRBackend().recognize(frame)

        assert result.text == ""
        assert result.confidence is None

    def test_language_mapping(self, frame, mock_pytesseract):
        mock_pytesseract.image_to_data.return_value = tesseract_data([])

        TesseractOCRBackend(language=Language.JAPANESE).recognize(frame)

        assert mock_pytesseract.image_to_data.call_args.kwargs["lang"] == "jpn"

    def test_missing_tesseract(self, mock_pytesseract):
        mock_pytesseract.get_tesseract_version.side_effect = OSError("not found")

        backend = TesseractOCRBackend()
        with pytest.raises(OcrFault):
            backend.load()
        assert backend.is_loaded() is False

    def test_engine_error(self, frame, mock_pytesseract):
        mock_pytesseract.image_to_data.side_effect = RuntimeError("crash")

        with pytest.raises(OcrFault):
            TesseractOCRBackend().recognize(frame)
