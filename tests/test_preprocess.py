"""Tests for the preprocess module."""

import cv2
import numpy as np
import pytest

from subtrans.capture import CaptureMode, CaptureRegion, RawFrame
from subtrans.config import PreprocessConfig
from subtrans.preprocess import apply_chain, process, save_debug_image


@pytest.fixture
def frame():
    rng = np.random.default_rng(42)
    image = rng.integers(0, 256, size=(20, 30, 4), dtype=np.uint8)
    return RawFrame(image=image, captured_at=12.5, region=CaptureRegion(0, 0, 30, 20, CaptureMode.REGION))


class TestProcess:
    """Tests for process()."""

    def test_same_input_same_bytes(self, frame):
        """Two runs with the same config produce byte-identical output."""
        config = PreprocessConfig(grayscale=True, threshold=128, upscale=2.0)

        first = process(frame, config)
        second = process(frame, config)

        assert first.image.tobytes() == second.image.tobytes()

    def test_threshold_and_upscale(self, frame):
        result = process(frame, PreprocessConfig(grayscale=True, threshold=128, upscale=2.0))

        assert result.image.shape == (40, 60)
        assert set(np.unique(result.image)) <= {0, 255}
        assert result.scale == 2.0

    def test_carries_frame_metadata(self, frame):
        result = process(frame, PreprocessConfig())
        assert result.captured_at == 12.5
        assert result.region == frame.region

    def test_disabled_passes_frame_through(self, frame):
        result = process(frame, PreprocessConfig(enabled=False, upscale=3.0))

        assert result.image is frame.image
        assert result.scale == 1.0

    def test_input_not_modified(self, frame):
        original = frame.image.copy()
        process(frame, PreprocessConfig(invert=True, contrast=3.0, threshold=100))
        assert np.array_equal(frame.image, original)

    def test_out_of_range_config_is_clamped(self, frame):
        result = process(frame, PreprocessConfig(upscale=10.0, threshold=999, contrast=-1))

        assert result.scale == 4.0
        assert result.image.shape == (80, 120)

    def test_debug_image_written(self, frame, tmp_path):
        path = tmp_path / "debug.png"
        process(frame, PreprocessConfig(save_debug_image=True), debug_path=path)
        assert path.exists()


class TestApplyChain:
    """Tests for the transform order."""

    def test_edge_detection_replaces_threshold(self, frame):
        with_threshold = apply_chain(frame.image, PreprocessConfig(threshold=128, edge_detection=50))
        edges_only = apply_chain(frame.image, PreprocessConfig(threshold=0, edge_detection=50))

        assert np.array_equal(with_threshold, edges_only)

    def test_grayscale_then_threshold(self, frame):
        gray = cv2.cvtColor(cv2.cvtColor(frame.image, cv2.COLOR_BGRA2BGR), cv2.COLOR_BGR2GRAY)
        _, expected = cv2.threshold(gray, 128, 255, cv2.THRESH_BINARY)

        result = apply_chain(frame.image, PreprocessConfig(grayscale=True, threshold=128))

        assert np.array_equal(result, expected)

    def test_invert(self, frame):
        plain = apply_chain(frame.image, PreprocessConfig(grayscale=True))
        inverted = apply_chain(frame.image, PreprocessConfig(grayscale=True, invert=True))

        assert np.array_equal(inverted, 255 - plain)

    def test_color_kept_without_grayscale(self, frame):
        result = apply_chain(frame.image, PreprocessConfig(grayscale=False))
        assert result.shape == (20, 30, 3)


class TestSaveDebugImage:
    """Tests for save_debug_image()."""

    def test_write_failure_is_swallowed(self, tmp_path):
        image = np.zeros((4, 4), dtype=np.uint8)
        missing_dir = tmp_path / "missing" / "debug.png"

        assert save_debug_image(image, missing_dir) is False

    def test_write_success(self, tmp_path):
        image = np.zeros((4, 4), dtype=np.uint8)
        assert save_debug_image(image, tmp_path / "ok.png") is True
