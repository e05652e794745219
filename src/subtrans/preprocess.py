"""Image preprocessing before OCR.

The transform chain is fixed:

    grayscale -> invert -> contrast -> upscale -> blur
    -> morphology (dilate, erode) -> threshold OR edge detection

Edge detection, when enabled, takes the place of the threshold step instead
of running after it. process() is a pure function of (frame, config) apart
from the optional debug image, which is written best-effort.
"""

from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np
from numpy.typing import NDArray

from . import log
from .capture import CaptureRegion, RawFrame
from .capture.convert import to_pil
from .config import PreprocessConfig

logger = log.get_logger()

# Contrast is stretched around mid-gray
CONTRAST_PIVOT = 128.0

DEFAULT_DEBUG_IMAGE_PATH = "debug_preprocessed.png"


@dataclass
class ProcessedFrame:
    """Bitmap ready for OCR.

    Attributes:
        image: (H, W) grayscale or (H, W, 3) BGR uint8 array.
        scale: Upscale factor applied; divide OCR coordinates by it to map
            back to screen pixels.
        captured_at: Monotonic timestamp of the source RawFrame.
        region: Region the source frame was grabbed from.
    """

    image: NDArray[np.uint8]
    scale: float
    captured_at: float
    region: CaptureRegion


def _to_gray(image: NDArray[np.uint8]) -> NDArray[np.uint8]:
    if image.ndim == 2:
        return image
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def _apply_contrast(image: NDArray[np.uint8], contrast: float) -> NDArray[np.uint8]:
    if contrast == 1.0:
        return image
    stretched = (image.astype(np.float32) - CONTRAST_PIVOT) * contrast + CONTRAST_PIVOT
    return np.clip(stretched, 0, 255).astype(np.uint8)


def _apply_upscale(image: NDArray[np.uint8], factor: float) -> NDArray[np.uint8]:
    if factor <= 1.0:
        return image
    h, w = image.shape[:2]
    new_size = (max(1, int(round(w * factor))), max(1, int(round(h * factor))))
    return cv2.resize(image, new_size, interpolation=cv2.INTER_CUBIC)


def _morph_kernel(size: int) -> NDArray[np.uint8]:
    side = 2 * size + 1
    return np.ones((side, side), dtype=np.uint8)


def apply_chain(image: NDArray[np.uint8], config: PreprocessConfig) -> NDArray[np.uint8]:
    """Run the transform chain on a BGRA or BGR array.

    Args:
        image: Source bitmap.
        config: Transform parameters. Clamped before use.

    Returns:
        Transformed array, grayscale when the grayscale, threshold or edge
        step ran, BGR otherwise.
    """
    config = config.clamped()

    # Alpha carries nothing OCR can use
    if image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    else:
        image = image.copy()

    if config.grayscale:
        image = _to_gray(image)

    if config.invert:
        image = cv2.bitwise_not(image)

    image = _apply_contrast(image, config.contrast)
    image = _apply_upscale(image, config.upscale)

    if config.blur > 0:
        image = cv2.GaussianBlur(image, (0, 0), sigmaX=config.blur)

    if config.dilate > 0:
        image = cv2.dilate(image, _morph_kernel(config.dilate), iterations=1)
    if config.erode > 0:
        image = cv2.erode(image, _morph_kernel(config.erode), iterations=1)

    if config.edge_detection > 0:
        low = float(config.edge_detection)
        image = cv2.Canny(_to_gray(image), low, low * 2)
    elif config.threshold > 0:
        _, image = cv2.threshold(_to_gray(image), config.threshold, 255, cv2.THRESH_BINARY)

    return image


def save_debug_image(image: NDArray[np.uint8], path: str | Path = DEFAULT_DEBUG_IMAGE_PATH) -> bool:
    """Write the processed bitmap for external preview tooling.

    Failures are logged and swallowed; the pipeline never depends on this.

    Returns:
        True if the file was written.
    """
    try:
        to_pil(image).save(path)
        return True
    except Exception as e:
        logger.warning("debug image write failed", path=str(path), err=str(e))
        return False


def process(
    frame: RawFrame,
    config: PreprocessConfig,
    debug_path: str | Path = DEFAULT_DEBUG_IMAGE_PATH,
) -> ProcessedFrame:
    """Prepare a captured frame for OCR.

    Never raises for out-of-range parameters; they are clamped.

    Args:
        frame: Captured bitmap.
        config: Transform parameters.
        debug_path: Where to write the debug image when config.save_debug_image is set.

    Returns:
        ProcessedFrame carrying the transformed bitmap and the scale applied.
    """
    if not config.enabled:
        return ProcessedFrame(
            image=frame.image,
            scale=1.0,
            captured_at=frame.captured_at,
            region=frame.region,
        )

    clamped = config.clamped()
    image = apply_chain(frame.image, clamped)

    if clamped.save_debug_image:
        save_debug_image(image, debug_path)

    return ProcessedFrame(
        image=image,
        scale=clamped.upscale,
        captured_at=frame.captured_at,
        region=frame.region,
    )
