"""Array <-> PIL conversions at the edges of the pipeline.

Frames travel as numpy arrays in OpenCV channel order: BGRA from mss, BGR
or single-channel after preprocessing. PIL is only needed where a library
wants an Image (pytesseract, file writes) or hands one back (file capture).
"""

import numpy as np
from numpy.typing import NDArray
from PIL import Image

# OpenCV channel order -> RGB(A) index order, by channel count
_TO_RGB = {
    3: [2, 1, 0],
    4: [2, 1, 0],
}


def bgra_to_rgb(frame: NDArray[np.uint8]) -> NDArray[np.uint8]:
    """Drop alpha and reorder BGR(A) channels to RGB."""
    return np.ascontiguousarray(frame[:, :, _TO_RGB[frame.shape[2]]])


def to_pil(image: NDArray[np.uint8]) -> Image.Image:
    """Wrap a grayscale, BGR or BGRA array as a PIL Image ("L" or "RGB")."""
    if image.ndim == 2:
        return Image.fromarray(np.ascontiguousarray(image))
    return Image.fromarray(bgra_to_rgb(image))


def pil_to_bgra(image: Image.Image) -> NDArray[np.uint8]:
    """Turn any PIL Image into the BGRA layout capture sources produce."""
    rgba = np.asarray(image.convert("RGBA"))
    return np.ascontiguousarray(rgba[:, :, [2, 1, 0, 3]])
