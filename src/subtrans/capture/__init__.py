"""Screen capture sources.

Every source satisfies the CaptureSource protocol and returns a RawFrame in
BGRA format. Downstream stages never know which one produced the frame; the
choice is made once from the `capture.source` config flag.
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

import mss
import numpy as np
from numpy.typing import NDArray
from PIL import Image

from .. import log
from ..errors import CaptureFault
from .convert import pil_to_bgra

logger = log.get_logger()


class CaptureMode(Enum):
    """What kind of area a CaptureRegion describes."""

    FULLSCREEN = "fullscreen"
    REGION = "region"
    SUBTITLE_AREA = "subtitle_area"


@dataclass(frozen=True)
class CaptureRegion:
    """Rectangle to grab. Replaced wholesale on reconfiguration."""

    x: int
    y: int
    width: int
    height: int
    mode: CaptureMode = CaptureMode.REGION

    @classmethod
    def fullscreen(cls) -> "CaptureRegion":
        return cls(0, 0, 0, 0, CaptureMode.FULLSCREEN)

    @classmethod
    def from_config(cls, region, mode: CaptureMode = CaptureMode.REGION) -> "CaptureRegion":
        return cls(region.x, region.y, region.width, region.height, mode)

    def as_monitor(self) -> dict:
        """Region in the mss monitor dict format."""
        return {"left": self.x, "top": self.y, "width": self.width, "height": self.height}


@dataclass
class RawFrame:
    """Captured bitmap with its monotonic capture timestamp."""

    image: NDArray[np.uint8]
    captured_at: float
    region: CaptureRegion


class CaptureSource(Protocol):
    """Unified interface for all capture implementations."""

    def grab(self, region: CaptureRegion) -> RawFrame:
        """Capture the given region.

        Raises:
            CaptureFault: If the screen could not be grabbed.
        """
        ...


class MssCaptureSource:
    """Grabs straight into memory through mss.

    A fresh mss handle is opened per grab: mss handles are bound to the
    thread that created them, and grabs come from several worker threads.
    """

    def __init__(self, monitor: int = 1):
        self._monitor = monitor

    def _grab_array(self, region: CaptureRegion) -> NDArray[np.uint8]:
        try:
            with mss.mss() as sct:
                if region.mode == CaptureMode.FULLSCREEN:
                    monitors = sct.monitors
                    index = self._monitor if self._monitor < len(monitors) else 0
                    target = monitors[index]
                else:
                    if region.width <= 0 or region.height <= 0:
                        raise CaptureFault(f"empty capture region {region.width}x{region.height}")
                    target = region.as_monitor()
                shot = sct.grab(target)
                return np.array(shot, dtype=np.uint8)
        except CaptureFault:
            raise
        except Exception as e:
            raise CaptureFault(f"screen grab failed: {e}") from e

    def grab(self, region: CaptureRegion) -> RawFrame:
        image = self._grab_array(region)
        logger.debug("frame captured", mode=region.mode.value, size=f"{image.shape[1]}x{image.shape[0]}")
        return RawFrame(image=image, captured_at=time.monotonic(), region=region)


class FileCaptureSource(MssCaptureSource):
    """Grabs the screen, writes it to disk and reads it back.

    Slower than the in-memory source; useful when the screenshot file itself
    is wanted for inspection.
    """

    def __init__(self, path: str | Path = "screenshot.png", monitor: int = 1):
        super().__init__(monitor)
        self._path = Path(path)

    def grab(self, region: CaptureRegion) -> RawFrame:
        image = self._grab_array(region)
        try:
            Image.fromarray(np.ascontiguousarray(image[:, :, [2, 1, 0]])).save(self._path)
            with Image.open(self._path) as saved:
                image = pil_to_bgra(saved)
        except OSError as e:
            raise CaptureFault(f"screenshot file I/O failed: {e}") from e

        logger.debug("frame captured", mode=region.mode.value, path=str(self._path))
        return RawFrame(image=image, captured_at=time.monotonic(), region=region)


def create_capture_source(source: str = "memory", screenshot_path: str = "screenshot.png", monitor: int = 1) -> CaptureSource:
    """Pick the capture implementation for the configured source flag."""
    if source == "file":
        return FileCaptureSource(screenshot_path, monitor)
    if source != "memory":
        logger.warning("unknown capture source, using memory", source=source)
    return MssCaptureSource(monitor)


__all__ = [
    "CaptureMode",
    "CaptureRegion",
    "CaptureSource",
    "FileCaptureSource",
    "MssCaptureSource",
    "RawFrame",
    "create_capture_source",
]
