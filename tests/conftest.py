"""Shared fakes for pipeline tests. Nothing here touches the screen or the network."""

import threading
import time

import numpy as np
import pytest

from subtrans.backends.base import OCRBackend, OCRBackendInfo, OcrResult
from subtrans.capture import RawFrame
from subtrans.errors import CaptureFault, OcrFault, ProviderFailed


class FakeCapture:
    """Returns a small blank BGRA frame for any region."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.regions = []

    def grab(self, region):
        self.regions.append(region)
        if self.fail:
            raise CaptureFault("no display")
        image = np.zeros((8, 16, 4), dtype=np.uint8)
        return RawFrame(image=image, captured_at=time.monotonic(), region=region)


class FakeOCR(OCRBackend):
    """Returns scripted texts in order, then empty text forever."""

    def __init__(self, texts=(), fail: bool = False):
        super().__init__()
        self._texts = list(texts)
        self._lock = threading.Lock()
        self.fail = fail
        self.frames = []

    def load(self):
        pass

    def is_loaded(self):
        return True

    @classmethod
    def get_info(cls):
        return OCRBackendInfo(id="fake", name="Fake", supported_languages=[], license="MIT")

    def recognize(self, frame):
        if self.fail:
            raise OcrFault("engine exploded")
        with self._lock:
            self.frames.append(frame)
            text = self._texts.pop(0) if self._texts else ""
        return OcrResult(text=text, confidence=0.9 if text else None)


class FakeBackend:
    """Translation backend recording every call in a shared list."""

    def __init__(self, provider, calls, translations=None, fail=False):
        self.provider = provider
        self.calls = calls
        self.translations = translations or {}
        self.fail = fail

    def translate(self, text, source_language, target_language, history=None):
        self.calls.append((self.provider, text, history))
        if self.fail:
            raise ProviderFailed(self.provider, "service unavailable")
        return self.translations.get(text, f"{self.provider}:{text}")


class FakeFactory:
    """backend_factory for ProviderChain built from a few knobs."""

    def __init__(self, translations=None, failing=()):
        self.calls = []
        self.translations = translations or {}
        self.failing = set(failing)

    def __call__(self, provider, config):
        return FakeBackend(provider, self.calls, self.translations, fail=provider in self.failing)

    def providers_called(self):
        return [provider for provider, _, _ in self.calls]


@pytest.fixture
def fake_capture():
    return FakeCapture()


@pytest.fixture
def fake_factory():
    return FakeFactory()


def wait_for(condition, timeout: float = 2.0, interval: float = 0.005) -> bool:
    """Poll condition() until it is true or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(interval)
    return condition()
