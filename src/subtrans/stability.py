"""Stability gating for subtitle mode.

OCR on live video misreads a character here and there from one frame to the
next. Translating every variant would burn provider quota and flicker the
overlay, so a line only goes to translation once it has been seen the same
way `stable_count` times, each sighting within the debounce window of the
previous one. The window never drops below one capture interval per
sighting, so slow capture rates still commit.

    IDLE -> CANDIDATE -> STABLE -> DISPLAYED -> EXPIRED -> IDLE

The engine is driven by the orchestrator: observe() once per capture cycle,
then mark_displayed() or mark_failed() for a committed line, and tick() to
check the display timeout.
"""

import re
import threading
import time
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum

from . import log
from .cache import normalize_text
from .config import StabilityConfig

logger = log.get_logger()

_PUNCTUATION = re.compile(r"[^\w\s]")


class StabilityState(Enum):
    IDLE = "idle"
    CANDIDATE = "candidate"
    STABLE = "stable"
    DISPLAYED = "displayed"
    EXPIRED = "expired"


@dataclass
class Observation:
    """Outcome of one observe() call.

    Attributes:
        committed: Text that just became stable and should be translated.
        expired: True when the displayed line just expired because the
            subtitle disappeared from the screen.
    """

    committed: str | None = None
    expired: bool = False


def dedup_key(text: str) -> str:
    """Comparison form of a line: normalized, case-folded, no punctuation."""
    return " ".join(_PUNCTUATION.sub("", normalize_text(text).casefold()).split())


def text_similarity(a: str, b: str) -> float:
    """Calculate similarity ratio between two strings (0.0 to 1.0)."""
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


class StabilityEngine:
    """Debounce and expiry state machine for one capture stream."""

    def __init__(self, config: StabilityConfig | None = None, interval_secs: float = 0.0):
        self._config = config or StabilityConfig()
        self._interval_secs = interval_secs
        self._lock = threading.Lock()
        self._state = StabilityState.IDLE

        self._candidate_key: str | None = None
        self._candidate_text: str = ""
        self._candidate_last_seen = 0.0
        self._candidate_seen = 0

        self._committed_key: str | None = None
        self._committed_text: str = ""
        self._displayed_at: float | None = None
        self._empty_cycles = 0

    @property
    def state(self) -> StabilityState:
        with self._lock:
            return self._state

    @property
    def committed_text(self) -> str:
        with self._lock:
            return self._committed_text

    def configure(self, config: StabilityConfig, interval_secs: float | None = None) -> None:
        """Swap in tunables from a reloaded config.

        Args:
            config: New stability section.
            interval_secs: Current capture interval, if it changed.
        """
        with self._lock:
            self._config = config
            if interval_secs is not None:
                self._interval_secs = interval_secs

    def _window(self) -> float:
        return max(self._config.debounce_secs, self._interval_secs * max(1, self._config.stable_count))

    def _matches(self, a: str, b: str | None) -> bool:
        if b is None:
            return False
        if a == b:
            return True
        threshold = self._config.similarity_threshold
        return threshold < 1.0 and text_similarity(a, b) >= threshold

    def observe(self, text: str, now: float | None = None) -> Observation:
        """Feed one OCR result.

        Args:
            text: Recognized text, possibly empty.
            now: Monotonic time of the capture; defaults to time.monotonic().

        Returns:
            Observation with the committed text when a line just stabilized.
        """
        if now is None:
            now = time.monotonic()

        with self._lock:
            normalized = normalize_text(text)
            if len(normalized) < self._config.min_text_length:
                return self._observe_empty()

            self._empty_cycles = 0
            key = dedup_key(normalized)

            if self._matches(key, self._committed_key):
                # Still the line we already handled
                if self._state == StabilityState.CANDIDATE:
                    self._drop_candidate()
                elif self._state == StabilityState.EXPIRED:
                    self._state = StabilityState.IDLE
                return Observation()

            within_window = now - self._candidate_last_seen <= self._window()
            if self._matches(key, self._candidate_key) and within_window:
                self._candidate_seen += 1
                self._candidate_last_seen = now
            else:
                self._candidate_key = key
                self._candidate_text = normalized
                self._candidate_last_seen = now
                self._candidate_seen = 1
                self._state = StabilityState.CANDIDATE
                logger.debug("subtitle candidate", text=normalized)

            if self._candidate_seen < max(1, self._config.stable_count):
                return Observation()

            committed = self._candidate_text
            self._committed_key = self._candidate_key
            self._committed_text = committed
            self._candidate_key = None
            self._candidate_seen = 0
            self._state = StabilityState.STABLE
            logger.info("subtitle stable", text=committed)
            return Observation(committed=committed)

    def _drop_candidate(self) -> None:
        self._candidate_key = None
        self._candidate_seen = 0
        self._state = StabilityState.DISPLAYED if self._displayed_at is not None else StabilityState.IDLE

    def _observe_empty(self) -> Observation:
        if self._candidate_key is not None:
            self._drop_candidate()
        elif self._state == StabilityState.EXPIRED:
            self._state = StabilityState.IDLE

        if self._committed_key is None:
            return Observation()

        self._empty_cycles += 1
        if self._empty_cycles < max(1, self._config.expire_after_empty):
            return Observation()

        was_displayed = self._displayed_at is not None
        self._expire(forget=True)
        return Observation(expired=was_displayed)

    def _expire(self, forget: bool) -> None:
        if self._displayed_at is not None:
            logger.debug("subtitle expired", text=self._committed_text, forget=forget)
        self._displayed_at = None
        self._empty_cycles = 0
        if forget:
            # Subtitle left the screen; the same line may legitimately return
            self._committed_key = None
            self._committed_text = ""
        self._state = StabilityState.EXPIRED

    def mark_displayed(self, now: float | None = None) -> None:
        """The committed line was translated and handed to the display."""
        if now is None:
            now = time.monotonic()
        with self._lock:
            if self._state == StabilityState.STABLE:
                self._state = StabilityState.DISPLAYED
                self._displayed_at = now
                self._empty_cycles = 0

    def mark_failed(self) -> None:
        """Translation of the committed line failed.

        The line stays committed so it is not retried on every frame.
        """
        with self._lock:
            if self._state == StabilityState.STABLE:
                self._state = StabilityState.DISPLAYED if self._displayed_at is not None else StabilityState.IDLE

    def tick(self, now: float | None = None) -> bool:
        """Expire the displayed line once max_display_secs has passed.

        The committed text is kept, so a line still on screen is not
        translated again.

        Returns:
            True if the displayed line expired on this call.
        """
        if now is None:
            now = time.monotonic()
        with self._lock:
            if self._displayed_at is None:
                if self._state == StabilityState.EXPIRED:
                    self._state = StabilityState.IDLE
                return False
            if now - self._displayed_at < self._config.max_display_secs:
                return False
            self._expire(forget=False)
            return True

    def reset(self) -> None:
        """Forget everything; used when subtitle mode is toggled."""
        with self._lock:
            self._state = StabilityState.IDLE
            self._candidate_key = None
            self._candidate_seen = 0
            self._committed_key = None
            self._committed_text = ""
            self._displayed_at = None
            self._empty_cycles = 0
