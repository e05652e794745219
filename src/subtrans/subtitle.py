"""Subtitle history and display timing.

History is an append-only list capped at history_size, oldest evicted first.
Separately, one "current" entry is on screen until its display_until
deadline. A newer commit always replaces the current entry and restarts the
timer; there is no per-entry queue.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass

from . import log

logger = log.get_logger()

# Default maximum number of entries kept in history
DEFAULT_HISTORY_SIZE = 10

# Default seconds a committed subtitle stays on screen
DEFAULT_DISPLAY_SECS = 5.0


@dataclass(frozen=True)
class SubtitleEntry:
    original_text: str
    translated_text: str
    captured_at: float


class SubtitleHistory:
    """Bounded subtitle history plus the currently displayed entry."""

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE, display_secs: float = DEFAULT_DISPLAY_SECS):
        self._entries: deque[SubtitleEntry] = deque(maxlen=max(1, history_size))
        self._display_secs = display_secs
        self._current: SubtitleEntry | None = None
        self._display_until: float | None = None
        self._lock = threading.Lock()

    def configure(self, history_size: int | None = None, display_secs: float | None = None) -> None:
        """Apply new limits from a reloaded config. Shrinking drops the oldest entries."""
        with self._lock:
            if history_size is not None and max(1, history_size) != self._entries.maxlen:
                self._entries = deque(self._entries, maxlen=max(1, history_size))
            if display_secs is not None:
                self._display_secs = display_secs

    def commit(self, original_text: str, translated_text: str, now: float | None = None) -> tuple[SubtitleEntry, float]:
        """Append an entry and make it the current one.

        Args:
            original_text: Recognized source text.
            translated_text: Its translation.
            now: Monotonic commit time; defaults to time.monotonic().

        Returns:
            (entry, display_until) for the display message.
        """
        if now is None:
            now = time.monotonic()
        entry = SubtitleEntry(original_text, translated_text, now)
        with self._lock:
            self._entries.append(entry)
            self._current = entry
            self._display_until = now + self._display_secs
            display_until = self._display_until
            size = len(self._entries)
        logger.debug("subtitle history updated", items=size)
        return entry, display_until

    def current(self, now: float | None = None) -> SubtitleEntry | None:
        """Get the entry on screen, or None once its deadline has passed.

        An expired current entry is cleared as a side effect.
        """
        if now is None:
            now = time.monotonic()
        with self._lock:
            if self._current is None:
                return None
            if self._display_until is not None and now >= self._display_until:
                self._current = None
                self._display_until = None
                return None
            return self._current

    def visible(self, max_lines: int, now: float | None = None) -> list[SubtitleEntry]:
        """Get the lines to draw: the last max_lines entries while current is live."""
        if self.current(now) is None:
            return []
        with self._lock:
            entries = list(self._entries)
        return entries[-max(1, max_lines):]

    def entries(self) -> list[SubtitleEntry]:
        """Get the full history, oldest first."""
        with self._lock:
            return list(self._entries)

    def recent_pairs(self, count: int) -> list[tuple[str, str]]:
        """Get the last `count` (original, translated) pairs, oldest first."""
        if count <= 0:
            return []
        with self._lock:
            entries = list(self._entries)[-count:]
        return [(e.original_text, e.translated_text) for e in entries]

    def hide(self) -> None:
        """Stop displaying the current entry; history is kept."""
        with self._lock:
            self._current = None
            self._display_until = None

    def clear(self) -> None:
        """Drop the history and the current entry."""
        with self._lock:
            self._entries.clear()
            self._current = None
            self._display_until = None
        logger.info("subtitle history cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
