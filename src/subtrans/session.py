"""Long-lived state shared by every capture cycle of one process.

SessionState is built once in main() and handed to the pipeline and the
provider chain through their constructors. Each piece guards itself with its
own lock.
"""

import threading
from dataclasses import dataclass, field

from . import log
from .cache import TranslationCache
from .subtitle import SubtitleHistory

logger = log.get_logger()


class SessionCounters:
    """Per-provider request counts for this session.

    Counts only go up; reset() is the single way to bring them back to zero.
    """

    def __init__(self):
        self._counts: dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, provider: str) -> int:
        """Record one request and return the new count."""
        with self._lock:
            count = self._counts.get(provider, 0) + 1
            self._counts[provider] = count
            return count

    def try_acquire(self, provider: str, limit: int) -> bool:
        """Atomically check the cap and record one request.

        Args:
            provider: Provider id.
            limit: Request cap; 0 means unlimited.

        Returns:
            True if a request slot was taken, False if the cap is reached.
        """
        with self._lock:
            count = self._counts.get(provider, 0)
            if limit > 0 and count >= limit:
                return False
            self._counts[provider] = count + 1
            return True

    def get(self, provider: str) -> int:
        with self._lock:
            return self._counts.get(provider, 0)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
        logger.info("session request counters reset")


@dataclass
class SessionState:
    """Cache, subtitle history and request counters for one session."""

    cache: TranslationCache = field(default_factory=TranslationCache)
    history: SubtitleHistory = field(default_factory=SubtitleHistory)
    counters: SessionCounters = field(default_factory=SessionCounters)
