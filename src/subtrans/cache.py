"""Content-addressed translation cache.

Entries live for the whole session: a game line translated once is served
from here on every replay. There is no TTL and no size cap; the cache only
empties on clear() or process restart.
"""

import json
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from . import log

logger = log.get_logger()


def normalize_text(text: str) -> str:
    """Trim and collapse whitespace. Case is preserved."""
    return " ".join(text.split())


@dataclass(frozen=True)
class CacheKey:
    """Lookup key: normalized source text plus language pair."""

    normalized_text: str
    source_language: str
    target_language: str

    @classmethod
    def for_text(cls, text: str, source_language: str, target_language: str) -> "CacheKey":
        return cls(normalize_text(text), source_language.lower(), target_language.lower())

    def serialize(self) -> str:
        return f"{self.source_language}:{self.target_language}:{self.normalized_text}"

    @classmethod
    def deserialize(cls, raw: str) -> "CacheKey":
        source, target, text = raw.split(":", 2)
        return cls(text, source, target)


@dataclass
class CacheEntry:
    translated_text: str
    created_at: float
    hit_count: int = 0


class TranslationCache:
    """Thread-safe map of CacheKey -> CacheEntry."""

    def __init__(self):
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> str | None:
        """Get cached translation.

        Args:
            key: Lookup key.

        Returns:
            Cached translation if found, None otherwise.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            entry.hit_count += 1
            return entry.translated_text

    def put(self, key: CacheKey, translated_text: str) -> None:
        """Store a translation, overwriting any existing entry for the key."""
        with self._lock:
            self._entries[key] = CacheEntry(translated_text=translated_text, created_at=time.time())

    def entry(self, key: CacheKey) -> CacheEntry | None:
        """Get the full entry without counting a hit."""
        with self._lock:
            return self._entries.get(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("translation cache cleared")

    def stats(self) -> tuple[int, int]:
        """Return (entry count, approximate size in bytes of keys and values)."""
        with self._lock:
            size = sum(
                len(key.normalized_text.encode()) + len(entry.translated_text.encode())
                for key, entry in self._entries.items()
            )
            return len(self._entries), size

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def save(self, path: str | Path) -> None:
        """Write all entries to a JSON file.

        Raises:
            OSError: If the file cannot be written.
        """
        with self._lock:
            data = {
                key.serialize(): {
                    "translated_text": entry.translated_text,
                    "created_at": entry.created_at,
                    "hit_count": entry.hit_count,
                }
                for key, entry in self._entries.items()
            }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.info("translation cache saved", path=str(path), entries=len(data))

    def load(self, path: str | Path) -> int:
        """Merge entries from a JSON file written by save().

        Returns:
            Number of entries loaded. 0 if the file does not exist.

        Raises:
            OSError, ValueError: If the file exists but cannot be read or parsed.
        """
        path = Path(path)
        if not path.exists():
            return 0

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"cache file {path} must hold a JSON object")

        loaded = {}
        try:
            for raw_key, value in data.items():
                loaded[CacheKey.deserialize(raw_key)] = CacheEntry(
                    translated_text=str(value["translated_text"]),
                    created_at=float(value.get("created_at", time.time())),
                    hit_count=int(value.get("hit_count", 0)),
                )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ValueError(f"malformed cache entry in {path}: {e!r}") from e

        with self._lock:
            self._entries.update(loaded)
        logger.info("translation cache loaded", path=str(path), entries=len(loaded))
        return len(loaded)
