from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from text2text.app.logging_setup import log_event
from text2text.contracts import CacheEntry, TranslationDirection

CACHE_EXPIRY_SEC = 24 * 60 * 60

logger = logging.getLogger(__name__)

CacheKey = tuple[TranslationDirection, str]


def cache_key(text: str, direction: TranslationDirection) -> CacheKey:
    # Trim only; case is significant here (the phrasebook fallback lowercases, this does not).
    return direction, (text or "").strip()


class ResultCache:
    """
    Thread-safe map of (direction, trimmed text) -> translation with lazy expiry.
    Unbounded; entries leave only on expiry or clear().
    """

    def __init__(
        self,
        expiry_sec: float = CACHE_EXPIRY_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if expiry_sec <= 0:
            raise ValueError("expiry_sec must be > 0")
        self.expiry_sec = float(expiry_sec)
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, text: str, direction: TranslationDirection) -> Optional[str]:
        key = cache_key(text, direction)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock(), self.expiry_sec):
                del self._entries[key]
                log_event(logger, logging.DEBUG, "cache_evict_expired", direction=direction.code)
                return None
            return entry.translated_text

    def put(self, text: str, direction: TranslationDirection, translated_text: str) -> None:
        key = cache_key(text, direction)
        entry = CacheEntry(
            original_text=key[1],
            translated_text=translated_text,
            direction=direction,
            created_at=self._clock(),
        )
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> tuple[int, int]:
        """Return (total entries, expired entries not yet evicted)."""
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            expired = sum(1 for e in self._entries.values() if e.is_expired(now, self.expiry_sec))
        return total, expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
