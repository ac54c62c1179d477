"""
Thread-safe TTL cache.

Used to avoid paying for the same Whisper transcription twice: results are
keyed by a SHA-256 hash of the media source.
"""

import hashlib
import time
from threading import Lock
from typing import Any, Dict, Optional, Tuple

from clipsforge.config import TRANSCRIPTION_CACHE_TTL, logger


def content_hash(value: str) -> str:
    """SHA-256 hex digest used as a cache key."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class TTLCache:
    """Simple thread-safe TTL cache with an optional size cap."""

    def __init__(self, ttl_seconds: int = 1800, max_entries: int = 1000):
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._lock = Lock()
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if it exists and hasn't expired."""
        with self._lock:
            if key not in self._cache:
                return None

            value, timestamp = self._cache[key]
            age = time.time() - timestamp

            if age >= self._ttl_seconds:
                del self._cache[key]
                logger.debug(f"Cache expired for key: {key[:12]}")
                return None

            logger.debug(f"Cache hit for key: {key[:12]} (age: {age:.1f}s)")
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_entries:
                # Evict the oldest entry
                oldest = min(self._cache, key=lambda k: self._cache[k][1])
                del self._cache[oldest]
            self._cache[key] = (value, time.time())
            logger.debug(f"Cache set for key: {key[:12]}")

    def invalidate(self, key: Optional[str] = None) -> None:
        """Invalidate one key, or everything when ``key`` is None."""
        with self._lock:
            if key is None:
                self._cache.clear()
                logger.debug("Cache cleared")
            elif key in self._cache:
                del self._cache[key]

    def clear(self) -> None:
        self.invalidate()

    def __len__(self) -> int:
        return len(self._cache)


_transcription_cache = TTLCache(ttl_seconds=TRANSCRIPTION_CACHE_TTL)


def get_transcription_cache() -> TTLCache:
    """Get the global transcription cache instance."""
    return _transcription_cache
