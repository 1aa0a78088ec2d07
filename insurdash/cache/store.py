from __future__ import annotations
from typing import Any, Dict, Generic, Optional, TypeVar
import threading

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ResultCache(Generic[T]):
    """Fingerprint -> result map with hit/miss accounting.

    No TTL: owners clear it when the records or the active target table change.
    """

    def __init__(self):
        self._entries: Dict[str, T] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            if key in self._entries:
                self._hits += 1
                value = self._entries[key]
            else:
                self._misses += 1
                value = None
        logger.debug("cache.hit" if value is not None else "cache.miss", key=key[:12])
        return value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = value
        logger.debug("cache.set", key=key[:12])

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop entries, keep counters."""
        with self._lock:
            self._entries.clear()
        logger.debug("cache.cleared")

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def hits(self) -> int:
        return self._hits

    @property
    def misses(self) -> int:
        return self._misses

    @property
    def hit_rate(self) -> float:
        total = self._hits + self._misses
        return (self._hits / total) * 100 if total else 0.0

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            hits, misses, size = self._hits, self._misses, len(self._entries)
        total = hits + misses
        return {
            "size": size,
            "hits": hits,
            "misses": misses,
            "hit_rate": (hits / total) * 100 if total else 0.0,
            "total_requests": total,
        }
