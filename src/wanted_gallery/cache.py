"""
Time-boxed in-memory cache for finished galleries.

One entry per filter combination. An entry is installed whole once an
aggregation succeeds. Expired entries are evicted when looked up and on
every insert; past `max_entries` the oldest insert is dropped first.
A TTL of 0 disables caching entirely.
"""
from __future__ import annotations
import logging, time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

ONE_WEEK = 7 * 24 * 60 * 60
DEFAULT_MAX_ENTRIES = 128

V = TypeVar("V")

def cache_key(poster_classification: Optional[str] = None) -> str:
    """Compose a cache key from the filter parameters."""
    return f"poster_classification={poster_classification or ''}"

class TTLCache(Generic[V]):

    def __init__(
        self,
        ttl: float = ONE_WEEK,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.ttl = ttl
        self.clock = clock
        self.max_entries = max(1, max_entries)
        # insertion ordered, oldest first
        self._entries: Dict[str, Tuple[float, V]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            logger.debug("Cache entry %s expired", key)
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: V) -> None:
        if not self.enabled:
            return
        now = self.clock()
        self.purge_expired(now)
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            logger.debug("Cache full, dropping %s", oldest)
            del self._entries[oldest]
        self._entries[key] = (now + self.ttl, value)

    def purge_expired(self, now: Optional[float] = None) -> int:
        now = self.clock() if now is None else now
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
