"""In-memory key/value cache with per-entry TTL and LRU eviction."""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    memory_estimate: int
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class TTLCache:
    """Thread-safe TTL cache bounded by entry count.

    Expiry is checked lazily: a read that finds an expired entry deletes it
    and reports a miss. ``cleanup()`` sweeps everything expired at once.
    When full, inserting a new key first evicts the least recently accessed
    entry.
    """

    def __init__(
        self,
        max_entries: int = 100,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be greater than 0")
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry] = {}
        # Insertion order doubles as recency order: touched keys move to the end.
        self._access: dict[Hashable, float] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def set(self, key: Hashable, value: Any, ttl_ms: float) -> None:
        with self._lock:
            now = self._clock()
            entry = CacheEntry(value=value, created_at=now, expires_at=now + max(ttl_ms, 1))
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self.evict_lru()
            self._entries[key] = entry
            self._touch(key, now)

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._misses += 1
                return default
            self._hits += 1
            return entry.value

    def has(self, key: Hashable) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            self._access.pop(key, None)
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._access.clear()

    def cleanup(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired =[k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                self.delete(key)
        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} expired entries")
        return len(expired)

    def evict_lru(self) -> Hashable | None:
        """Evict the entry with the oldest access time; ties go to the first seen."""
        with self._lock:
            oldest_key = None
            oldest_time = None
            for key, accessed in self._access.items():
                if oldest_time is None or accessed < oldest_time:
                    oldest_key, oldest_time = key, accessed
            if oldest_time is None:
                return None
            self.delete(oldest_key)
            self._evictions += 1
        logger.debug(f"Evicted cache entry: {oldest_key}")
        return oldest_key

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                memory_estimate=self._estimate_memory(),
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def _live_entry(self, key: Hashable) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if now > entry.expires_at:
            self.delete(key)
            return None
        self._touch(key, now)
        return entry

    def _touch(self, key: Hashable, now: float) -> None:
        self._access.pop(key, None)
        self._access[key] = now

    def _estimate_memory(self) -> int:
        total = 0
        for key, entry in self._entries.items():
            total += len(_serialize(key)) + len(_serialize(entry.value))
        return total


def _serialize(obj: Any) -> str:
    try:
        return json.dumps(obj, default=str)
    except (TypeError, ValueError):
        return repr(obj)
