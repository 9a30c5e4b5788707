"""Simple in-memory TTL cache with a size bound. No Redis needed.

Eviction is by insertion order: once the store holds max_size entries, adding
a new key drops the oldest-inserted one. Reads never reorder entries.

Note: Each uvicorn worker has its own cache instance. With --workers 2,
upstream data may be fetched twice (once per worker).
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
        }


class TTLCache:
    def __init__(
        self,
        ttl_seconds: float = 300,
        max_size: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._stats = CacheStats()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at > self.ttl_seconds

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            self._stats.misses += 1
            return None
        if self._is_expired(entry, self._clock()):
            del self._store[key]
            self._stats.expirations += 1
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        if key in self._store:
            del self._store[key]
        while len(self._store) >= self.max_size:
            evicted, _ = self._store.popitem(last=False)
            self._stats.evictions += 1
            logger.debug("Cache full, evicted %s", evicted)
        self._store[key] = CacheEntry(value=value, stored_at=self._clock())

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def sweep(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._store.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._store[key]
        self._stats.expirations += len(expired)
        return len(expired)

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever at a fixed interval. Cancel the task to stop."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Swept %d expired cache entries", removed)

    def stats(self) -> dict:
        return {"size": len(self._store), "max_size": self.max_size, **self._stats.to_dict()}

    def keys(self) -> list[str]:
        return list(self._store.keys())

    def __contains__(self, key: str) -> bool:
        entry = self._store.get(key)
        return entry is not None and not self._is_expired(entry, self._clock())

    def __len__(self) -> int:
        return len(self._store)
