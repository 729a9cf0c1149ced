"""In-memory result cache with TTL expiry and LRU eviction."""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from similar_products.clock import Clock, MonotonicClock
from similar_products.models.data_models import AggregatedResult, CacheStats


@dataclass
class CacheEntry:
    """A cached result with its storage time."""
    result: AggregatedResult
    stored_at: float


class ResultCache:
    """
    Thread-safe memoization of aggregated results per root product id.

    Eviction is deterministic: entries older than ``ttl`` seconds are dropped
    on access, and inserting a new key at capacity evicts the least recently
    used key (reads and writes both count as use).
    """

    def __init__(
        self,
        capacity: int = 1000,
        ttl: Optional[float] = 60.0,
        clock: Optional[Clock] = None,
        logger: Optional['StructuredLogger'] = None
    ):
        """
        Initialize cache.

        Args:
            capacity: Maximum number of cached root products
            ttl: Entry lifetime in seconds, or None for no expiry
            clock: Clock interface for time management (defaults to MonotonicClock)
            logger: Optional structured logger
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got: {capacity}")
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be positive or None, got: {ttl}")
        self.capacity = capacity
        self.ttl = ttl
        self.clock = clock or MonotonicClock()
        self.logger = logger
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = CacheStats(capacity=capacity)

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self.ttl is not None and self.clock.now() - entry.stored_at >= self.ttl

    def get(self, root_id: str) -> Optional[AggregatedResult]:
        """Return the cached result for ``root_id`` if present and unexpired."""
        with self._lock:
            entry = self._entries.get(root_id)
            if entry is not None and self._is_expired(entry):
                del self._entries[root_id]
                entry = None

            if entry is None:
                self._stats.misses += 1
            else:
                self._entries.move_to_end(root_id)
                self._stats.hits += 1

        if self.logger:
            if entry is None:
                self.logger.cache_miss(product_id=root_id)
            else:
                self.logger.cache_hit(product_id=root_id)
        return entry.result if entry is not None else None

    def put(self, root_id: str, result: AggregatedResult) -> None:
        """Store or overwrite the result for ``root_id``."""
        evicted = None
        with self._lock:
            if root_id in self._entries:
                self._entries.move_to_end(root_id)
            elif len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1
            self._entries[root_id] = CacheEntry(result=result, stored_at=self.clock.now())

        if evicted is not None and self.logger:
            self.logger.log("cache_evict", product_id=evicted)

    def invalidate(self, root_id: str) -> bool:
        """Drop the entry for ``root_id``. Returns whether one existed."""
        with self._lock:
            return self._entries.pop(root_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, root_id: str) -> bool:
        with self._lock:
            entry = self._entries.get(root_id)
            return entry is not None and not self._is_expired(entry)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> CacheStats:
        """Get a copy of the cache statistics."""
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                evictions=self._stats.evictions,
                size=len(self._entries),
                capacity=self.capacity,
            )
