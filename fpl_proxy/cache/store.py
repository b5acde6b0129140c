"""
In-memory TTL cache with single-flight population.
"""
import threading
import time
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Optional

from .core import CacheEntry, CachePolicy
from .coalescer import RequestCoalescer

logger = logging.getLogger("cache.store")


class CacheStore:
    """
    Process-scoped cache of resource payloads.

    - Fresh entries are served without touching the coalescer
    - Missing/expired keys are populated once, however many callers ask
    - Failed populations are never stored
    - Zero-TTL policies never store anything
    - Optional max_entries evicts the least-recently-populated entry

    Construct one per process (or per test) and pass it around; there is
    no module-level instance.
    """

    def __init__(
        self,
        coalescer: Optional[RequestCoalescer] = None,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
        coalesce_timeout: float = 30.0,
    ):
        """
        Initialize the cache store.

        Args:
            coalescer: In-flight registry (a fresh one by default)
            clock: Monotonic seconds; injectable for tests
            max_entries: Bound on stored entries, None for unbounded
            coalesce_timeout: How long waiters block on an in-flight population
        """
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")

        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._coalescer = coalescer if coalescer is not None else RequestCoalescer(timeout=coalesce_timeout)
        self._clock = clock
        self._max_entries = max_entries

        # Stats tracking
        self._stats = {
            "hits": 0,
            "misses": 0,
            "populations": 0,
            "failed_populations": 0,
            "evictions": 0,
        }

    def get(self, key: Hashable) -> Optional[Any]:
        """
        Return the cached value if present and fresh, else None.

        Expired entries are left in place until overwritten.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry.value

    def get_or_populate(
        self,
        key: Hashable,
        policy: CachePolicy,
        populate: Callable[[], Any],
    ) -> Any:
        """
        Get a fresh value from cache, or populate it exactly once.

        Args:
            key: Cache key
            policy: TTL policy for the key's family
            populate: Produces the value; raises on failure

        Returns:
            The cached or freshly populated value

        Raises:
            PopulationTimeout: Gave up waiting on another caller's population
            Exception: Whatever `populate` raised (shared by all waiters)
        """
        cached = self._serve_cached(key, policy)
        if cached is not None:
            return cached

        try:
            return self._coalescer.get_or_fetch(key, populate, **self._population_hooks(key, policy))
        except Exception:
            self._count("failed_populations")
            raise

    async def get_or_populate_async(
        self,
        key: Hashable,
        policy: CachePolicy,
        populate: Callable[[], Any],
    ) -> Any:
        """
        Coroutine form of get_or_populate.

        Fresh hits never leave the event loop. `populate` runs in the
        threadpool and waiters await it without holding a thread.
        """
        cached = self._serve_cached(key, policy)
        if cached is not None:
            return cached

        try:
            return await self._coalescer.get_or_fetch_async(
                key, populate, **self._population_hooks(key, policy)
            )
        except Exception:
            self._count("failed_populations")
            raise

    def _serve_cached(self, key: Hashable, policy: CachePolicy) -> Optional[Any]:
        if policy.caches:
            cached = self.get(key)
            if cached is not None:
                logger.debug(f"CACHE HIT: {key}")
                self._count("hits")
                return cached
            logger.info(f"CACHE MISS: {key}")
        else:
            logger.debug(f"CACHE BYPASS: {key}")

        self._count("misses")
        return None

    def _population_hooks(self, key: Hashable, policy: CachePolicy) -> Dict[str, Any]:
        def write_back(value: Any) -> None:
            self._count("populations")
            if policy.caches:
                self._store(key, value, policy)

        return {
            "on_success": write_back,
            "lookup": (lambda: self.get(key)) if policy.caches else None,
        }

    def _store(self, key: Hashable, value: Any, policy: CachePolicy) -> None:
        """Store data in cache."""
        entry = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl_seconds=policy.ttl_seconds,
        )
        with self._lock:
            # Re-insert so iteration order is population order
            self._entries.pop(key, None)
            self._entries[key] = entry
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    self._stats["evictions"] += 1
                    logger.debug(f"Evicted {evicted}")

    def _count(self, stat: str) -> None:
        with self._lock:
            self._stats[stat] += 1

    def invalidate(self, key: Hashable) -> bool:
        """
        Invalidate a specific cache entry.

        Returns:
            True if entry was found and removed
        """
        with self._lock:
            if key in self._entries:
                del self._entries[key]
                logger.info(f"Invalidated cache: {key}")
                return True
            return False

    def clear(self) -> int:
        """
        Clear all cache entries. In-flight populations are untouched.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            logger.info(f"Cleared {count} cache entries")
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        coalescer_stats = self._coalescer.get_stats()
        with self._lock:
            total_requests = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / total_requests * 100) if total_requests > 0 else 0
            fresh = sum(1 for entry in self._entries.values() if entry.is_fresh(now))

            return {
                "entries": len(self._entries),
                "fresh_entries": fresh,
                "max_entries": self._max_entries,
                **self._stats,
                "hit_rate_percent": round(hit_rate, 1),
                "coalescer": coalescer_stats,
            }
