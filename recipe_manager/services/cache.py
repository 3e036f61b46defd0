"""
ResultCache - Async-compatible per-dependency result cache with TTL and LRU eviction.

Features:
- One partition per dependency, each with its own lock and size bound
- TTL (Time To Live) for cache entries
- Least-recently-used eviction once a partition is full
- Only successful values are ever stored
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Generic, Hashable, TypeVar

from loguru import logger

T = TypeVar("T")


class _Miss:
    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single cache entry. Replaced on refresh, never mutated."""

    key: Hashable
    value: T
    inserted_at: float
    ttl: timedelta

    def is_expired(self, now: float) -> bool:
        return now >= self.inserted_at + self.ttl.total_seconds()


@dataclass
class CacheStats:
    """Cache statistics for one dependency."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class _Partition:
    def __init__(self, max_size: int, ttl: timedelta):
        self.entries: OrderedDict[Hashable, CacheEntry[Any]] = OrderedDict()
        self.max_size = max_size
        self.ttl = ttl
        self.lock = asyncio.Lock()
        self.stats = CacheStats(max_size=max_size)


class ResultCache:
    """
    Per-dependency result cache.

    Usage:
        cache = ResultCache(default_ttl=timedelta(minutes=30), default_max_size=1000)
        cache.configure("recipe-scraper", max_size=500)

        value = await cache.get("recipe-scraper", 123)
        if value is MISS:
            value = await fetch()
            await cache.put("recipe-scraper", 123, value)
    """

    def __init__(
        self,
        default_ttl: timedelta = timedelta(minutes=30),
        default_max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        self._default_ttl = default_ttl
        self._default_max_size = default_max_size
        self._clock = clock
        self._debug = debug
        self._partitions: dict[str, _Partition] = {}

    def configure(
        self,
        dependency: str,
        max_size: int | None = None,
        ttl: timedelta | None = None,
    ) -> None:
        """Set the size bound and TTL for a dependency's partition."""
        partition = self._partition(dependency)
        if max_size is not None:
            partition.max_size = max_size
            partition.stats.max_size = max_size
        if ttl is not None:
            partition.ttl = ttl

    def _partition(self, dependency: str) -> _Partition:
        partition = self._partitions.get(dependency)
        if partition is None:
            partition = _Partition(self._default_max_size, self._default_ttl)
            self._partitions[dependency] = partition
        return partition

    async def get(self, dependency: str, key: Hashable) -> Any:
        """Return the cached value, or MISS."""
        partition = self._partition(dependency)
        async with partition.lock:
            entry = partition.entries.get(key)
            if entry is None:
                partition.stats.misses += 1
                self._log(f"MISS: {dependency}/{key!r}")
                return MISS

            if entry.is_expired(self._clock()):
                del partition.entries[key]
                partition.stats.misses += 1
                partition.stats.expirations += 1
                self._log(f"EXPIRED: {dependency}/{key!r}")
                return MISS

            partition.entries.move_to_end(key)
            partition.stats.hits += 1
            self._log(f"HIT: {dependency}/{key!r}")
            return entry.value

    async def put(
        self,
        dependency: str,
        key: Hashable,
        value: Any,
        ttl: timedelta | None = None,
    ) -> None:
        """Store a successful value."""
        partition = self._partition(dependency)
        entry = CacheEntry(
            key=key,
            value=value,
            inserted_at=self._clock(),
            ttl=ttl if ttl is not None else partition.ttl,
        )

        async with partition.lock:
            partition.entries[key] = entry
            partition.entries.move_to_end(key)
            while len(partition.entries) > partition.max_size:
                evicted, _ = partition.entries.popitem(last=False)
                partition.stats.evictions += 1
                self._log(f"EVICT: {dependency}/{evicted!r}")
            self._log(f"SET: {dependency}/{key!r} (TTL: {entry.ttl.total_seconds()}s)")

    async def invalidate(self, dependency: str, key: Hashable | None = None) -> int:
        """Drop one key, or the whole partition when key is None."""
        partition = self._partitions.get(dependency)
        if partition is None:
            return 0

        async with partition.lock:
            if key is None:
                count = len(partition.entries)
                partition.entries.clear()
            else:
                count = 1 if partition.entries.pop(key, None) is not None else 0

            if count:
                self._log(f"INVALIDATE: {count} entries from {dependency}")
            return count

    async def clear(self) -> None:
        """Clear all partitions."""
        for dependency in list(self._partitions):
            await self.invalidate(dependency)

    def get_stats(self, dependency: str) -> CacheStats:
        partition = self._partition(dependency)
        partition.stats.size = len(partition.entries)
        return partition.stats

    def get_all_stats(self) -> dict[str, dict[str, Any]]:
        return {name: self.get_stats(name).to_dict() for name in self._partitions}

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResultCache] {message}")
