"""
RequestDeduplicator - Prevents duplicate concurrent calls for the same key.

When multiple callers request the same (dependency, key) simultaneously,
only one live call is made and the result is shared. This closes the gap
between a cache miss and the following cache store.
"""

import asyncio
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Deduplicates concurrent async calls.

    Each waiter is shielded from the shared task, so one caller cancelling
    does not cancel the call for everyone else. The shared task is only
    cancelled once its last waiter has gone.

    Usage:
        dedup = RequestDeduplicator()

        value = await dedup.dedupe(
            key=("recipe-scraper", recipe_id),
            request_fn=lambda: fetch_shopping_info(recipe_id),
        )
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[Hashable, asyncio.Task[Any]] = {}
        self._waiters: dict[asyncio.Task[Any], int] = {}
        self._lock = asyncio.Lock()
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def dedupe(
        self,
        key: Hashable,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Execute request with deduplication.

        If a call with the same key is already in flight, wait for and
        return its result (or exception) instead of making a new call.
        """
        async with self._lock:
            task = self._in_flight.get(key)
            if task is not None:
                self._stats.deduplicated += 1
                self._log(f"DEDUPE: Waiting for in-flight call: {key!r}")
            else:
                self._stats.total += 1
                self._log(f"NEW: Starting call: {key!r}")
                task = asyncio.create_task(self._execute_and_cleanup(key, request_fn))
                self._in_flight[key] = task
            self._waiters[task] = self._waiters.get(task, 0) + 1

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done() and self._waiters.get(task, 0) <= 1:
                task.cancel()
                self._log(f"CANCEL: Last waiter left, call abandoned: {key!r}")
            raise
        finally:
            self._release_waiter(task)

    def _release_waiter(self, task: "asyncio.Task[Any]") -> None:
        remaining = self._waiters.get(task, 0) - 1
        if remaining <= 0:
            self._waiters.pop(task, None)
        else:
            self._waiters[task] = remaining

    async def _execute_and_cleanup(
        self,
        key: Hashable,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """Execute call and clean up when done."""
        try:
            return await request_fn()
        finally:
            async with self._lock:
                if self._in_flight.get(key) is asyncio.current_task():
                    self._in_flight.pop(key, None)
                self._log(f"DONE: Call completed: {key!r}")

    async def cancel_all(self) -> int:
        """Cancel all in-flight calls."""
        async with self._lock:
            count = len(self._in_flight)
            for task in self._in_flight.values():
                task.cancel()
            self._in_flight.clear()
            self._waiters.clear()
            if count:
                self._log(f"CANCEL_ALL: {count} calls cancelled")
            return count

    def get_in_flight_count(self) -> int:
        """Get number of in-flight calls."""
        return len(self._in_flight)

    def get_stats(self) -> "DeduplicatorStats":
        """Get deduplication statistics."""
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for request deduplication."""

    def __init__(self):
        self.total: int = 0  # Total unique calls made
        self.deduplicated: int = 0  # Calls that were deduplicated
        self.in_flight: int = 0  # Current in-flight calls

    @property
    def dedup_rate(self) -> float:
        """Calculate deduplication rate."""
        total = self.total + self.deduplicated
        if total == 0:
            return 0.0
        return self.deduplicated / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_calls": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }
