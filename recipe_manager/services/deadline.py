"""
DeadlineGovernor - Bounds the wall-clock latency of a single attempt.

Coroutine operations are awaited under asyncio.wait_for. Blocking callables
run on a bounded thread pool; their future is awaited the same way. When the
bound elapses the attempt is abandoned: a late result lands in a cancelled
future and is discarded.
"""

import asyncio
import inspect
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Callable

from loguru import logger

from recipe_manager.services.errors import RequestTimeoutError

Operation = Callable[[], Awaitable[Any]] | Callable[[], Any]


class DeadlineGovernor:
    """
    Usage:
        governor = DeadlineGovernor(max_workers=8)
        value = await governor.run("recipe-scraper", fetch, timeout=15.0)
    """

    def __init__(self, max_workers: int = 8):
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="dependency-call",
            )
        return self._executor

    async def run(self, service_id: str, operation: Operation, timeout: float) -> Any:
        """
        Run one attempt of `operation` within `timeout` seconds.

        Raises:
            RequestTimeoutError: If the bound elapses first
        """
        try:
            return await asyncio.wait_for(self._start(operation), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                f"Attempt against '{service_id}' abandoned after {timeout}s deadline"
            )
            raise RequestTimeoutError(service_id, timeout) from e

    async def _start(self, operation: Operation) -> Any:
        if inspect.iscoroutinefunction(operation):
            return await operation()

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(self._get_executor(), operation)
        # Sync callables may still hand back an awaitable (e.g. a lambda
        # wrapping a coroutine function).
        if inspect.isawaitable(result):
            return await result
        return result

    def shutdown(self) -> None:
        """Release worker threads. In-flight blocking calls are not interrupted."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
