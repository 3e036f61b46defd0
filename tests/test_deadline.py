"""Unit tests for the per-attempt deadline."""

import asyncio
import threading
import time

import pytest

from recipe_manager.services.deadline import DeadlineGovernor
from recipe_manager.services.errors import RequestTimeoutError
from recipe_manager.services.outcomes import FailureKind


@pytest.mark.unit
class TestDeadlineGovernor:
    """Test coroutine and blocking operations under a time bound."""

    @pytest.fixture
    def governor(self):
        governor = DeadlineGovernor(max_workers=2)
        yield governor
        governor.shutdown()

    @pytest.mark.asyncio
    async def test_coroutine_within_deadline(self, governor):
        async def fetch():
            return "value"

        assert await governor.run("recipe-scraper", fetch, timeout=1.0) == "value"

    @pytest.mark.asyncio
    async def test_coroutine_abandoned_after_deadline(self, governor):
        cancelled = asyncio.Event()

        async def hang():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(RequestTimeoutError) as exc_info:
            await governor.run("recipe-scraper", hang, timeout=0.05)

        assert exc_info.value.kind is FailureKind.TIMEOUT
        assert exc_info.value.retryable
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_blocking_call_runs_on_worker_thread(self, governor):
        def blocking():
            return threading.current_thread().name

        name = await governor.run("media-manager", blocking, timeout=1.0)
        assert name.startswith("dependency-call")

    @pytest.mark.asyncio
    async def test_blocking_call_abandoned_after_deadline(self, governor):
        def slow():
            time.sleep(0.3)
            return "late"

        with pytest.raises(RequestTimeoutError):
            await governor.run("media-manager", slow, timeout=0.05)

    @pytest.mark.asyncio
    async def test_sync_callable_returning_awaitable(self, governor):
        async def fetch():
            return 42

        assert await governor.run("media-manager", lambda: fetch(), timeout=1.0) == 42

    @pytest.mark.asyncio
    async def test_operation_errors_propagate(self, governor):
        async def broken():
            raise ValueError("bad payload")

        with pytest.raises(ValueError):
            await governor.run("media-manager", broken, timeout=1.0)
