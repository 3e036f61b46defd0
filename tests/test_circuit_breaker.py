"""Unit tests for the sliding-window circuit breaker."""

from datetime import timedelta

import pytest

from recipe_manager.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)
from recipe_manager.services.config import BreakerConfig


@pytest.mark.unit
class TestCircuitBreaker:
    """Test state transitions."""

    @pytest.fixture
    def circuit_breaker(self, clock):
        config = BreakerConfig(
            failure_rate_threshold=50,
            sliding_window_size=4,
            minimum_calls=2,
            cool_down=timedelta(seconds=30),
            half_open_max_calls=1,
        )
        return CircuitBreaker("recipe-scraper", config, clock=clock)

    async def _open(self, breaker):
        for _ in range(2):
            assert await breaker.acquire()
            await breaker.record(success=False)

    @pytest.mark.asyncio
    async def test_starts_closed(self, circuit_breaker):
        assert circuit_breaker.state == CircuitState.CLOSED
        assert await circuit_breaker.acquire()

    @pytest.mark.asyncio
    async def test_does_not_open_below_minimum_calls(self, circuit_breaker):
        await circuit_breaker.record(success=False)
        assert circuit_breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_opens_at_threshold(self, circuit_breaker):
        await self._open(circuit_breaker)

        assert circuit_breaker.is_open
        assert not await circuit_breaker.acquire()

    @pytest.mark.asyncio
    async def test_stays_closed_below_threshold(self, circuit_breaker):
        for success in (True, True, False):
            await circuit_breaker.record(success=success)
        assert circuit_breaker.state == CircuitState.CLOSED
        assert circuit_breaker.failure_rate == pytest.approx(100 / 3)

    @pytest.mark.asyncio
    async def test_window_is_bounded(self, circuit_breaker):
        for _ in range(10):
            await circuit_breaker.record(success=True)
        assert circuit_breaker.window_size() == 4

    @pytest.mark.asyncio
    async def test_single_trial_after_cool_down(self, circuit_breaker, clock):
        await self._open(circuit_breaker)

        clock.advance(29)
        assert not await circuit_breaker.acquire()

        clock.advance(1)
        assert await circuit_breaker.acquire()
        assert circuit_breaker.state == CircuitState.HALF_OPEN
        # Only one trial at a time
        assert not await circuit_breaker.acquire()

    @pytest.mark.asyncio
    async def test_trial_success_closes(self, circuit_breaker, clock):
        await self._open(circuit_breaker)
        clock.advance(30)

        assert await circuit_breaker.acquire()
        await circuit_breaker.record(success=True)

        assert circuit_breaker.state == CircuitState.CLOSED
        assert circuit_breaker.window_size() == 0

    @pytest.mark.asyncio
    async def test_trial_failure_reopens_and_restarts_cool_down(
        self, circuit_breaker, clock
    ):
        await self._open(circuit_breaker)
        clock.advance(30)

        assert await circuit_breaker.acquire()
        await circuit_breaker.record(success=False)

        assert circuit_breaker.is_open
        assert circuit_breaker.get_time_until_reset() == 30

        clock.advance(29)
        assert not await circuit_breaker.acquire()

    @pytest.mark.asyncio
    async def test_release_trial_returns_permit(self, circuit_breaker, clock):
        await self._open(circuit_breaker)
        clock.advance(30)

        assert await circuit_breaker.acquire()
        await circuit_breaker.release_trial()

        assert circuit_breaker.state == CircuitState.HALF_OPEN
        assert await circuit_breaker.acquire()

    @pytest.mark.asyncio
    async def test_late_success_from_closed_does_not_close_half_open(
        self, circuit_breaker, clock
    ):
        slow = await circuit_breaker.acquire()
        await self._open(circuit_breaker)
        clock.advance(31)

        trial = await circuit_breaker.acquire()
        assert trial.state == CircuitState.HALF_OPEN

        await circuit_breaker.record(success=True, permit=slow)
        assert circuit_breaker.state == CircuitState.HALF_OPEN
        assert not await circuit_breaker.acquire()

        await circuit_breaker.record(success=True, permit=trial)
        assert circuit_breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_late_failure_from_closed_does_not_reopen(self, circuit_breaker, clock):
        slow = await circuit_breaker.acquire()
        await self._open(circuit_breaker)
        clock.advance(30)
        trial = await circuit_breaker.acquire()

        await circuit_breaker.record(success=False, permit=slow)
        await circuit_breaker.release_trial(slow)
        assert circuit_breaker.state == CircuitState.HALF_OPEN
        assert not await circuit_breaker.acquire()

        await circuit_breaker.record(success=False, permit=trial)
        assert circuit_breaker.is_open

    @pytest.mark.asyncio
    async def test_permit_tracks_epoch(self, circuit_breaker):
        permit = await circuit_breaker.acquire()
        assert circuit_breaker.is_current(permit)

        await self._open(circuit_breaker)
        assert not circuit_breaker.is_current(permit)
        assert circuit_breaker.is_current(None)

    @pytest.mark.asyncio
    async def test_reset(self, circuit_breaker):
        await self._open(circuit_breaker)
        circuit_breaker.reset()

        assert circuit_breaker.state == CircuitState.CLOSED
        assert await circuit_breaker.acquire()

    @pytest.mark.asyncio
    async def test_status(self, circuit_breaker, clock):
        await self._open(circuit_breaker)
        clock.advance(10)

        status = circuit_breaker.get_status()
        assert status["state"] == "OPEN"
        assert status["time_until_reset"] == 20
        assert status["seconds_since_last_failure"] == 10

    def test_minimum_calls_cannot_exceed_window(self):
        with pytest.raises(ValueError):
            BreakerConfig(sliding_window_size=3, minimum_calls=5)

    def test_threshold_must_be_a_percentage(self):
        with pytest.raises(ValueError):
            BreakerConfig(failure_rate_threshold=0)
        with pytest.raises(ValueError):
            BreakerConfig(failure_rate_threshold=150)


@pytest.mark.unit
class TestCircuitBreakerRegistry:
    """Test per-dependency isolation."""

    @pytest.mark.asyncio
    async def test_breakers_are_independent(self, clock):
        registry = CircuitBreakerRegistry(
            BreakerConfig(sliding_window_size=2, minimum_calls=1), clock=clock
        )
        await registry.get("recipe-scraper").record(success=False)

        assert registry.get_open_circuits() == ["recipe-scraper"]
        assert await registry.get("media-manager").acquire()

        assert registry.reset("recipe-scraper")
        assert registry.get_open_circuits() == []
        assert not registry.reset("unknown")

    def test_replace_installs_new_config(self):
        registry = CircuitBreakerRegistry()
        original = registry.get("recipe-scraper")
        replaced = registry.replace("recipe-scraper", BreakerConfig(minimum_calls=1))

        assert replaced is not original
        assert registry.get("recipe-scraper").config.minimum_calls == 1
