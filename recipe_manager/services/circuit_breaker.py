"""
CircuitBreaker - Prevents cascading failures by stopping calls to failing dependencies.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Dependency is failing, calls are blocked
- HALF_OPEN: Testing if dependency has recovered

Transitions:
- CLOSED → OPEN: Failure rate over the sliding window reaches the threshold
  (evaluated once minimum_calls outcomes have been observed)
- OPEN → HALF_OPEN: After cool_down expires, on the next admission check
- HALF_OPEN → CLOSED: All permitted trial calls succeed
- HALF_OPEN → OPEN: Any trial call fails (cool-down restarts)

Every transition starts a new epoch. Outcomes are only applied when the
permit they carry was issued in the current epoch, so a slow call admitted
before a transition cannot close or reopen the circuit afterwards.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from loguru import logger

from recipe_manager.services.config import BreakerConfig


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking calls
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass(frozen=True)
class BreakerPermit:
    """Admission ticket: the state and epoch the call was admitted in."""

    state: CircuitState
    epoch: int


class CircuitBreaker:
    """
    Circuit breaker for a single dependency.

    Usage:
        cb = CircuitBreaker("recipe-scraper")

        permit = await cb.acquire()
        if permit is None:
            return fallback()

        try:
            result = await make_request()
        except Exception:
            await cb.record(success=False, permit=permit)
            raise
        await cb.record(success=True, permit=permit)
    """

    def __init__(
        self,
        service_id: str,
        config: BreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service_id = service_id
        self.config = config or BreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._window: deque[bool] = deque(maxlen=self.config.sliding_window_size)
        self._opened_at: float | None = None
        self._last_failure_at: float | None = None
        self._half_open_admitted = 0
        self._half_open_successes = 0
        self._epoch = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    def is_current(self, permit: BreakerPermit | None) -> bool:
        """Whether outcomes under this permit still count. None always counts."""
        return permit is None or permit.epoch == self._epoch

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    @property
    def failure_rate(self) -> float:
        """Failure percentage over the current window."""
        if not self._window:
            return 0.0
        failures = sum(1 for ok in self._window if not ok)
        return failures / len(self._window) * 100

    def _cool_down_elapsed(self) -> bool:
        if self._opened_at is None:
            return True
        return self._clock() >= self._opened_at + self.config.cool_down.total_seconds()

    async def acquire(self) -> BreakerPermit | None:
        """Admission check. Returns None when the call must short-circuit."""
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if not self._cool_down_elapsed():
                    return None
                self._half_open()

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_admitted >= self.config.half_open_max_calls:
                    return None
                self._half_open_admitted += 1

            return BreakerPermit(self._state, self._epoch)

    async def release_trial(self, permit: BreakerPermit | None = None) -> None:
        """Give back a half-open permit whose call was abandoned without an outcome."""
        async with self._lock:
            if not self.is_current(permit):
                return
            if self._state == CircuitState.HALF_OPEN and self._half_open_admitted > 0:
                self._half_open_admitted -= 1

    async def record(self, success: bool, permit: BreakerPermit | None = None) -> None:
        """Record the outcome of a completed call or attempt."""
        async with self._lock:
            if not self.is_current(permit):
                logger.debug(
                    f"Circuit breaker '{self.service_id}' ignored a late outcome "
                    f"admitted while {permit.state.value}"
                )
                return
            if success:
                self._on_success()
            else:
                self._on_failure()

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._half_open_successes += 1
            if self._half_open_successes >= self.config.half_open_max_calls:
                self._close()
        elif self._state == CircuitState.CLOSED:
            self._window.append(True)

    def _on_failure(self) -> None:
        self._last_failure_at = self._clock()

        if self._state == CircuitState.HALF_OPEN:
            # Any failure in half-open reopens the circuit
            self._open()
        elif self._state == CircuitState.CLOSED:
            self._window.append(False)
            if (
                len(self._window) >= self.config.minimum_calls
                and self.failure_rate >= self.config.failure_rate_threshold
            ):
                self._open()

    def _open(self) -> None:
        """Transition to OPEN state."""
        rate = self.failure_rate
        self._state = CircuitState.OPEN
        self._epoch += 1
        self._opened_at = self._clock()
        self._window.clear()
        self._half_open_admitted = 0
        self._half_open_successes = 0
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED (failure rate {rate:.0f}%)"
        )

    def _half_open(self) -> None:
        """Transition to HALF_OPEN state."""
        self._state = CircuitState.HALF_OPEN
        self._epoch += 1
        self._half_open_admitted = 0
        self._half_open_successes = 0
        logger.info(f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN")

    def _close(self) -> None:
        """Transition to CLOSED state."""
        self._state = CircuitState.CLOSED
        self._epoch += 1
        self._window.clear()
        self._opened_at = None
        self._half_open_admitted = 0
        self._half_open_successes = 0
        logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        self._state = CircuitState.CLOSED
        self._epoch += 1
        self._window.clear()
        self._opened_at = None
        self._last_failure_at = None
        self._half_open_admitted = 0
        self._half_open_successes = 0
        logger.info(f"Circuit breaker '{self.service_id}' manually reset")

    def window_size(self) -> int:
        """Number of outcomes currently in the sliding window."""
        return len(self._window)

    def get_time_until_reset(self) -> float | None:
        """Get seconds until circuit transitions to half-open."""
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return None

        reset_at = self._opened_at + self.config.cool_down.total_seconds()
        return max(0.0, reset_at - self._clock())

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "service_id": self.service_id,
            "state": self._state.value,
            "window": len(self._window),
            "failure_rate": round(self.failure_rate, 2),
            "failure_rate_threshold": self.config.failure_rate_threshold,
            "minimum_calls": self.config.minimum_calls,
            "seconds_since_last_failure": (
                round(self._clock() - self._last_failure_at, 3)
                if self._last_failure_at is not None
                else None
            ),
            "time_until_reset": self.get_time_until_reset(),
        }


class CircuitBreakerRegistry:
    """
    Registry for managing one circuit breaker per dependency.

    Usage:
        registry = CircuitBreakerRegistry()
        cb = registry.get("recipe-scraper")
    """

    def __init__(
        self,
        default_config: BreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._breakers: dict[str, CircuitBreaker] = {}
        self._default_config = default_config or BreakerConfig()
        self._clock = clock

    def get(
        self,
        service_id: str,
        config: BreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Get or create a circuit breaker for a dependency."""
        if service_id not in self._breakers:
            self._breakers[service_id] = CircuitBreaker(
                service_id,
                config or self._default_config,
                clock=self._clock,
            )
        return self._breakers[service_id]

    def replace(self, service_id: str, config: BreakerConfig) -> CircuitBreaker:
        """Install a fresh breaker with new thresholds."""
        self._breakers[service_id] = CircuitBreaker(service_id, config, clock=self._clock)
        return self._breakers[service_id]

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all circuit breakers."""
        return {
            service_id: cb.get_status() for service_id, cb in self._breakers.items()
        }

    def reset_all(self) -> None:
        """Reset all circuit breakers."""
        for cb in self._breakers.values():
            cb.reset()
        logger.info(f"Reset {len(self._breakers)} circuit breakers")

    def reset(self, service_id: str) -> bool:
        """Reset a specific circuit breaker."""
        if service_id in self._breakers:
            self._breakers[service_id].reset()
            return True
        return False

    def get_open_circuits(self) -> list[str]:
        """Get list of dependencies with open circuits."""
        return [
            service_id
            for service_id, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]
