"""Retry execution for dependency calls, built on tenacity."""

import asyncio
from typing import Awaitable, Callable, TypeVar

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)
from tenacity.stop import stop_base

from recipe_manager.services.circuit_breaker import BreakerPermit, CircuitBreaker
from recipe_manager.services.config import BackoffKind, RetryPlan
from recipe_manager.services.errors import DependencyCallError

T = TypeVar("T")


class stop_when_circuit_open(stop_base):
    """
    Stop retrying as soon as the dependency's breaker has opened, or has
    moved on from the state the call was admitted in.
    """

    def __init__(
        self, breaker: CircuitBreaker | None, permit: BreakerPermit | None = None
    ):
        self.breaker = breaker
        self.permit = permit

    def __call__(self, retry_state: RetryCallState) -> bool:
        if self.breaker is None:
            return False
        return self.breaker.is_open or not self.breaker.is_current(self.permit)


def is_retryable(exception: BaseException) -> bool:
    """Only classified, retryable dependency failures are retried."""
    return isinstance(exception, DependencyCallError) and exception.retryable


def build_wait(plan: RetryPlan):
    """Tenacity wait strategy for a retry plan."""
    if plan.backoff == BackoffKind.FIXED:
        return wait_fixed(plan.initial_wait)
    return wait_exponential(
        multiplier=plan.initial_wait,
        exp_base=plan.multiplier,
        max=plan.max_wait,
    )


class RetryExecutor:
    """
    Re-issues failed attempts according to a RetryPlan.

    Stops on a non-retryable failure, after max_attempts, or when the
    breaker opens mid-sequence. The last failure is re-raised.
    """

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep

    async def execute(
        self,
        attempt_fn: Callable[[], Awaitable[T]],
        plan: RetryPlan,
        breaker: CircuitBreaker | None = None,
        service_id: str = "unknown",
        permit: BreakerPermit | None = None,
    ) -> T:
        retrying = AsyncRetrying(
            stop=(
                stop_after_attempt(plan.max_attempts)
                | stop_when_circuit_open(breaker, permit)
            ),
            wait=build_wait(plan),
            retry=retry_if_exception(is_retryable),
            before_sleep=self._before_sleep(service_id, plan),
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(attempt_fn)

    @staticmethod
    def _before_sleep(service_id: str, plan: RetryPlan):
        def callback(retry_state: RetryCallState) -> None:
            exception = retry_state.outcome.exception() if retry_state.outcome else None
            wait = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.info(
                f"Retrying '{service_id}' "
                f"(attempt {retry_state.attempt_number}/{plan.max_attempts} failed, "
                f"waiting {wait:.2f}s): {exception}"
            )

        return callback
