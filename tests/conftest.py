"""Shared test fixtures: a controllable clock, instant backoff and invoker builders."""

from datetime import timedelta

import pytest

from recipe_manager.services.config import BreakerConfig, DependencyPolicy, RetryPlan
from recipe_manager.services.invoker import ResilientInvoker


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Backoff sleep that returns immediately and records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


def build_policy(name: str = "recipe-scraper", **overrides) -> DependencyPolicy:
    """Policy with no backoff delay and a breaker that stays closed unless asked."""
    values = {
        "name": name,
        "retry": RetryPlan(max_attempts=3, initial_wait=0, max_wait=0),
        "breaker": BreakerConfig(
            failure_rate_threshold=50,
            sliding_window_size=10,
            minimum_calls=5,
            cool_down=timedelta(seconds=30),
        ),
    }
    values.update(overrides)
    return DependencyPolicy(**values)


@pytest.fixture
def make_invoker(clock, sleep):
    def factory(*policies: DependencyPolicy, **kwargs) -> ResilientInvoker:
        return ResilientInvoker(policies, clock=clock, sleep=sleep, **kwargs)

    return factory


@pytest.fixture
def make_policy():
    return build_policy
