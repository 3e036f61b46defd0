"""
Per-dependency resilience configuration.

A DependencyPolicy carries everything the invoker needs to call one named
dependency: cache, breaker, retry, deadline and fallback settings.
"""

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from recipe_manager.services.fallback import FallbackStrategy


class BackoffKind(str, Enum):
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class BreakerRecording(str, Enum):
    """Which outcomes feed the breaker's sliding window."""

    PER_ATTEMPT = "attempt"  # every attempt, retries included
    PER_CALL = "call"  # only the final outcome after retries


class RetryPlan(BaseModel):
    """Retry configuration. Stateless."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1)
    backoff: BackoffKind = BackoffKind.EXPONENTIAL
    initial_wait: float = Field(default=1.0, ge=0)  # seconds
    multiplier: float = Field(default=2.0, gt=0)
    max_wait: float = Field(default=10.0, ge=0)  # seconds


class BreakerConfig(BaseModel):
    """Circuit breaker thresholds."""

    model_config = ConfigDict(frozen=True)

    failure_rate_threshold: float = Field(default=50.0, gt=0, le=100)  # percent
    sliding_window_size: int = Field(default=10, ge=1)
    minimum_calls: int = Field(default=5, ge=1)
    cool_down: timedelta = timedelta(seconds=30)
    half_open_max_calls: int = Field(default=1, ge=1)
    recording: BreakerRecording = BreakerRecording.PER_ATTEMPT

    @model_validator(mode="after")
    def _window_holds_minimum(self) -> "BreakerConfig":
        if self.minimum_calls > self.sliding_window_size:
            raise ValueError("minimum_calls cannot exceed sliding_window_size")
        return self


class DependencyPolicy(BaseModel):
    """Configuration for a specific dependency."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    enabled: bool = True
    degradable: bool = True
    cache_enabled: bool = True
    cache_ttl: timedelta = timedelta(minutes=30)
    cache_max_size: int = Field(default=1000, ge=1)
    deduplicate: bool = True
    connect_timeout: float = Field(default=5.0, gt=0)  # seconds
    read_timeout: float = Field(default=10.0, gt=0)  # seconds
    retry: RetryPlan = Field(default_factory=RetryPlan)
    breaker: BreakerConfig = Field(default_factory=BreakerConfig)
    fallback: FallbackStrategy | None = None

    @property
    def deadline(self) -> float:
        """Hard bound for a single attempt."""
        return self.connect_timeout + self.read_timeout
