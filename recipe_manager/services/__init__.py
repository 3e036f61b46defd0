"""
Service layer infrastructure - resilience patterns for external dependency calls.

Provides:
- ResultCache: Per-dependency TTL + LRU result cache
- CircuitBreaker: Sliding-window breaker that short-circuits unhealthy dependencies
- RetryExecutor: Bounded retries of transient failures (tenacity)
- DeadlineGovernor: Per-attempt time bound
- FallbackResolver: Safe defaults when a call gives up
- MetricsRecorder: Per-dependency call/failure/latency accounting
- RequestDeduplicator: Shares concurrent identical calls
- ResilientInvoker: Single call path combining all patterns
"""

from recipe_manager.services.errors import (
    ServiceError,
    DependencyCallError,
    RequestTimeoutError,
    CircuitOpenError,
    DependencyUnavailableError,
)
from recipe_manager.services.outcomes import (
    FailureKind,
    CallOutcome,
    Success,
    Failure,
    TimedOut,
    CircuitOpen,
    FallbackCause,
    FallbackReason,
    CallContext,
)
from recipe_manager.services.config import (
    BackoffKind,
    BreakerRecording,
    RetryPlan,
    BreakerConfig,
    DependencyPolicy,
)
from recipe_manager.services.classifier import ErrorClassifier
from recipe_manager.services.cache import MISS, ResultCache, CacheEntry, CacheStats
from recipe_manager.services.circuit_breaker import (
    BreakerPermit,
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
)
from recipe_manager.services.retry import RetryExecutor
from recipe_manager.services.deadline import DeadlineGovernor
from recipe_manager.services.fallback import (
    FallbackKind,
    FallbackStrategy,
    FallbackResolver,
)
from recipe_manager.services.metrics import (
    MetricsSink,
    NullMetricsSink,
    PrometheusMetricsSink,
    MetricsRecorder,
)
from recipe_manager.services.deduplicator import RequestDeduplicator
from recipe_manager.services.http import HttpTransport
from recipe_manager.services.invoker import ResilientInvoker

__all__ = [
    # Errors
    "ServiceError",
    "DependencyCallError",
    "RequestTimeoutError",
    "CircuitOpenError",
    "DependencyUnavailableError",
    # Outcomes
    "FailureKind",
    "CallOutcome",
    "Success",
    "Failure",
    "TimedOut",
    "CircuitOpen",
    "FallbackCause",
    "FallbackReason",
    "CallContext",
    # Config
    "BackoffKind",
    "BreakerRecording",
    "RetryPlan",
    "BreakerConfig",
    "DependencyPolicy",
    # Classification
    "ErrorClassifier",
    # Cache
    "MISS",
    "ResultCache",
    "CacheEntry",
    "CacheStats",
    # Circuit Breaker
    "BreakerPermit",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitState",
    # Retry / Deadline
    "RetryExecutor",
    "DeadlineGovernor",
    # Fallback
    "FallbackKind",
    "FallbackStrategy",
    "FallbackResolver",
    # Metrics
    "MetricsSink",
    "NullMetricsSink",
    "PrometheusMetricsSink",
    "MetricsRecorder",
    # Deduplicator
    "RequestDeduplicator",
    # Transport / Invoker
    "HttpTransport",
    "ResilientInvoker",
]
