"""
MetricsRecorder - Per-dependency call, failure and latency accounting.

The recorder always keeps an in-memory snapshot (used by the health surface)
and forwards every event to an injected MetricsSink. Sinks never affect call
semantics: their errors are logged and swallowed.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger
from prometheus_client import CollectorRegistry, Counter, Histogram

from recipe_manager.services.outcomes import (
    CallOutcome,
    CircuitOpen,
    Failure,
    FallbackReason,
    TimedOut,
)


class MetricsSink(Protocol):
    def record_call(self, dependency: str, latency: float) -> None: ...

    def record_failure(self, dependency: str, kind: str) -> None: ...

    def record_rejection(self, dependency: str) -> None: ...

    def record_fallback(self, dependency: str, cause: str) -> None: ...


class NullMetricsSink:
    """Sink used when metrics export is not configured."""

    def record_call(self, dependency: str, latency: float) -> None:
        pass

    def record_failure(self, dependency: str, kind: str) -> None:
        pass

    def record_rejection(self, dependency: str) -> None:
        pass

    def record_fallback(self, dependency: str, cause: str) -> None:
        pass


class PrometheusMetricsSink:
    """Exports dependency metrics to an explicit Prometheus registry."""

    def __init__(self, registry: CollectorRegistry):
        self.registry = registry
        self.calls = Counter(
            "external_service_calls_total",
            "Total number of external service call attempts",
            ["service"],
            registry=registry,
        )
        self.failures = Counter(
            "external_service_failures_total",
            "Total number of failed external service call attempts",
            ["service", "kind"],
            registry=registry,
        )
        self.response_time = Histogram(
            "external_service_response_time_seconds",
            "Response time of external service call attempts",
            ["service"],
            registry=registry,
        )
        self.rejections = Counter(
            "external_service_rejections_total",
            "Calls short-circuited by an open circuit breaker",
            ["service"],
            registry=registry,
        )
        self.fallbacks = Counter(
            "external_service_fallbacks_total",
            "Fallback values served instead of live results",
            ["service", "cause"],
            registry=registry,
        )

    def record_call(self, dependency: str, latency: float) -> None:
        self.calls.labels(service=dependency).inc()
        self.response_time.labels(service=dependency).observe(latency)

    def record_failure(self, dependency: str, kind: str) -> None:
        self.failures.labels(service=dependency, kind=kind).inc()

    def record_rejection(self, dependency: str) -> None:
        self.rejections.labels(service=dependency).inc()

    def record_fallback(self, dependency: str, cause: str) -> None:
        self.fallbacks.labels(service=dependency, cause=cause).inc()


@dataclass
class DependencyMetrics:
    """In-memory metrics for one dependency."""

    calls: int = 0
    failures: int = 0
    rejections: int = 0
    fallbacks: int = 0
    last_latency: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "rejections": self.rejections,
            "fallbacks": self.fallbacks,
            "last_latency_ms": (
                round(self.last_latency * 1000, 2)
                if self.last_latency is not None
                else None
            ),
        }


class MetricsRecorder:
    """
    Usage:
        recorder = MetricsRecorder(PrometheusMetricsSink(CollectorRegistry()))
        recorder.record(Success("recipe-scraper", latency=0.12, value=data))
        recorder.snapshot("recipe-scraper").last_latency   # 0.12
    """

    def __init__(self, sink: MetricsSink | None = None):
        self.sink: MetricsSink = sink or NullMetricsSink()
        self._metrics: dict[str, DependencyMetrics] = {}

    def _get(self, dependency: str) -> DependencyMetrics:
        metrics = self._metrics.get(dependency)
        if metrics is None:
            metrics = DependencyMetrics()
            self._metrics[dependency] = metrics
        return metrics

    def record(self, outcome: CallOutcome) -> None:
        """Record one attempt outcome (or a circuit rejection)."""
        metrics = self._get(outcome.dependency)

        if isinstance(outcome, CircuitOpen):
            metrics.rejections += 1
            self._emit("record_rejection", outcome.dependency)
            return

        metrics.calls += 1
        metrics.last_latency = outcome.latency
        self._emit("record_call", outcome.dependency, outcome.latency)

        if isinstance(outcome, (Failure, TimedOut)):
            metrics.failures += 1
            self._emit("record_failure", outcome.dependency, outcome.kind.value)

    def record_fallback(self, dependency: str, reason: FallbackReason) -> None:
        self._get(dependency).fallbacks += 1
        self._emit("record_fallback", dependency, reason.cause.value)

    def snapshot(self, dependency: str) -> DependencyMetrics:
        return self._get(dependency)

    def get_all(self) -> dict[str, dict[str, Any]]:
        return {name: m.to_dict() for name, m in self._metrics.items()}

    def _emit(self, method: str, *args: Any) -> None:
        try:
            getattr(self.sink, method)(*args)
        except Exception as e:
            logger.warning(f"Metrics sink {method} failed: {e}")
