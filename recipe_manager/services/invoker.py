"""
ResilientInvoker - Single call path for every outbound dependency call.

Combines:
- ResultCache for memoizing successful reads
- RequestDeduplicator for sharing concurrent identical calls
- CircuitBreaker for short-circuiting unhealthy dependencies
- DeadlineGovernor for bounding each attempt
- ErrorClassifier + RetryExecutor for retrying transient failures
- FallbackResolver for safe defaults when the call path gives up
- MetricsRecorder for per-attempt accounting
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Hashable, Iterable

from loguru import logger

from recipe_manager.services.cache import MISS, ResultCache
from recipe_manager.services.circuit_breaker import CircuitBreakerRegistry
from recipe_manager.services.classifier import ErrorClassifier
from recipe_manager.services.config import BreakerRecording, DependencyPolicy
from recipe_manager.services.deadline import DeadlineGovernor, Operation
from recipe_manager.services.deduplicator import RequestDeduplicator
from recipe_manager.services.errors import (
    CircuitOpenError,
    DependencyCallError,
    DependencyUnavailableError,
    RequestTimeoutError,
)
from recipe_manager.services.fallback import FallbackResolver, FallbackStrategy
from recipe_manager.services.metrics import MetricsRecorder
from recipe_manager.services.outcomes import (
    CallContext,
    CircuitOpen,
    Failure,
    FallbackCause,
    FallbackReason,
    Success,
    TimedOut,
)
from recipe_manager.services.retry import RetryExecutor


@dataclass(frozen=True)
class _LiveResult:
    """Result of the shared live path: a value, or the reason it gave up."""

    value: Any = None
    reason: FallbackReason | None = None


class ResilientInvoker:
    """
    Orchestrates cache, circuit breaker, retry, deadline and fallback for
    calls to named dependencies.

    Usage:
        invoker = ResilientInvoker([
            DependencyPolicy(
                name="recipe-scraper",
                cache_ttl=timedelta(minutes=30),
                fallback=FallbackStrategy.empty_default(
                    lambda recipe_id, reason: RecipeShoppingInfo.empty(recipe_id)
                ),
            ),
        ])

        async def fetch():
            return await transport.get_json(url)

        info = await invoker.call("recipe-scraper", 123, fetch)

        # Future-style handle
        task = invoker.submit("recipe-scraper", 123, fetch)
        task.add_done_callback(...)
    """

    def __init__(
        self,
        policies: Iterable[DependencyPolicy] = (),
        metrics: MetricsRecorder | None = None,
        classifier: ErrorClassifier | None = None,
        max_concurrency: int = 64,
        max_workers: int = 8,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        debug: bool = False,
    ):
        self._debug = debug

        # Initialize components
        self._cache = ResultCache(clock=clock, debug=debug)
        self._circuit_breakers = CircuitBreakerRegistry(clock=clock)
        self._deduplicator = RequestDeduplicator(debug=debug)
        self._fallbacks = FallbackResolver()
        self._retry = RetryExecutor(sleep=sleep)
        self._governor = DeadlineGovernor(max_workers=max_workers)
        self._classifier = classifier or ErrorClassifier()
        self._metrics = metrics or MetricsRecorder()
        self._slots = asyncio.Semaphore(max_concurrency)

        # Dependency policies
        self._policies: dict[str, DependencyPolicy] = {}
        for policy in policies:
            self.register(policy)

    # Configuration

    def register(self, policy: DependencyPolicy) -> None:
        """Register or replace a dependency policy. Safe at runtime."""
        self._policies[policy.name] = policy

        self._cache.configure(
            policy.name, max_size=policy.cache_max_size, ttl=policy.cache_ttl
        )
        breaker = self._circuit_breakers.get(policy.name, policy.breaker)
        if breaker.config != policy.breaker:
            self._circuit_breakers.replace(policy.name, policy.breaker)
        if policy.fallback is not None:
            self._fallbacks.register(policy.name, policy.fallback)

        logger.debug(f"Registered dependency: {policy.name}")

    def policy(self, dependency: str) -> DependencyPolicy:
        """Get the policy for a dependency, registering defaults on first use."""
        policy = self._policies.get(dependency)
        if policy is None:
            policy = DependencyPolicy(name=dependency)
            self.register(policy)
        return policy

    def set_enabled(self, dependency: str, enabled: bool) -> None:
        """Enable or disable a dependency without restarting."""
        policy = self.policy(dependency)
        self._policies[dependency] = policy.model_copy(update={"enabled": enabled})
        logger.info(f"Dependency '{dependency}' {'enabled' if enabled else 'disabled'}")

    def is_registered(self, dependency: str) -> bool:
        return dependency in self._policies

    def is_available(self, dependency: str) -> bool:
        """
        True when the dependency is registered, enabled and its circuit is
        not open. Never registers the dependency.
        """
        policy = self._policies.get(dependency)
        if policy is None:
            return False
        return policy.enabled and not self._circuit_breakers.get(dependency).is_open

    # Call path

    def submit(
        self,
        dependency: str,
        key: Hashable | None,
        operation: Operation,
        **kwargs: Any,
    ) -> "asyncio.Task[Any]":
        """Schedule a call and return its task. Must be used inside a running loop."""
        return asyncio.create_task(self.call(dependency, key, operation, **kwargs))

    async def call(
        self,
        dependency: str,
        key: Hashable | None,
        operation: Operation,
        context: CallContext | None = None,
        fallback: FallbackStrategy | None = None,
        degradable: bool | None = None,
        cache_ttl: timedelta | None = None,
    ) -> Any:
        """
        Call a dependency with resilience patterns.

        Args:
            dependency: Name of the dependency (partition key for all state)
            key: Identifies the request within the dependency; None disables
                caching and deduplication for this call
            operation: Zero-argument coroutine function (or blocking callable)
                performing one attempt
            context: Call context carrying the correlation id
            fallback: Override the dependency's fallback strategy
            degradable: Override whether failures degrade to a fallback
            cache_ttl: Override the dependency's cache TTL

        Returns:
            The live value, a cached value, or a fallback value

        Raises:
            DependencyUnavailableError: Only for non-degradable calls that gave up
        """
        context = CallContext.ensure(context)
        policy = self.policy(dependency)
        log = logger.bind(dependency=dependency, correlation_id=context.correlation_id)

        if not policy.enabled:
            log.info(f"Dependency '{dependency}' is disabled, skipping call for {key!r}")
            reason = FallbackReason(FallbackCause.DISABLED, message="Service disabled")
            return self._give_up(policy, key, reason, fallback, degradable)

        cacheable = policy.cache_enabled and key is not None
        if cacheable:
            cached = await self._cache.get(dependency, key)
            if cached is not MISS:
                return cached

        async def live() -> _LiveResult:
            return await self._execute(
                policy, key, operation, context, cacheable, cache_ttl
            )

        if policy.deduplicate and key is not None:
            result = await self._deduplicator.dedupe((dependency, key), live)
        else:
            result = await live()

        if result.reason is not None:
            return self._give_up(policy, key, result.reason, fallback, degradable)
        return result.value

    async def _execute(
        self,
        policy: DependencyPolicy,
        key: Hashable | None,
        operation: Operation,
        context: CallContext,
        cacheable: bool,
        cache_ttl: timedelta | None,
    ) -> _LiveResult:
        """Circuit check, attempts with retry, outcome recording, cache store."""
        dependency = policy.name
        log = logger.bind(dependency=dependency, correlation_id=context.correlation_id)
        breaker = self._circuit_breakers.get(dependency)
        per_attempt = policy.breaker.recording == BreakerRecording.PER_ATTEMPT

        async with self._slots:
            permit = await breaker.acquire()
            if permit is None:
                reset_after = breaker.get_time_until_reset() or 0.0
                self._metrics.record(
                    CircuitOpen(dependency, reset_after_seconds=reset_after)
                )
                error = CircuitOpenError(dependency, reset_after)
                log.warning(str(error))
                return _LiveResult(
                    reason=FallbackReason(FallbackCause.CIRCUIT_OPEN, message=str(error))
                )

            async def attempt() -> Any:
                started = time.perf_counter()
                try:
                    value = await self._governor.run(
                        dependency, operation, policy.deadline
                    )
                except Exception as exc:
                    error = self._classifier.classify_exception(
                        dependency, exc, policy.deadline
                    )
                    latency = time.perf_counter() - started
                    if isinstance(error, RequestTimeoutError):
                        self._metrics.record(
                            TimedOut(dependency, latency, timeout=error.timeout)
                        )
                    else:
                        self._metrics.record(
                            Failure(
                                dependency,
                                latency,
                                kind=error.kind,
                                status_code=error.status_code,
                                message=str(error),
                            )
                        )
                    if per_attempt:
                        await breaker.record(success=False, permit=permit)
                    log.warning(
                        f"Call to '{dependency}' for {key!r} failed "
                        f"({error.kind.value}, retryable={error.retryable}): {error}"
                    )
                    if error is exc:
                        raise
                    raise error from exc

                self._metrics.record(
                    Success(dependency, time.perf_counter() - started, value=value)
                )
                if per_attempt:
                    await breaker.record(success=True, permit=permit)
                return value

            try:
                value = await self._retry.execute(
                    attempt,
                    policy.retry,
                    breaker=breaker,
                    service_id=dependency,
                    permit=permit,
                )
            except asyncio.CancelledError:
                # Abandoned by the caller: nothing is recorded or cached.
                await breaker.release_trial(permit)
                raise
            except DependencyCallError as error:
                if not error.retryable:
                    cause = FallbackCause.NON_RETRYABLE
                elif breaker.is_open or not breaker.is_current(permit):
                    cause = FallbackCause.CIRCUIT_OPEN
                else:
                    cause = FallbackCause.RETRIES_EXHAUSTED
                if not per_attempt:
                    await breaker.record(success=False, permit=permit)
                return _LiveResult(
                    reason=FallbackReason(
                        cause,
                        kind=error.kind,
                        status_code=error.status_code,
                        message=str(error),
                    )
                )

            if not per_attempt:
                await breaker.record(success=True, permit=permit)

        if cacheable:
            await self._cache.put(dependency, key, value, ttl=cache_ttl)
        log.debug(f"Call to '{dependency}' for {key!r} succeeded")
        return _LiveResult(value=value)

    def _give_up(
        self,
        policy: DependencyPolicy,
        key: Hashable | None,
        reason: FallbackReason,
        fallback: FallbackStrategy | None,
        degradable: bool | None,
    ) -> Any:
        degrade = policy.degradable if degradable is None else degradable
        if not degrade:
            raise DependencyUnavailableError(
                policy.name,
                reason.kind,
                reason.message or reason.cause.value,
                status_code=reason.status_code,
                retryable=reason.retryable,
                circuit_open=reason.cause == FallbackCause.CIRCUIT_OPEN,
            )

        self._metrics.record_fallback(policy.name, reason)
        return self._fallbacks.resolve(policy.name, key, reason, strategy=fallback)

    # Lifecycle

    async def close(self) -> None:
        """Cancel in-flight calls and release worker threads."""
        await self._deduplicator.cancel_all()
        self._governor.shutdown()
        logger.debug("ResilientInvoker closed")

    async def __aenter__(self) -> "ResilientInvoker":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    # Health and status methods

    def dependency_health(self, dependency: str) -> dict[str, Any]:
        """Health snapshot for one dependency. Unknown names are not registered."""
        policy = self._policies.get(dependency)
        if policy is None:
            return {"service_id": dependency, "registered": False, "available": False}

        breaker = self._circuit_breakers.get(dependency)
        return {
            "service_id": dependency,
            "registered": True,
            "enabled": policy.enabled,
            "degradable": policy.degradable,
            "available": self.is_available(dependency),
            "circuit": breaker.get_status(),
            "cache": self._cache.get_stats(dependency).to_dict(),
            "metrics": self._metrics.snapshot(dependency).to_dict(),
        }

    def health(self) -> dict[str, Any]:
        """Get health status of all dependencies."""
        return {
            "dependencies": {
                name: self.dependency_health(name) for name in self._policies
            },
            "open_circuits": self._circuit_breakers.get_open_circuits(),
            "deduplicator": self._deduplicator.get_stats().to_dict(),
        }

    def get_circuit_status(self, dependency: str) -> dict[str, Any]:
        """Get circuit breaker status for a specific dependency."""
        return self._circuit_breakers.get(dependency).get_status()

    def reset_circuit(self, dependency: str) -> bool:
        """Reset circuit breaker for a dependency."""
        return self._circuit_breakers.reset(dependency)

    async def clear_cache(self, dependency: str, key: Hashable | None = None) -> int:
        """Drop cached values for a dependency (or one key of it)."""
        return await self._cache.invalidate(dependency, key)

    @property
    def circuit_breakers(self) -> CircuitBreakerRegistry:
        return self._circuit_breakers

    @property
    def metrics(self) -> MetricsRecorder:
        return self._metrics
