"""
Wiring of the external service clients from settings.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger
from prometheus_client import CollectorRegistry

from recipe_manager.clients.media_manager import MEDIA_IDS_FALLBACK, MediaManagerClient
from recipe_manager.clients.notification import (
    PUBLISHED_FALLBACK,
    NotificationServiceClient,
)
from recipe_manager.clients.recipe_scraper import (
    SHOPPING_INFO_FALLBACK,
    RecipeScraperClient,
)
from recipe_manager.clients.user_management import (
    PREFERENCES_FALLBACK,
    UserManagementClient,
)
from recipe_manager.services.classifier import ErrorClassifier
from recipe_manager.services.config import (
    BackoffKind,
    BreakerConfig,
    BreakerRecording,
    DependencyPolicy,
    RetryPlan,
)
from recipe_manager.services.http import HttpTransport
from recipe_manager.services.invoker import ResilientInvoker
from recipe_manager.services.metrics import MetricsRecorder, PrometheusMetricsSink
from recipe_manager.settings import Settings


@dataclass
class ExternalServices:
    """All external service clients sharing one invoker and one transport."""

    invoker: ResilientInvoker
    transport: HttpTransport
    recipe_scraper: RecipeScraperClient
    user_management: UserManagementClient
    notifications: NotificationServiceClient
    media_manager: MediaManagerClient
    metrics_registry: CollectorRegistry | None = None

    def health(self) -> dict[str, Any]:
        return self.invoker.health()

    async def close(self) -> None:
        await self.transport.close()
        await self.invoker.close()

    async def __aenter__(self) -> "ExternalServices":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def retry_plan(settings: Settings) -> RetryPlan:
    return RetryPlan(
        max_attempts=settings.retry_max_attempts,
        backoff=BackoffKind(settings.retry_backoff),
        initial_wait=settings.retry_initial_wait,
        multiplier=settings.retry_multiplier,
        max_wait=settings.retry_max_wait,
    )


def breaker_config(settings: Settings) -> BreakerConfig:
    return BreakerConfig(
        failure_rate_threshold=settings.breaker_failure_rate_threshold,
        sliding_window_size=settings.breaker_sliding_window_size,
        minimum_calls=settings.breaker_minimum_calls,
        cool_down=timedelta(seconds=settings.breaker_cool_down_seconds),
        half_open_max_calls=settings.breaker_half_open_max_calls,
        recording=BreakerRecording(settings.breaker_recording),
    )


def build_policies(settings: Settings) -> list[DependencyPolicy]:
    """One policy per dependency, sharing timeouts, retry plan and breaker thresholds."""
    common: dict[str, Any] = {
        "connect_timeout": settings.connect_timeout,
        "read_timeout": settings.read_timeout,
        "retry": retry_plan(settings),
        "breaker": breaker_config(settings),
    }
    return [
        DependencyPolicy(
            name=RecipeScraperClient.SERVICE_ID,
            enabled=settings.recipe_scraper_enabled,
            cache_ttl=timedelta(minutes=settings.recipe_scraper_cache_ttl_minutes),
            cache_max_size=settings.recipe_scraper_cache_size,
            fallback=SHOPPING_INFO_FALLBACK,
            **common,
        ),
        DependencyPolicy(
            name=UserManagementClient.SERVICE_ID,
            enabled=settings.user_management_enabled,
            cache_ttl=timedelta(minutes=settings.user_management_cache_ttl_minutes),
            cache_max_size=settings.user_management_cache_size,
            fallback=PREFERENCES_FALLBACK,
            **common,
        ),
        DependencyPolicy(
            name=NotificationServiceClient.SERVICE_ID,
            enabled=settings.notification_service_enabled,
            cache_enabled=False,
            deduplicate=False,
            fallback=PUBLISHED_FALLBACK,
            **common,
        ),
        DependencyPolicy(
            name=MediaManagerClient.SERVICE_ID,
            enabled=settings.media_manager_enabled,
            cache_ttl=timedelta(minutes=settings.media_manager_cache_ttl_minutes),
            cache_max_size=settings.media_manager_cache_size,
            fallback=MEDIA_IDS_FALLBACK,
            **common,
        ),
    ]


def build_external_services(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ExternalServices:
    """
    Build the invoker and all clients from settings.

    Args:
        settings: Application settings
        http_client: Optional pre-built httpx client (tests, custom transports)
        clock: Monotonic clock for cache TTLs and breaker cool-down
        sleep: Backoff sleep used between retries

    Returns:
        ExternalServices bundle; close it when done
    """
    metrics_registry = None
    if settings.metrics_enabled:
        metrics_registry = CollectorRegistry()
        metrics = MetricsRecorder(PrometheusMetricsSink(metrics_registry))
    else:
        metrics = MetricsRecorder()

    invoker = ResilientInvoker(
        build_policies(settings),
        metrics=metrics,
        classifier=ErrorClassifier(default_dependency=settings.default_dependency),
        max_concurrency=settings.max_concurrent_calls,
        max_workers=settings.worker_threads,
        clock=clock,
        sleep=sleep,
    )
    transport = HttpTransport(
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
        client=http_client,
    )

    logger.info(
        f"External services configured "
        f"(recording={settings.breaker_recording}, metrics={settings.metrics_enabled})"
    )
    return ExternalServices(
        invoker=invoker,
        transport=transport,
        recipe_scraper=RecipeScraperClient(
            invoker, transport, settings.recipe_scraper_url
        ),
        user_management=UserManagementClient(
            invoker, transport, settings.user_management_url
        ),
        notifications=NotificationServiceClient(
            invoker, transport, settings.notification_service_url
        ),
        media_manager=MediaManagerClient(invoker, transport, settings.media_manager_url),
        metrics_registry=metrics_registry,
    )
