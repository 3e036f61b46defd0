"""
Media manager client for recipe media lookups and health.
"""

from datetime import datetime
from enum import Enum
from typing import Hashable

from loguru import logger
from pydantic import BaseModel

from recipe_manager.clients.base import BaseServiceClient
from recipe_manager.services.fallback import FallbackStrategy
from recipe_manager.services.outcomes import CallContext, FallbackReason


class HealthStatus(str, Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"


class DependencyCheck(BaseModel):
    status: HealthStatus | None = None
    message: str | None = None
    response_time_ms: int | None = None


class HealthChecks(BaseModel):
    database: DependencyCheck | None = None
    storage: DependencyCheck | None = None
    overall: HealthStatus | None = None


class MediaHealth(BaseModel):
    status: HealthStatus
    timestamp: datetime | None = None
    service: str | None = None
    version: str | None = None
    response_time_ms: int | None = None
    checks: HealthChecks | None = None


def media_ids_fallback(key: Hashable, reason: FallbackReason) -> list[int]:
    logger.warning(
        f"Media manager service unavailable for {key!r} media IDs, returning empty list: {reason}"
    )
    return []


def health_fallback(key: Hashable, reason: FallbackReason) -> MediaHealth:
    logger.warning(f"Media manager service unavailable for health check: {reason}")
    return MediaHealth(
        status=HealthStatus.DEGRADED,
        timestamp=datetime.now(),
        service="media-manager",
        checks=HealthChecks(overall=HealthStatus.DEGRADED),
    )


MEDIA_IDS_FALLBACK = FallbackStrategy.empty_default(media_ids_fallback, empty=[])
HEALTH_FALLBACK = FallbackStrategy.empty_default(health_fallback)


class MediaManagerClient(BaseServiceClient):
    """Media manager client."""

    SERVICE_ID = "media-manager"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def get_media_ids_by_recipe(
        self,
        recipe_id: int,
        context: CallContext | None = None,
    ) -> list[int]:
        """Media IDs attached to a recipe, empty when degraded."""
        context = CallContext.ensure(context)

        async def fetch() -> list[int]:
            data = await self.transport.get_json(
                self.url(f"/media/recipe/{recipe_id}"), context
            )
            return [int(media_id) for media_id in data or []]

        return await self.invoker.call(
            self.SERVICE_ID,
            ("recipe", recipe_id),
            fetch,
            context=context,
            fallback=MEDIA_IDS_FALLBACK,
        )

    async def get_health(self, context: CallContext | None = None) -> MediaHealth:
        """Media manager health, DEGRADED when it cannot be reached."""
        context = CallContext.ensure(context)

        async def fetch() -> MediaHealth:
            data = await self.transport.get_json(self.url("/health"), context)
            return MediaHealth.model_validate(data)

        # Health is always live.
        return await self.invoker.call(
            self.SERVICE_ID,
            None,
            fetch,
            context=context,
            fallback=HEALTH_FALLBACK,
        )
