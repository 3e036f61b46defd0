"""
Notification service client.

Notifications are best effort: when the service is unavailable the caller
gets a success-shaped response with nothing queued, so the business
operation that triggered the notification never fails because of it.
"""

from typing import Any, Hashable
from uuid import UUID

from loguru import logger
from pydantic import BaseModel, Field

from recipe_manager.clients.base import BaseServiceClient
from recipe_manager.services.fallback import FallbackStrategy
from recipe_manager.services.outcomes import CallContext, FallbackReason

MIN_RECIPIENTS = 1
MAX_RECIPIENTS = 100


class RecipePublishedRequest(BaseModel):
    recipient_ids: list[UUID] = Field(min_length=MIN_RECIPIENTS, max_length=MAX_RECIPIENTS)
    recipe_id: int


class RecipeLikedRequest(BaseModel):
    recipient_ids: list[UUID] = Field(min_length=MIN_RECIPIENTS, max_length=MAX_RECIPIENTS)
    recipe_id: int
    liker_id: UUID


class RecipeCommentedRequest(BaseModel):
    recipient_ids: list[UUID] = Field(min_length=MIN_RECIPIENTS, max_length=MAX_RECIPIENTS)
    comment_id: int


class QueuedNotification(BaseModel):
    notification_id: int
    recipient_id: UUID


class BatchNotificationResponse(BaseModel):
    notifications: list[QueuedNotification] = Field(default_factory=list)
    queued_count: int = 0
    message: str | None = None


def _not_queued(event: str):
    def factory(key: Hashable, reason: FallbackReason) -> BatchNotificationResponse:
        logger.warning(
            f"Notification service unavailable for recipe {event} notification "
            f"({reason}). Notifications not queued."
        )
        return BatchNotificationResponse(
            notifications=[],
            queued_count=0,
            message=f"Notification service unavailable - recipe {event} notifications not queued",
        )

    return FallbackStrategy.no_op_success(factory, empty=BatchNotificationResponse())


PUBLISHED_FALLBACK = _not_queued("published")
LIKED_FALLBACK = _not_queued("liked")
COMMENTED_FALLBACK = _not_queued("commented")


class NotificationServiceClient(BaseServiceClient):
    """
    Notification service client.

    Usage:
        response = await notifications.notify_recipe_liked(
            RecipeLikedRequest(recipient_ids=[author_id], recipe_id=42, liker_id=user_id)
        )
        response.queued_count   # 0 when the service is unavailable
    """

    SERVICE_ID = "notification-service"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def notify_recipe_published(
        self,
        request: RecipePublishedRequest,
        context: CallContext | None = None,
    ) -> BatchNotificationResponse:
        return await self._notify(
            "/notifications/recipe-published", request, PUBLISHED_FALLBACK, context
        )

    async def notify_recipe_liked(
        self,
        request: RecipeLikedRequest,
        context: CallContext | None = None,
    ) -> BatchNotificationResponse:
        return await self._notify(
            "/notifications/recipe-liked", request, LIKED_FALLBACK, context
        )

    async def notify_recipe_commented(
        self,
        request: RecipeCommentedRequest,
        context: CallContext | None = None,
    ) -> BatchNotificationResponse:
        return await self._notify(
            "/notifications/recipe-commented", request, COMMENTED_FALLBACK, context
        )

    async def _notify(
        self,
        path: str,
        request: BaseModel,
        fallback: FallbackStrategy,
        context: CallContext | None,
    ) -> BatchNotificationResponse:
        context = CallContext.ensure(context)
        payload: dict[str, Any] = request.model_dump(mode="json")

        async def send() -> BatchNotificationResponse:
            data = await self.transport.post_json(self.url(path), payload, context)
            return BatchNotificationResponse.model_validate(data or {})

        # Side effects: never cached, never shared between callers.
        return await self.invoker.call(
            self.SERVICE_ID,
            None,
            send,
            context=context,
            fallback=fallback,
        )
