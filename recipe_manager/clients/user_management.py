"""
User management client for followers and privacy/notification preferences.

Preferences are privacy-relevant: when the service is unavailable they
degrade to the strictest settings (PRIVATE profile, nothing shown, nothing
allowed), never to permissive ones.
"""

from enum import Enum
from typing import Hashable
from uuid import UUID

from loguru import logger
from pydantic import BaseModel, Field

from recipe_manager.clients.base import BaseServiceClient
from recipe_manager.services.fallback import FallbackStrategy
from recipe_manager.services.outcomes import CallContext, FallbackReason


class ProfileVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    FOLLOWERS_ONLY = "FOLLOWERS_ONLY"
    PRIVATE = "PRIVATE"


class Theme(str, Enum):
    LIGHT = "LIGHT"
    DARK = "DARK"
    AUTO = "AUTO"


class PrivacyPreferences(BaseModel):
    profile_visibility: ProfileVisibility = ProfileVisibility.PRIVATE
    show_email: bool = False
    show_full_name: bool = False
    allow_follows: bool = False
    allow_messages: bool = False


class NotificationPreferences(BaseModel):
    email_notifications: bool = False
    push_notifications: bool = False
    follow_notifications: bool = False
    like_notifications: bool = False
    comment_notifications: bool = False
    recipe_notifications: bool = False
    system_notifications: bool = False


class DisplayPreferences(BaseModel):
    theme: Theme = Theme.AUTO
    language: str = "en"
    timezone: str = "UTC"


class UserPreferences(BaseModel):
    """A user's preferences. Field defaults are the strictest settings."""

    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)
    notifications: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    display: DisplayPreferences = Field(default_factory=DisplayPreferences)

    @classmethod
    def most_restrictive(cls) -> "UserPreferences":
        return cls(
            privacy=PrivacyPreferences(
                profile_visibility=ProfileVisibility.PRIVATE,
                show_email=False,
                show_full_name=False,
                allow_follows=False,
                allow_messages=False,
            ),
            notifications=NotificationPreferences(),
            display=DisplayPreferences(theme=Theme.AUTO, language="en", timezone="UTC"),
        )


class FollowerUser(BaseModel):
    user_id: UUID
    username: str
    full_name: str | None = None
    email: str | None = None
    is_active: bool = True


class FollowersPage(BaseModel):
    """One page of a user's followers. Count-only responses carry no users."""

    total_count: int = 0
    followed_users: list[FollowerUser] | None = Field(default_factory=list)
    limit: int | None = None
    offset: int | None = None


def preferences_fallback(key: Hashable, reason: FallbackReason) -> UserPreferences:
    logger.warning(
        f"User management service unavailable for getting user preferences ({reason}). "
        "Returning strictest privacy defaults (PRIVATE profile)."
    )
    return UserPreferences.most_restrictive()


def followers_fallback(key: Hashable, reason: FallbackReason) -> FollowersPage:
    _, user_id, limit, offset, count_only = key
    logger.warning(
        f"User management service unavailable for getting followers. "
        f"User ID: {user_id}, Limit: {limit}, Offset: {offset}, "
        f"Count Only: {count_only}. Returning empty follower list."
    )
    return FollowersPage(total_count=0, followed_users=[], limit=limit, offset=offset)


PREFERENCES_FALLBACK = FallbackStrategy.restrictive_default(
    preferences_fallback, empty=UserPreferences.most_restrictive()
)
FOLLOWERS_FALLBACK = FallbackStrategy.empty_default(
    followers_fallback, empty=FollowersPage()
)


class UserManagementClient(BaseServiceClient):
    """
    User management client.

    Cache keys are tagged with the operation name so preferences and
    follower pages share the dependency's partition without colliding.
    """

    SERVICE_ID = "user-management"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def get_user_preferences(
        self,
        user_id: UUID,
        context: CallContext | None = None,
    ) -> UserPreferences:
        """Get a user's preferences, or the strictest defaults when degraded."""
        context = CallContext.ensure(context)

        async def fetch() -> UserPreferences:
            data = await self.transport.get_json(
                self.url(f"/user-management/users/{user_id}/preferences"), context
            )
            return UserPreferences.model_validate(data)

        return await self.invoker.call(
            self.SERVICE_ID,
            ("preferences", user_id),
            fetch,
            context=context,
            fallback=PREFERENCES_FALLBACK,
        )

    async def get_followers(
        self,
        user_id: UUID,
        limit: int | None = None,
        offset: int | None = None,
        count_only: bool | None = None,
        context: CallContext | None = None,
    ) -> FollowersPage:
        """
        Get a page of a user's followers.

        Args:
            user_id: User whose followers are listed
            limit: Page size
            offset: Page offset
            count_only: Only return total_count
            context: Call context carrying the correlation id

        Returns:
            FollowersPage, empty with total_count 0 when degraded
        """
        context = CallContext.ensure(context)
        params = {
            name: value
            for name, value in (
                ("limit", limit),
                ("offset", offset),
                ("count_only", str(count_only).lower() if count_only is not None else None),
            )
            if value is not None
        }

        async def fetch() -> FollowersPage:
            data = await self.transport.get_json(
                self.url(f"/user-management/users/{user_id}/followers"),
                context,
                params=params or None,
            )
            return FollowersPage.model_validate(data)

        return await self.invoker.call(
            self.SERVICE_ID,
            ("followers", user_id, limit, offset, count_only),
            fetch,
            context=context,
            fallback=FOLLOWERS_FALLBACK,
        )
