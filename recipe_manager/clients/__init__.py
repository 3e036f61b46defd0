from recipe_manager.clients.base import BaseServiceClient
from recipe_manager.clients.media_manager import MediaHealth, MediaManagerClient
from recipe_manager.clients.notification import (
    BatchNotificationResponse,
    NotificationServiceClient,
    RecipeCommentedRequest,
    RecipeLikedRequest,
    RecipePublishedRequest,
)
from recipe_manager.clients.recipe_scraper import (
    IngredientShoppingInfo,
    RecipeScraperClient,
    RecipeShoppingInfo,
)
from recipe_manager.clients.registry import ExternalServices, build_external_services
from recipe_manager.clients.user_management import (
    FollowersPage,
    UserManagementClient,
    UserPreferences,
)

__all__ = [
    "BaseServiceClient",
    "MediaHealth",
    "MediaManagerClient",
    "BatchNotificationResponse",
    "NotificationServiceClient",
    "RecipeCommentedRequest",
    "RecipeLikedRequest",
    "RecipePublishedRequest",
    "IngredientShoppingInfo",
    "RecipeScraperClient",
    "RecipeShoppingInfo",
    "ExternalServices",
    "build_external_services",
    "FollowersPage",
    "UserManagementClient",
    "UserPreferences",
]
