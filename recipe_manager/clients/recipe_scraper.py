"""
Recipe scraper client for ingredient pricing and shopping information.

Shopping info is cached per recipe. When the scraper is disabled or
unavailable, recipes get an empty shopping list with a zero total.
"""

from decimal import Decimal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from recipe_manager.clients.base import BaseServiceClient
from recipe_manager.services.fallback import FallbackStrategy
from recipe_manager.services.outcomes import CallContext, FallbackReason


class IngredientShoppingInfo(BaseModel):
    """Pricing information for one ingredient."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    ingredient_name: str
    quantity: Decimal | None = None
    unit: str | None = None
    estimated_price: Decimal | None = None


class RecipeShoppingInfo(BaseModel):
    """Shopping information for a recipe. Accepts camelCase or snake_case fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    recipe_id: int
    ingredients: dict[str, IngredientShoppingInfo] = Field(default_factory=dict)
    total_estimated_cost: Decimal = Decimal("0")

    @classmethod
    def empty(cls, recipe_id: int) -> "RecipeShoppingInfo":
        return cls(recipe_id=recipe_id, ingredients={}, total_estimated_cost=Decimal("0"))


def shopping_info_fallback(recipe_id: int, reason: FallbackReason) -> RecipeShoppingInfo:
    logger.warning(
        f"Using fallback for recipe scraper service for recipe {recipe_id}: {reason}"
    )
    return RecipeShoppingInfo.empty(recipe_id)


SHOPPING_INFO_FALLBACK = FallbackStrategy.empty_default(shopping_info_fallback)


class RecipeScraperClient(BaseServiceClient):
    """
    Recipe scraper client.

    Usage:
        info = await scraper.get_shopping_info(123)
        info.total_estimated_cost   # Decimal("15.50"), or Decimal("0") when degraded
    """

    SERVICE_ID = "recipe-scraper"

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def get_shopping_info(
        self,
        recipe_id: int,
        context: CallContext | None = None,
    ) -> RecipeShoppingInfo:
        """
        Get shopping information for a recipe.

        Args:
            recipe_id: Recipe identifier
            context: Call context carrying the correlation id

        Returns:
            Live or cached shopping info, or an empty one when degraded
        """
        context = CallContext.ensure(context)

        async def fetch() -> RecipeShoppingInfo:
            logger.info(
                f"Calling recipe scraper service for recipe {recipe_id} "
                f"with correlation ID {context.correlation_id}"
            )
            data = await self.transport.get_json(
                self.url(f"/api/recipe-scraper/{recipe_id}/shopping-info"), context
            )
            info = RecipeShoppingInfo.model_validate(data)
            logger.info(
                f"Successfully retrieved shopping info for recipe {recipe_id} "
                f"with {len(info.ingredients)} ingredients"
            )
            return info

        return await self.invoker.call(
            self.SERVICE_ID,
            recipe_id,
            fetch,
            context=context,
            fallback=SHOPPING_INFO_FALLBACK,
        )
