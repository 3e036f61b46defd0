"""
FallbackResolver - Supplies safe defaults when a dependency call gives up.

Strategies form a closed set chosen per dependency at configuration time:
- EMPTY_DEFAULT: non-sensitive data degrades to an empty/zero value
- RESTRICTIVE_DEFAULT: privacy data degrades to its most restrictive value
- NO_OP_SUCCESS: best-effort side effects report success with nothing done
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Hashable

from loguru import logger

from recipe_manager.services.outcomes import FallbackReason

FallbackFactory = Callable[[Hashable, FallbackReason], Any]


class FallbackKind(str, Enum):
    EMPTY_DEFAULT = "EMPTY_DEFAULT"
    RESTRICTIVE_DEFAULT = "RESTRICTIVE_DEFAULT"
    NO_OP_SUCCESS = "NO_OP_SUCCESS"


@dataclass(frozen=True)
class FallbackStrategy:
    """
    A fallback strategy for one dependency (or one operation of it).

    `factory` builds the default from the call key and the failure reason.
    `empty` is the documented empty value returned if the factory itself fails.
    """

    kind: FallbackKind
    factory: FallbackFactory
    empty: Any = None

    @classmethod
    def empty_default(cls, factory: FallbackFactory, empty: Any = None) -> "FallbackStrategy":
        return cls(FallbackKind.EMPTY_DEFAULT, factory, empty)

    @classmethod
    def restrictive_default(
        cls, factory: FallbackFactory, empty: Any = None
    ) -> "FallbackStrategy":
        return cls(FallbackKind.RESTRICTIVE_DEFAULT, factory, empty)

    @classmethod
    def no_op_success(cls, factory: FallbackFactory, empty: Any = None) -> "FallbackStrategy":
        return cls(FallbackKind.NO_OP_SUCCESS, factory, empty)


class FallbackResolver:
    """
    Resolves fallback values per dependency.

    Usage:
        resolver = FallbackResolver()
        resolver.register("recipe-scraper", FallbackStrategy.empty_default(
            lambda recipe_id, reason: RecipeShoppingInfo.empty(recipe_id)
        ))

        value = resolver.resolve("recipe-scraper", 123, reason)
    """

    def __init__(self):
        self._strategies: dict[str, FallbackStrategy] = {}

    def register(self, dependency: str, strategy: FallbackStrategy) -> None:
        self._strategies[dependency] = strategy

    def get(self, dependency: str) -> FallbackStrategy | None:
        return self._strategies.get(dependency)

    def resolve(
        self,
        dependency: str,
        key: Hashable,
        reason: FallbackReason,
        strategy: FallbackStrategy | None = None,
    ) -> Any:
        """Produce the default value for a failed call. Never raises."""
        strategy = strategy or self._strategies.get(dependency)
        if strategy is None:
            logger.warning(
                f"No fallback registered for '{dependency}' (key={key!r}), "
                f"returning None: {reason}"
            )
            return None

        logger.warning(
            f"Using {strategy.kind.value} fallback for '{dependency}' "
            f"(key={key!r}): {reason}"
        )
        try:
            return strategy.factory(key, reason)
        except Exception as e:
            logger.error(
                f"Fallback factory for '{dependency}' failed, "
                f"returning documented empty value: {e}"
            )
            return strategy.empty
