"""Cache-first dish analysis lookups."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from dish_insights.adapters.analysis_client import DishAnalysisClient
from dish_insights.domain.analysis import DishAnalysis
from dish_insights.domain.view_model import DishViewModel
from dish_insights.services.dish_cache import DishCacheService
from dish_insights.services.reconciler import build_dish_view_model
from dish_insights.services.recent_searches import RecentSearchService

_logger = logging.getLogger(__name__)


class DishAnalysisError(RuntimeError):
    """Raised when the analysis service reports a failed analysis."""


@dataclass(frozen=True)
class DishLookupResult:
    """Analysis payload and its view model."""

    analysis: dict[str, object]
    view_model: DishViewModel
    from_cache: bool
    image_url: str | None = None


@dataclass
class DishLookupService:
    """Serves dish analyses from the cache, calling the API on a miss."""

    cache: DishCacheService
    recent_searches: RecentSearchService
    client: DishAnalysisClient

    async def load(  # noqa: PLR0913
        self,
        dish_name: str,
        user_allergens: Sequence[str],
        *,
        place_id: str | None = None,
        restaurant_name: str | None = None,
        restaurant_address: str | None = None,
        image_url: str | None = None,
        from_photo: bool = False,
        record_search: bool = True,
    ) -> DishLookupResult:
        """Return the analysis for a dish, using the cache when possible.

        Photo analyses always go to the API. Successful API results are
        cached under the dish name the API returns, which may correct the
        requested spelling.
        """
        if not dish_name.strip():
            raise ValueError("dish_name is required")

        if not from_photo:
            cached = await self.cache.get(dish_name, place_id)
            if cached is not None:
                if record_search:
                    await self.recent_searches.add(
                        cached.dish_name,
                        restaurant_name=restaurant_name or cached.restaurant_name,
                        restaurant_address=restaurant_address
                        or cached.restaurant_address,
                        has_cache=True,
                    )
                return DishLookupResult(
                    analysis=cached.analysis,
                    view_model=build_dish_view_model(cached.analysis, user_allergens),
                    from_cache=True,
                    image_url=image_url or cached.image_url,
                )

        response = await self.client.analyze_dish(
            {
                "dishName": dish_name,
                "restaurantName": restaurant_name,
                "placeId": place_id,
                "source": "photo_analysis" if from_photo else "standalone_dish_search",
                "imageUrl": image_url,
                "fullRecipe": True,
            }
        )
        analysis = DishAnalysis.from_payload(response)
        if not analysis.ok:
            _logger.warning(
                "Dish analysis failed: dish=%s error=%s", dish_name, analysis.error
            )
            raise DishAnalysisError(analysis.error or "Analysis failed")

        resolved_name = analysis.dish_name or dish_name
        recipe_image = response.get("recipe_image")
        resolved_image = image_url or (
            recipe_image if isinstance(recipe_image, str) else None
        )
        await self.cache.put(
            resolved_name,
            response,
            restaurant_name=restaurant_name,
            restaurant_address=restaurant_address,
            place_id=place_id,
            image_url=resolved_image,
            source="restaurant" if restaurant_name else "standalone",
        )
        if record_search:
            await self.recent_searches.add(
                resolved_name,
                restaurant_name=restaurant_name,
                restaurant_address=restaurant_address,
                has_cache=True,
            )
        return DishLookupResult(
            analysis=response,
            view_model=build_dish_view_model(analysis, user_allergens),
            from_cache=False,
            image_url=resolved_image,
        )
