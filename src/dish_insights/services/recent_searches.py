"""Recently searched dishes."""

import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from dish_insights.domain.cache import RecentDishSearch
from dish_insights.services.dish_cache import DishCacheService
from dish_insights.services.keys import RECENT_DISHES_KEY, normalize_dish_name

MAX_RECENT_DISHES = 10

_logger = logging.getLogger(__name__)


@dataclass
class RecentSearchService:
    """Bounded, most-recent-first list of dish searches.

    The list is stored as a single JSON array and rewritten as a whole on
    every addition.
    """

    cache: DishCacheService
    limit: int = MAX_RECENT_DISHES

    async def add(
        self,
        dish_name: str,
        *,
        restaurant_name: str | None = None,
        restaurant_address: str | None = None,
        has_cache: bool = False,
    ) -> None:
        """Move a dish to the front of the recent searches list.

        Names that normalize to nothing are not recorded.
        """
        normalized_name = normalize_dish_name(dish_name)
        if not normalized_name:
            _logger.warning("Not recording unsearchable dish name: %r", dish_name)
            return
        try:
            recent = await self._load()
            recent = [e for e in recent if e.normalized_name != normalized_name]
            recent.insert(
                0,
                RecentDishSearch(
                    dish_name=dish_name,
                    normalized_name=normalized_name,
                    searched_at=self.cache.clock(),
                    restaurant_name=restaurant_name,
                    restaurant_address=restaurant_address,
                    has_cache=has_cache,
                ),
            )
            payload = json.dumps(
                [_entry_to_dict(entry) for entry in recent[: self.limit]],
                ensure_ascii=False,
            )
            await self.cache.store.set_item(RECENT_DISHES_KEY, payload)
        except Exception:
            _logger.exception("Failed to add recent dish search: dish=%s", dish_name)

    async def list_searches(self) -> list[RecentDishSearch]:
        """Return recent searches with cache availability recomputed."""
        try:
            recent = await self._load()
        except Exception:
            _logger.exception("Failed to load recent dish searches")
            return []
        return [
            replace(entry, has_cache=await self.cache.has_cached(entry.dish_name))
            for entry in recent
        ]

    async def _load(self) -> list[RecentDishSearch]:
        stored = await self.cache.store.get_item(RECENT_DISHES_KEY)
        if not stored:
            return []
        try:
            rows = json.loads(stored)
        except ValueError:
            _logger.warning("Discarding malformed recent dish searches")
            return []
        if not isinstance(rows, list):
            return []
        entries = []
        for row in rows:
            entry = _entry_from_dict(row)
            if entry is not None:
                entries.append(entry)
        return entries


def _entry_to_dict(entry: RecentDishSearch) -> dict[str, object]:
    return {
        "dish_name": entry.dish_name,
        "normalized_name": entry.normalized_name,
        "restaurant_name": entry.restaurant_name,
        "restaurant_address": entry.restaurant_address,
        "has_cache": entry.has_cache,
        "searched_at": entry.searched_at.isoformat(),
    }


def _entry_from_dict(row: object) -> RecentDishSearch | None:
    if not isinstance(row, dict) or not row.get("dish_name"):
        return None
    try:
        searched_at = datetime.fromisoformat(str(row["searched_at"]))
    except (KeyError, ValueError):
        return None
    if searched_at.tzinfo is None:
        searched_at = searched_at.replace(tzinfo=UTC)
    dish_name = str(row["dish_name"])
    return RecentDishSearch(
        dish_name=dish_name,
        normalized_name=str(
            row.get("normalized_name") or normalize_dish_name(dish_name)
        ),
        searched_at=searched_at,
        restaurant_name=row.get("restaurant_name"),
        restaurant_address=row.get("restaurant_address"),
        has_cache=bool(row.get("has_cache", False)),
    )
