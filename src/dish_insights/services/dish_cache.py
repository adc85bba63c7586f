"""Persistent per-dish analysis cache."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from dish_insights.domain.cache import CachedDish, DishSource
from dish_insights.services.keys import (
    DISH_CACHE_PREFIX,
    RECENT_DISHES_KEY,
    build_cache_key,
    normalize_dish_name,
)
from dish_insights.services.metrics import CacheMetricsRecorder
from dish_insights.services.storage import KeyValueStore

CACHE_TTL = timedelta(days=7)

_logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(tz=UTC)


@dataclass
class DishCacheService:
    """Best-effort cache of dish analyses on top of a key-value store.

    Storage failures are logged and degrade to a miss or a no-op; they are
    never raised to the caller.
    """

    store: KeyValueStore
    metrics: CacheMetricsRecorder = field(default_factory=CacheMetricsRecorder)
    ttl: timedelta = CACHE_TTL
    clock: Callable[[], datetime] = field(default_factory=lambda: utc_now)

    async def put(  # noqa: PLR0913
        self,
        dish_name: str,
        analysis: dict[str, object],
        *,
        restaurant_name: str | None = None,
        restaurant_address: str | None = None,
        place_id: str | None = None,
        image_url: str | None = None,
        source: DishSource | None = None,
    ) -> None:
        """Store an analysis for a dish, replacing any previous entry.

        Names that normalize to nothing are not cacheable and are ignored.
        """
        normalized_name = normalize_dish_name(dish_name)
        if not normalized_name:
            _logger.warning("Not caching dish without a searchable name: %r", dish_name)
            return
        key = build_cache_key(dish_name, place_id)
        record = CachedDish(
            dish_name=dish_name,
            normalized_name=normalized_name,
            analysis=analysis,
            cached_at=self.clock(),
            restaurant_name=restaurant_name,
            restaurant_address=restaurant_address,
            place_id=place_id,
            image_url=image_url,
            source=source or "standalone",
        )
        try:
            await self.store.set_item(key, serialize_record(record))
        except Exception:
            _logger.exception("Failed to cache dish: key=%s", key)
            return
        self.metrics.record_store(dish_name)
        _logger.debug("Dish cached: dish=%s key=%s", dish_name, key)

    async def get(
        self, dish_name: str, place_id: str | None = None
    ) -> CachedDish | None:
        """Return the cached analysis for a dish if present and fresh."""
        record = None
        if normalize_dish_name(dish_name):
            record = await self._read(build_cache_key(dish_name, place_id))
        if record is None:
            self.metrics.record_miss(dish_name)
            return None
        self.metrics.record_hit(dish_name)
        return record

    async def has_cached(self, dish_name: str, place_id: str | None = None) -> bool:
        """Return True when a fresh entry exists, without touching metrics."""
        if not normalize_dish_name(dish_name):
            return False
        return await self._read(build_cache_key(dish_name, place_id)) is not None

    async def search(self, query: str) -> list[CachedDish]:
        """Return fresh entries whose normalized name contains the query.

        Results are ordered most recently cached first. An empty normalized
        query matches nothing.
        """
        normalized_query = normalize_dish_name(query)
        if not normalized_query:
            return []

        try:
            keys = await self.store.get_all_keys()
        except Exception:
            _logger.exception("Failed to list cached dishes: query=%s", query)
            return []

        matches: list[CachedDish] = []
        for key in keys:
            if not key.startswith(DISH_CACHE_PREFIX):
                continue
            # Unreadable, malformed and expired entries count as absent.
            record = await self._read(key)
            if record is not None and normalized_query in record.normalized_name:
                matches.append(record)

        return sorted(matches, key=lambda record: record.cached_at, reverse=True)

    async def clear_all(self) -> None:
        """Delete every cached dish and the recent searches list."""
        try:
            keys = await self.store.get_all_keys()
            dish_keys = [key for key in keys if key.startswith(DISH_CACHE_PREFIX)]
            await self.store.multi_remove(dish_keys)
            await self.store.remove_item(RECENT_DISHES_KEY)
        except Exception:
            _logger.exception("Failed to clear dish cache")
            return
        _logger.info("Dish cache cleared: removed=%s", len(dish_keys))

    async def _read(self, key: str) -> CachedDish | None:
        try:
            stored = await self.store.get_item(key)
        except Exception:
            _logger.exception("Failed to read cached dish: key=%s", key)
            return None
        if not stored:
            return None

        record = parse_record(stored)
        if record is None:
            _logger.warning("Ignoring malformed cache entry: key=%s", key)
            return None

        if self._is_expired(record):
            try:
                await self.store.remove_item(key)
            except Exception:
                _logger.exception("Failed to evict expired dish: key=%s", key)
            return None
        return record

    def _is_expired(self, record: CachedDish) -> bool:
        return self.clock() - record.cached_at >= self.ttl


def serialize_record(record: CachedDish) -> str:
    """Encode a cache record as JSON."""
    return json.dumps(
        {
            "dish_name": record.dish_name,
            "normalized_name": record.normalized_name,
            "restaurant_name": record.restaurant_name,
            "restaurant_address": record.restaurant_address,
            "place_id": record.place_id,
            "analysis": record.analysis,
            "image_url": record.image_url,
            "source": record.source,
            "cached_at": record.cached_at.isoformat(),
        },
        ensure_ascii=False,
    )


def parse_record(raw: str) -> CachedDish | None:
    """Decode a stored cache record, returning None when it is malformed."""
    try:
        data = json.loads(raw)
        analysis = data["analysis"]
        if not isinstance(analysis, dict):
            return None
        cached_at = datetime.fromisoformat(data["cached_at"])
        if cached_at.tzinfo is None:
            cached_at = cached_at.replace(tzinfo=UTC)
        return CachedDish(
            dish_name=str(data["dish_name"]),
            normalized_name=str(
                data.get("normalized_name") or normalize_dish_name(data["dish_name"])
            ),
            analysis=analysis,
            cached_at=cached_at,
            restaurant_name=data.get("restaurant_name"),
            restaurant_address=data.get("restaurant_address"),
            place_id=data.get("place_id"),
            image_url=data.get("image_url"),
            source="restaurant" if data.get("source") == "restaurant" else "standalone",
        )
    except (ValueError, TypeError, KeyError):
        return None
