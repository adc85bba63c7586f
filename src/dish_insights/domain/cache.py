"""Domain models for the dish analysis cache."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

DishSource = Literal["restaurant", "standalone"]
CacheOperationType = Literal["hit", "miss", "store"]


@dataclass(frozen=True)
class CachedDish:
    """A cached dish analysis keyed by normalized name and optional place id."""

    dish_name: str
    normalized_name: str
    analysis: dict[str, object]
    cached_at: datetime
    restaurant_name: str | None = None
    restaurant_address: str | None = None
    place_id: str | None = None
    image_url: str | None = None
    source: DishSource = "standalone"


@dataclass(frozen=True)
class RecentDishSearch:
    """A dish the user searched for recently."""

    dish_name: str
    normalized_name: str
    searched_at: datetime
    restaurant_name: str | None = None
    restaurant_address: str | None = None
    has_cache: bool = False


@dataclass(frozen=True)
class CacheOperation:
    """Single entry of the cache operations log."""

    type: CacheOperationType
    dish_name: str
    timestamp: datetime
    api_time_saved_ms: int | None = None
    details: str | None = None


@dataclass(frozen=True)
class CacheMetrics:
    """Point-in-time copy of the cache counters."""

    hits: int
    misses: int
    total_time_saved_ms: int
    avg_api_call_time_ms: int
    operations: list[CacheOperation] = field(default_factory=list)
