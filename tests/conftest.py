"""Shared test fixtures."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from dish_insights.adapters.analysis_client import DishAnalysisClient
from dish_insights.config import Settings
from dish_insights.services.dish_cache import DishCacheService
from dish_insights.services.metrics import CacheMetricsRecorder
from dish_insights.services.recent_searches import RecentSearchService
from dish_insights.services.storage import InMemoryKeyValueStore, KeyValueStore


@dataclass
class FakeClock:
    """Manually advanced clock."""

    now: datetime = field(default_factory=lambda: datetime(2024, 5, 1, 12, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class FailingKeyValueStore(KeyValueStore):
    """Store whose every operation fails."""

    calls: list[str] = field(default_factory=list)

    async def get_item(self, key: str) -> str | None:
        self.calls.append("get_item")
        raise RuntimeError("storage unavailable")

    async def set_item(self, key: str, value: str) -> None:
        self.calls.append("set_item")
        raise RuntimeError("storage unavailable")

    async def remove_item(self, key: str) -> None:
        self.calls.append("remove_item")
        raise RuntimeError("storage unavailable")

    async def multi_remove(self, keys: Iterable[str]) -> None:
        self.calls.append("multi_remove")
        raise RuntimeError("storage unavailable")

    async def get_all_keys(self) -> list[str]:
        self.calls.append("get_all_keys")
        raise RuntimeError("storage unavailable")


@dataclass
class FakeAnalysisClient(DishAnalysisClient):
    """Analysis client returning canned payloads and recording requests."""

    responses: dict[str, dict[str, object]] = field(default_factory=dict)
    requests: list[dict[str, object]] = field(default_factory=list)

    async def analyze_dish(self, payload: dict[str, object]) -> dict[str, object]:
        self.requests.append(payload)
        dish_name = str(payload["dishName"])
        return self.responses.get(dish_name, make_analysis(dish_name))


def make_analysis(dish_name: str) -> dict[str, object]:
    """Return a representative analysis payload for a dish."""
    return {
        "ok": True,
        "dishName": dish_name,
        "source": "test",
        "allergen_flags": [
            {
                "kind": "gluten",
                "present": "yes",
                "message": "Contains wheat flour",
                "source": "recipe",
            }
        ],
        "fodmap_flags": {
            "level": "low",
            "reason": "Low FODMAP ingredients",
            "source": "recipe",
        },
        "nutrition_summary": {
            "energyKcal": 450,
            "protein_g": 25,
            "fat_g": 15,
            "carbs_g": 45,
            "sugar_g": 5,
            "fiber_g": 3,
            "sodium_mg": 800,
        },
        "likely_recipe": {
            "title": dish_name,
            "cooking_method": "grilled",
            "cooking_method_confidence": 0.9,
            "ingredients": [
                {"name": "chicken breast", "quantity": 200, "unit": "g"},
                {"name": "olive oil", "quantity": 2, "unit": "tbsp"},
                {"name": "garlic", "quantity": 2, "unit": "cloves"},
            ],
        },
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(storage_backend="memory")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def metrics() -> CacheMetricsRecorder:
    return CacheMetricsRecorder()


@pytest.fixture
def dish_cache(
    store: InMemoryKeyValueStore, metrics: CacheMetricsRecorder, clock: FakeClock
) -> DishCacheService:
    return DishCacheService(store=store, metrics=metrics, clock=clock)


@pytest.fixture
def recent_searches(dish_cache: DishCacheService) -> RecentSearchService:
    return RecentSearchService(cache=dish_cache)
