"""Tests for recent dish searches."""

import asyncio
import json

from dish_insights.services.dish_cache import DishCacheService
from dish_insights.services.keys import RECENT_DISHES_KEY
from dish_insights.services.recent_searches import RecentSearchService
from dish_insights.services.storage import InMemoryKeyValueStore
from tests.conftest import FailingKeyValueStore, FakeClock, make_analysis


def test_add_and_list_most_recent_first(
    recent_searches: RecentSearchService, clock: FakeClock
) -> None:
    asyncio.run(recent_searches.add("Pad Thai"))
    clock.advance(seconds=5)
    asyncio.run(recent_searches.add("Sushi Roll"))

    recent = asyncio.run(recent_searches.list_searches())

    assert [entry.dish_name for entry in recent] == ["Sushi Roll", "Pad Thai"]
    assert recent[0].searched_at > recent[1].searched_at


def test_re_adding_moves_entry_to_front(
    recent_searches: RecentSearchService, clock: FakeClock
) -> None:
    asyncio.run(recent_searches.add("Dish A"))
    clock.advance(seconds=1)
    asyncio.run(recent_searches.add("Dish B"))
    clock.advance(seconds=1)
    asyncio.run(recent_searches.add("dish a!"))

    recent = asyncio.run(recent_searches.list_searches())

    assert [entry.dish_name for entry in recent] == ["dish a!", "Dish B"]
    assert recent[0].searched_at == clock.now


def test_list_is_capped_at_ten(recent_searches: RecentSearchService) -> None:
    for index in range(1, 16):
        asyncio.run(recent_searches.add(f"Dish {index}"))

    recent = asyncio.run(recent_searches.list_searches())

    assert len(recent) == 10
    assert recent[0].dish_name == "Dish 15"
    assert recent[-1].dish_name == "Dish 6"


def test_eleventh_dish_drops_the_oldest(recent_searches: RecentSearchService) -> None:
    for index in range(1, 12):
        asyncio.run(recent_searches.add(f"Dish {index}"))

    names = [entry.dish_name for entry in asyncio.run(recent_searches.list_searches())]

    assert "Dish 1" not in names
    assert len(names) == 10


def test_has_cache_is_recomputed_from_the_cache(
    recent_searches: RecentSearchService,
    dish_cache: DishCacheService,
    clock: FakeClock,
) -> None:
    asyncio.run(dish_cache.put("Cached Dish", make_analysis("Cached Dish")))
    asyncio.run(recent_searches.add("Cached Dish", has_cache=False))
    asyncio.run(recent_searches.add("Uncached Dish", has_cache=True))

    recent = {e.dish_name: e for e in asyncio.run(recent_searches.list_searches())}

    assert recent["Cached Dish"].has_cache is True
    assert recent["Uncached Dish"].has_cache is False

    clock.advance(days=8)
    recent = {e.dish_name: e for e in asyncio.run(recent_searches.list_searches())}
    assert recent["Cached Dish"].has_cache is False


def test_restaurant_info_is_kept(recent_searches: RecentSearchService) -> None:
    asyncio.run(
        recent_searches.add(
            "Restaurant Dish",
            restaurant_name="Test Restaurant",
            restaurant_address="123 Main St",
        )
    )

    entry = asyncio.run(recent_searches.list_searches())[0]

    assert entry.restaurant_name == "Test Restaurant"
    assert entry.restaurant_address == "123 Main St"


def test_list_is_stored_as_one_json_array(
    recent_searches: RecentSearchService, store: InMemoryKeyValueStore
) -> None:
    asyncio.run(recent_searches.add("Pho"))
    asyncio.run(recent_searches.add("Banh Mi"))

    rows = json.loads(store.items[RECENT_DISHES_KEY])

    assert [row["normalized_name"] for row in rows] == ["banh_mi", "pho"]


def test_clear_all_empties_recent_searches(
    recent_searches: RecentSearchService, dish_cache: DishCacheService
) -> None:
    asyncio.run(dish_cache.put("Dish 1", make_analysis("Dish 1")))
    asyncio.run(recent_searches.add("Dish 1"))

    asyncio.run(dish_cache.clear_all())

    assert asyncio.run(recent_searches.list_searches()) == []


def test_malformed_list_is_discarded(
    recent_searches: RecentSearchService, store: InMemoryKeyValueStore
) -> None:
    store.items[RECENT_DISHES_KEY] = "not json"
    assert asyncio.run(recent_searches.list_searches()) == []

    asyncio.run(recent_searches.add("Tacos"))

    assert [e.dish_name for e in asyncio.run(recent_searches.list_searches())] == [
        "Tacos"
    ]


def test_storage_failures_never_raise() -> None:
    service = RecentSearchService(cache=DishCacheService(store=FailingKeyValueStore()))

    asyncio.run(service.add("Dish"))

    assert asyncio.run(service.list_searches()) == []


def test_unsearchable_names_are_not_recorded(
    recent_searches: RecentSearchService,
) -> None:
    asyncio.run(recent_searches.add("Pho"))
    asyncio.run(recent_searches.add("!!!"))
    asyncio.run(recent_searches.add("@@@"))

    names = [entry.dish_name for entry in asyncio.run(recent_searches.list_searches())]

    assert names == ["Pho"]
