"""Cache key helpers."""

import re

DISH_CACHE_PREFIX = "@dish_cache_"
RECENT_DISHES_KEY = "@recent_dish_searches"

_STRIP_PATTERN = re.compile(r"[^a-z0-9\s_]")
_SEPARATOR_PATTERN = re.compile(r"[\s_]+")


def normalize_dish_name(name: str) -> str:
    """Return the canonical key fragment for a dish name.

    Lower-cases, trims, drops punctuation and joins whitespace runs with
    single underscores. Underscores count as whitespace so that normalizing
    an already normalized name is a no-op. An empty result means the name
    is not searchable.
    """
    cleaned = _STRIP_PATTERN.sub("", name.lower().strip())
    return _SEPARATOR_PATTERN.sub("_", cleaned).strip("_")


def build_cache_key(dish_name: str, place_id: str | None = None) -> str:
    """Build the composite storage key for a dish at an optional place."""
    normalized = normalize_dish_name(dish_name)
    if place_id:
        return f"{DISH_CACHE_PREFIX}{normalized}_{place_id}"
    return f"{DISH_CACHE_PREFIX}{normalized}"
