"""Tests for cache key helpers."""

import pytest

from dish_insights.services.keys import (
    DISH_CACHE_PREFIX,
    build_cache_key,
    normalize_dish_name,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Chicken Parmesan", "chicken_parmesan"),
        ("Pad Thai (Spicy!!)", "pad_thai_spicy"),
        ("  Pizza  ", "pizza"),
        ("Grilled   Salmon", "grilled_salmon"),
        ("Fish & Chips", "fish_chips"),
        ("", ""),
        ("!!!", ""),
    ],
)
def test_normalize_dish_name(raw: str, expected: str) -> None:
    assert normalize_dish_name(raw) == expected


@pytest.mark.parametrize(
    "raw", ["Chicken Parmesan", "Pad Thai (Spicy!!)", " a _ b ", "Crème brûlée", ""]
)
def test_normalize_dish_name_is_idempotent(raw: str) -> None:
    once = normalize_dish_name(raw)
    assert normalize_dish_name(once) == once


def test_normalize_ignores_case_and_punctuation() -> None:
    assert normalize_dish_name("GRILLED, chicken!") == normalize_dish_name(
        "grilled chicken"
    )


def test_build_cache_key_with_and_without_place() -> None:
    assert build_cache_key("Fish Tacos") == f"{DISH_CACHE_PREFIX}fish_tacos"
    assert build_cache_key("Fish Tacos", "p1") == f"{DISH_CACHE_PREFIX}fish_tacos_p1"
