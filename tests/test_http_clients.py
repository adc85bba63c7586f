"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx
import pytest

from dish_insights.adapters.analysis_client import HttpxDishAnalysisClient


def test_analysis_client_posts_dish_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "dishName": "Pho"})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxDishAnalysisClient(
        base_url="https://analysis.example", http_client=async_client
    )

    result = asyncio.run(client.analyze_dish({"dishName": "Pho", "fullRecipe": True}))

    assert result == {"ok": True, "dishName": "Pho"}
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "https://analysis.example/pipeline/analyze-dish"
    assert json.loads(seen[0].content.decode()) == {
        "dishName": "Pho",
        "fullRecipe": True,
    }


def test_analysis_client_raises_on_http_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"detail": "upstream down"})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxDishAnalysisClient(
        base_url="https://analysis.example", http_client=async_client
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.analyze_dish({"dishName": "Pho"}))


def test_create_strips_trailing_slash() -> None:
    client = HttpxDishAnalysisClient.create(
        "https://analysis.example/", timeout_seconds=5
    )

    assert client.base_url == "https://analysis.example"
    assert client.timeout_seconds == 5
    asyncio.run(client.close())
