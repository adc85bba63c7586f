"""Remote dish analysis API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class DishAnalysisClient(Protocol):
    """Interface for the remote dish analysis service."""

    async def analyze_dish(self, payload: dict[str, object]) -> dict[str, object]:
        """Analyze a dish and return the raw response payload."""


@dataclass
class HttpxDishAnalysisClient(DishAnalysisClient):
    """HTTPX-backed dish analysis client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 60.0

    @classmethod
    def create(
        cls, base_url: str, timeout_seconds: float = 60.0
    ) -> "HttpxDishAnalysisClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def analyze_dish(self, payload: dict[str, object]) -> dict[str, object]:
        """Post a dish to the analysis pipeline."""
        response = await self.http_client.post(
            f"{self.base_url}/pipeline/analyze-dish",
            json=payload,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
