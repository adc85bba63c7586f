"""Key-value storage abstractions."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol


class KeyValueStore(Protocol):
    """Durable string key-value store."""

    async def get_item(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""

    async def set_item(self, key: str, value: str) -> None:
        """Store a value under a key, replacing any previous value."""

    async def remove_item(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Delete several keys at once."""

    async def get_all_keys(self) -> list[str]:
        """Return every stored key."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, used by default and in tests."""

    items: dict[str, str] = field(default_factory=dict)

    async def get_item(self, key: str) -> str | None:
        """Return the stored value for a key."""
        return self.items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        """Store a value under a key."""
        self.items[key] = value

    async def remove_item(self, key: str) -> None:
        """Delete a key if present."""
        self.items.pop(key, None)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Delete several keys."""
        for key in list(keys):
            self.items.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        """Return every stored key."""
        return list(self.items)
