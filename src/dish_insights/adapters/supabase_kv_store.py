"""Supabase-backed key-value store."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from dish_insights.services.storage import KeyValueStore


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Supabase table implementation of the key-value store.

    The table needs a text primary key column ``key`` and a text column
    ``value``.
    """

    client: Client
    table_name: str = "kv_store"

    async def get_item(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""
        response = (
            self.client.table(self.table_name)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    async def set_item(self, key: str, value: str) -> None:
        """Insert or replace the value for a key."""
        self.client.table(self.table_name).upsert(
            {
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()

    async def remove_item(self, key: str) -> None:
        """Delete a key."""
        self.client.table(self.table_name).delete().eq("key", key).execute()

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Delete several keys with one request."""
        key_list = list(keys)
        if not key_list:
            return
        self.client.table(self.table_name).delete().in_("key", key_list).execute()

    async def get_all_keys(self) -> list[str]:
        """Return every stored key."""
        response = self.client.table(self.table_name).select("key").execute()
        return [str(row["key"]) for row in response.data or []]
