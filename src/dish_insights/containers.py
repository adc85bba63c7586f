"""Dependency container wiring for the library."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from dish_insights.adapters.analysis_client import HttpxDishAnalysisClient
from dish_insights.adapters.supabase_kv_store import SupabaseKeyValueStore
from dish_insights.app_logging import configure_logging
from dish_insights.config import Settings
from dish_insights.services.dish_cache import DishCacheService
from dish_insights.services.lookup import DishLookupService
from dish_insights.services.metrics import CacheMetricsRecorder
from dish_insights.services.recent_searches import RecentSearchService
from dish_insights.services.storage import InMemoryKeyValueStore, KeyValueStore


@dataclass
class AppContainer:
    """Holds session-wide dependencies."""

    settings: Settings
    store: KeyValueStore
    metrics: CacheMetricsRecorder
    dish_cache: DishCacheService
    recent_searches: RecentSearchService
    lookup_service: DishLookupService
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> KeyValueStore:
    """Create the key-value store selected by the settings."""
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStore()
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("Supabase storage requires supabase_url and key")
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseKeyValueStore(client, table_name=settings.supabase_kv_table)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    store = build_store(resolved_settings)
    metrics = CacheMetricsRecorder(
        avg_api_call_time_ms=resolved_settings.estimated_api_time_ms,
        max_operations=resolved_settings.metrics_log_limit,
    )
    dish_cache = DishCacheService(
        store=store,
        metrics=metrics,
        ttl=timedelta(days=resolved_settings.cache_ttl_days),
    )
    recent_searches = RecentSearchService(
        cache=dish_cache,
        limit=resolved_settings.recent_searches_limit,
    )
    analysis_client = HttpxDishAnalysisClient.create(
        base_url=resolved_settings.analysis_api_base_url,
        timeout_seconds=resolved_settings.analysis_timeout_seconds,
    )
    lookup_service = DishLookupService(
        cache=dish_cache,
        recent_searches=recent_searches,
        client=analysis_client,
    )

    async def close_resources() -> None:
        await analysis_client.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        metrics=metrics,
        dish_cache=dish_cache,
        recent_searches=recent_searches,
        lookup_service=lookup_service,
        close_resources=close_resources,
    )
