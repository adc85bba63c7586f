"""Library configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    storage_backend: str = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_kv_table: str = "kv_store"
    analysis_api_base_url: str = "https://api.rrginvestment.com"
    analysis_timeout_seconds: float = 60.0
    cache_ttl_days: int = 7
    recent_searches_limit: int = 10
    metrics_log_limit: int = 50
    estimated_api_time_ms: int = 2000
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="DISH_INSIGHTS_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
