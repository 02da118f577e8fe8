"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    redis_url: str | None = None
    cache_ttl_seconds: int = 3600
    snapshot_limit: int = 1000
    save_debounce_seconds: float = 0.5
    fields_table: str = "dynamic_fields"
    entries_table: str = "symptoms"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
