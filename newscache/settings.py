"""Configuration models for the news cache service."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import (
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment settings for the cache, the upstream client and the refresher."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    news_api_key: Optional[SecretStr] = Field(None, alias="NEWS_API_KEY", description="News API credential.")
    news_api_base_url: str = Field(
        "https://newsapi.org/v2",
        alias="NEWS_API_BASE_URL",
        description="Base URL holding the top-headlines and everything endpoints.",
    )
    news_api_timeout_seconds: PositiveInt = Field(5, alias="NEWS_API_TIMEOUT_SECONDS", description="Upstream timeout (seconds).")
    news_api_page_size: PositiveInt = Field(20, alias="NEWS_API_PAGE_SIZE", description="Upstream page size (<=100).")
    database_url: str = Field(..., alias="NEWSCACHE_DATABASE_URL", description="SQLAlchemy database URL.")
    redis_url: Optional[str] = Field(None, alias="NEWSCACHE_REDIS_URL", description="Celery broker and refresh lease DSN.")
    cache_ttl_minutes: PositiveInt = Field(15, alias="CACHE_TTL_MINUTES", description="Cached article lifetime.")
    refresh_interval_minutes: PositiveInt = Field(
        15,
        alias="CACHE_REFRESH_INTERVAL_MINUTES",
        description="Period between background refresh ticks.",
    )
    refresh_pause_seconds: PositiveFloat = Field(
        1.0,
        alias="CACHE_REFRESH_PAUSE_SECONDS",
        description="Pause between upstream calls inside one refresh tick.",
    )
    search_limit: PositiveInt = Field(20, alias="CACHE_SEARCH_LIMIT", description="Maximum cached search results.")
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="Log level.")
    log_json: bool = Field(False, alias="LOG_JSON", description="Emit logs as JSON lines.")
    celery_task_soft_time_limit: PositiveInt = Field(
        600,
        alias="CELERY_TASK_SOFT_TIME_LIMIT",
        description="Soft time limit for the refresh task (seconds).",
    )

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("NEWSCACHE_DATABASE_URL must be a valid database URL.")
        return value

    @field_validator("news_api_page_size")
    @classmethod
    def _validate_page_size(cls, v: int) -> int:
        if v > 100:
            raise ValueError("NEWS_API_PAGE_SIZE must be 100 or less.")
        return v

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(minutes=self.cache_ttl_minutes)

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(minutes=self.refresh_interval_minutes)


@lru_cache()
def get_settings() -> Settings:
    """Return the Settings instance built from the environment."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Environment validation failed: {exc}") from exc


def reset_settings_cache() -> None:
    """Clear the Settings LRU cache (for tests)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
