"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, NonNegativeInt, PositiveInt, SecretStr
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from nosbot.config import CONFIG_ROOT

DEFAULT_ENDPOINT_COST = 1


class QuotaCostConfig(BaseModel):
    """Quota units charged by the YouTube Data API for each endpoint."""

    endpoints: Dict[str, NonNegativeInt] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def cost_for(self, endpoint: str) -> int:
        """Return the configured cost for ``endpoint`` (1 unit when unknown)."""

        return self.endpoints.get(endpoint, DEFAULT_ENDPOINT_COST)


def _load_quota_costs(quota_cost_path: Path) -> QuotaCostConfig:
    if not quota_cost_path.exists():
        return QuotaCostConfig()

    raw_data = yaml.safe_load(quota_cost_path.read_text(encoding="utf-8")) or {}
    return QuotaCostConfig(endpoints=dict(raw_data.get("endpoints", {})))


class Settings(BaseSettings):
    """Primary application settings for the Nosbot pipeline and CLI."""

    database_url: PostgresDsn = Field(alias="DATABASE_URL")
    youtube_api_key: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_API_KEY")
    openai_api_key: Optional[SecretStr] = Field(default=None, alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[SecretStr] = Field(default=None, alias="ANTHROPIC_API_KEY")
    gemini_api_key: Optional[SecretStr] = Field(default=None, alias="GOOGLE_GEMINI_API_KEY")
    ai_model_name: Optional[str] = Field(default=None, alias="AI_MODEL_NAME")
    langfuse_public_key: Optional[SecretStr] = Field(default=None, alias="LANGFUSE_PUBLIC_KEY")
    langfuse_secret_key: Optional[SecretStr] = Field(default=None, alias="LANGFUSE_SECRET_KEY")
    langfuse_host: Optional[HttpUrl] = Field(default=None, alias="LANGFUSE_HOST")

    index_page_size: PositiveInt = Field(default=50, le=50, alias="INDEX_PAGE_SIZE")
    channel_cache_days: PositiveInt = Field(default=30, alias="CHANNEL_CACHE_DAYS")
    youtube_daily_quota: PositiveInt = Field(default=10_000, alias="YOUTUBE_DAILY_QUOTA")
    default_playlist_size: PositiveInt = Field(default=10, le=25, alias="DEFAULT_PLAYLIST_SIZE")
    db_pool_min_size: PositiveInt = Field(default=1, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: PositiveInt = Field(default=8, alias="DB_POOL_MAX_SIZE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    quota_costs: QuotaCostConfig = Field(default_factory=lambda: _load_quota_costs(CONFIG_ROOT / "quota_costs.yaml"))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = ["QuotaCostConfig", "Settings", "get_settings"]
