"""
Application settings.

Values come from environment variables prefixed with ``GARDEN_PLANNER_``
(or a local ``.env`` file), e.g. ``GARDEN_PLANNER_SCORING_API_KEY=...``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the climate cache and fit scoring."""

    model_config = SettingsConfigDict(
        env_prefix="GARDEN_PLANNER_",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "garden-planner"
    app_env: str = "development"
    debug: bool = False
    data_dir: Path = Path("data")

    # Climate archive provider
    archive_api_url: str = "https://archive-api.open-meteo.com/v1/archive"
    archive_timeout_ms: int = Field(default=1200, gt=0)
    embargo_days: int = Field(default=5, ge=0)
    freshness_days: int = Field(default=30, gt=0)
    precip_ceiling_mm: float = Field(default=100.0, gt=0)

    # AI scoring provider
    scoring_api_url: str = "https://openrouter.ai/api/v1"
    scoring_api_key: SecretStr = SecretStr("")
    scoring_model: str = "openai/gpt-4o-mini"
    scoring_timeout_ms: int = Field(default=10_000, gt=0)
    scoring_retry_after_default: int = Field(default=60, ge=0)
    scoring_max_attempts: int = Field(default=3, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
