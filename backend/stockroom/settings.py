# stockroom/settings.py
"""
Runtime configuration for the Stockroom API.

Values come from the environment (or a local ``.env`` file); names are
case-insensitive and unknown keys are ignored.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================================================================
    # Database
    # =========================================================================
    DATABASE_URL: str = Field(default="sqlite:///./stockroom.db")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_ECHO: bool = Field(default=False)
    # Production schemas are managed by alembic; this is for dev and tests
    AUTO_CREATE_SCHEMA: bool = Field(default=False)

    # =========================================================================
    # Logging / error reporting
    # =========================================================================
    LOG_LEVEL: str = Field(default="INFO")
    LOG_DIR: Path | None = Field(default=None)
    SENTRY_DSN: str | None = Field(default=None)

    # =========================================================================
    # HTTP
    # =========================================================================
    TESTING: bool = Field(default=False)
    CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )
    SIGNUP_RATE_LIMIT: str = Field(default="5/minute")
    DEFAULT_PAGE_SIZE: int = Field(default=50, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    # =========================================================================
    # Domain
    # =========================================================================
    MAX_LOCATION_DEPTH: int = Field(default=64, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
