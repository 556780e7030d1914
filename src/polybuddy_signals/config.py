"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
signal scoring engine, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        alias="DATABASE_URL",
        description="PostgreSQL connection string (sqlite+aiosqlite accepted for local runs)",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("DATABASE_URL must be a PostgreSQL or sqlite+aiosqlite connection string")
        return v


class RedisSettings(BaseSettings):
    """Redis settings for the notification stream."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        default="redis://localhost:6379",
        alias="REDIS_URL",
        description="Redis connection string",
    )
    notifications_enabled: bool = Field(
        default=False,
        alias="REDIS_NOTIFICATIONS_ENABLED",
        description="Also publish triggered-alert notifications to a Redis stream",
    )
    notifications_stream: str = Field(
        default="polybuddy:notifications",
        alias="REDIS_NOTIFICATIONS_STREAM",
        min_length=1,
        description="Redis stream key for notifications",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith("redis://"):
            raise ValueError("REDIS_URL must start with redis://")
        return v


class ScoringSettings(BaseSettings):
    """Snapshot windows and thresholds used by the classifiers."""

    model_config = SettingsConfigDict(env_prefix="SCORING_", extra="ignore")

    behavior_window: int = Field(
        default=100,
        alias="SCORING_BEHAVIOR_WINDOW",
        ge=1,
        le=1000,
        description="Most recent snapshots fed to the behavior feature extractor",
    )
    flow_window: int = Field(
        default=50,
        alias="SCORING_FLOW_WINDOW",
        ge=1,
        le=1000,
        description="Most recent snapshots fed to the flow feature extractor",
    )
    participation_window: int = Field(
        default=20,
        alias="SCORING_PARTICIPATION_WINDOW",
        ge=0,
        le=500,
        description="Historical snapshots used for participation stability",
    )
    exposure_candidate_limit: int = Field(
        default=200,
        alias="SCORING_EXPOSURE_CANDIDATE_LIMIT",
        ge=1,
        le=10_000,
        description="Maximum number of other markets compared in an exposure batch",
    )
    signal_max_age_hours: int = Field(
        default=4,
        alias="SCORING_SIGNAL_MAX_AGE_HOURS",
        ge=1,
        le=168,
        description="Retail signals older than this are ignored by alert evaluation",
    )
    volume_spike_baseline: Decimal = Field(
        default=Decimal("10000"),
        alias="SCORING_VOLUME_SPIKE_BASELINE",
        description="Assumed average 24h volume for volume_spike alerts",
    )
    participation_seed: int | None = Field(
        default=None,
        alias="SCORING_PARTICIPATION_SEED",
        description="Seed for the NO-side participation jitter (unset = nondeterministic)",
    )

    @field_validator("volume_spike_baseline")
    @classmethod
    def validate_volume_spike_baseline(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("SCORING_VOLUME_SPIKE_BASELINE must be > 0")
        return v


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from polybuddy_signals.config import get_settings

        settings = get_settings()
        print(settings.database.url)
        print(settings.scoring.behavior_window)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    # NOTE: Each nested BaseSettings must be given the same env_file, otherwise it
    # will only read from the process environment (and ignore `.env`).
    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    redis: RedisSettings = Field(
        default_factory=lambda: RedisSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    scoring: ScoringSettings = Field(
        default_factory=lambda: ScoringSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Evaluate alerts without marking them triggered or emitting notifications",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": self._redact_url(self.database.url),
            "redis_url": self._redact_url(self.redis.url),
            "redis_notifications": {
                "enabled": str(self.redis.notifications_enabled),
                "stream": self.redis.notifications_stream,
            },
            "scoring": {
                "behavior_window": str(self.scoring.behavior_window),
                "flow_window": str(self.scoring.flow_window),
                "participation_window": str(self.scoring.participation_window),
                "exposure_candidate_limit": str(self.scoring.exposure_candidate_limit),
                "signal_max_age_hours": str(self.scoring.signal_max_age_hours),
                "volume_spike_baseline": str(self.scoring.volume_spike_baseline),
                "participation_seed": (
                    str(self.scoring.participation_seed)
                    if self.scoring.participation_seed is not None
                    else "(not set)"
                ),
            },
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
            or have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
