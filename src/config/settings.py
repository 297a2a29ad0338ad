# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: backend choice,
TTL, fail-fast timeouts and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Upper bound on time spent in the cache for one operation, retries included.
MAX_CACHE_LATENCY_BUDGET_MS = 1000


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cached routes ===
    cached_routes_table_name: str = "CachedRoutes"
    cache_backend: Literal["memory", "sqlite", "redis"] = "memory"
    cache_sqlite_path: Path = Path("~/.routecache/cached_routes.db")
    cache_redis_url: str = ""
    cache_ttl_minutes: int = 2

    # === Fail-fast backend policy ===
    cache_timeout_ms: int = 100
    cache_max_retries: int = 1
    cache_retry_base_delay_ms: int = 20

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_ttl_minutes", "cache_timeout_ms")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:  # noqa: N805
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @field_validator("cache_max_retries", "cache_retry_base_delay_ms")
    @classmethod
    def validate_non_negative(cls, v: int, info) -> int:  # noqa: N805
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field consistency rules."""
        errors: list[str] = []

        budget = self.cache_timeout_ms * (self.cache_max_retries + 1)
        if budget > MAX_CACHE_LATENCY_BUDGET_MS:
            errors.append(
                f"CACHE_TIMEOUT_MS x attempts is {budget}ms, "
                f"must be <= {MAX_CACHE_LATENCY_BUDGET_MS}ms"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_ttl_minutes * 60


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
