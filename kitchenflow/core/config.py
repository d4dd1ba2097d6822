"""
KitchenFlow — Centralized Configuration
All settings loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class AppSettings(BaseSettings):
    """Application-level settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "KitchenFlow"
    app_version: str = "1.0.0"
    app_env: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: str = "INFO"

    # --- Kitchen ---
    kitchen_timezone: str = "UTC"

    # --- Scheduler thresholds ---
    pending_delay_hours: float = Field(1.0, gt=0)
    processing_delay_hours: float = Field(0.5, gt=0)
    pickup_window_minutes: float = Field(30.0, ge=0)
    max_preparation_minutes: float = Field(120.0, gt=0)

    @field_validator("kitchen_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def is_production(self) -> bool:
        return self.app_env == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.app_env == Environment.DEVELOPMENT


@lru_cache()
def get_settings() -> AppSettings:
    """Return cached singleton application settings."""
    return AppSettings()
