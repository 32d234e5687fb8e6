"""
Unified configuration for the AuthSmith services.

This module provides a single Settings class that consolidates all
environment variables read by the trust-and-access engine: API keys,
JWT signing material, permission caching and rate limiting.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for .env file loading (allows running from any CWD)
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Unified settings for all AuthSmith services.

    Environment variables are loaded from .env file and can be overridden
    by actual environment variables. List values accept either JSON arrays
    or comma-separated strings.
    """

    # Service identification
    SERVICE_NAME: str = "authsmith"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    POSTGRES_DSN: str = "host=localhost port=5432 dbname=authsmith user=postgres password=postgres"

    # Redis (permission cache)
    REDIS_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379/0"

    # API keys
    ADMIN_API_KEYS: list[str] = []

    # JWT
    JWT_ISSUER: str = "authsmith"
    JWT_AUDIENCE: str = "authsmith-clients"
    JWT_EXPIRATION_MINUTES: int = 15
    JWT_PRIVATE_KEY_PATH: str = ""
    JWT_PUBLIC_KEY_PATH: str = ""

    # Permission cache
    PERMISSION_CACHE_TTL_SECONDS: int = 900  # 15 minutes

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_GENERAL: int = 100  # per window
    RATE_LIMIT_AUTH: int = 10  # per window
    RATE_LIMIT_REGISTRATION: int = 5  # per hour
    RATE_LIMIT_PASSWORD_RESET: int = 3  # per hour
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_REDIS_URL: str = ""  # empty = in-process windows (single instance only)
    RATE_LIMIT_WHITELISTED_IPS: list[str] = []
    RATE_LIMIT_WHITELISTED_API_KEYS: list[str] = []

    # Auth settings
    REQUIRE_AUTH: bool = True

    # Telemetry
    ENABLE_TELEMETRY: bool = False
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None
    OTEL_SERVICE_NAME: str | None = None

    @field_validator(
        "ADMIN_API_KEYS",
        "RATE_LIMIT_WHITELISTED_IPS",
        "RATE_LIMIT_WHITELISTED_API_KEYS",
        mode="before",
    )
    @classmethod
    def split_comma_separated(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        extra="ignore",
    )


# Global settings instance
settings = Settings()  # type: ignore
