"""Carzo settings, read from environment variables with pydantic-settings.

Three groups, each with its own prefix: ``APP_`` (search and rate limiting),
``SUPABASE_`` (hosted counter store) and ``LOG_`` (log output). ``APP_ENV``
picks an optional ``.env.<env>`` file at the project root whose values are
loaded into the environment before the groups are built.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

# .env files live next to pyproject.toml, not in the working directory
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    BaseSettings populates fields from environment variables; static type
    checkers still treat required fields as constructor arguments, hence the
    type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_supabase_settings() -> "SupabaseSettings":
    return SupabaseSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Search and rate limiting configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    results_per_page: int = Field(
        24,
        description="Number of vehicles shown per search results page",
        ge=1,
    )
    search_radius_miles: float = Field(
        100.0,
        description="Maximum distance from the user for location-based search",
        gt=0,
    )
    max_search_results: int = Field(
        5000,
        description="Cap on candidates fetched for searches without a location",
        ge=1,
    )
    related_vehicles_limit: int = Field(
        8,
        description="Number of related vehicles returned on a vehicle detail page",
        ge=1,
    )
    inventory_path: str | None = Field(
        None,
        description="Path to a JSON file with vehicle inventory for the in-memory repository",
    )
    user_id_cookie: str = Field(
        "carzo_user_id",
        description="Cookie holding the anonymous per-user UUID",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting on search and inventory endpoints",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on rate limited endpoints",
    )
    rate_limit_backend: str = Field(
        "memory",
        description="Counter store backend: 'memory' (per-process) or 'supabase'",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class SupabaseSettings(BaseSettings):
    """Connection settings for the hosted counter store (check_rate_limit RPC)."""

    url: str | None = Field(
        None,
        description="Supabase project URL (e.g., https://xyz.supabase.co)",
    )
    service_key: str | None = Field(
        None,
        description="Service role key used for RPC calls",
    )
    timeout_seconds: float = Field(
        5.0,
        description="Request timeout in seconds for counter store calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Settings root; ``settings.app``, ``settings.supabase`` and ``settings.log``."""

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    supabase: SupabaseSettings = Field(default_factory=_build_supabase_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
