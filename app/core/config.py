"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LogSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_log_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


class LogSettings(BaseSettings):
    """Logging configuration (format, destination, correlation header)."""

    level: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    format: str = Field(
        "json",
        description="Log format: 'json' for structured logs or 'plain'",
    )
    output: str = Field(
        "stdout",
        description="Log destination: 'stdout' or 'file'",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file'",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_tokens: str | None = Field(
        None,
        description="Comma-separated 'token:user_id' pairs accepted as bearer tokens",
    )
    role_assignments: str | None = Field(
        None,
        description="Comma-separated 'user_id:role' pairs assigned at startup",
    )
    auth_guard: str = Field(
        "api",
        description="Guard name roles and permissions are registered under",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable named rate limit policies on API routes",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    cms_default_per_page: int = Field(
        10,
        description="Default page size for CMS page listings",
        ge=1,
    )
    cms_max_per_page: int = Field(
        100,
        description="Upper bound for the CMS listing 'limit' parameter",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
