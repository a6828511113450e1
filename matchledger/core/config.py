"""
Application configuration with environment-specific secrets management.

Supported environment files (loaded in order of precedence):
1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
2. .env (fallback)

Required secrets for production:
- BACKEND_URL and BACKEND_API_KEY (when STORAGE_BACKEND=rest)
- AUTH_PROVIDER_URL and AUTH_SECRET_KEY (wallet sign-in)
"""
import os
import logging
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (3 levels up from this file)
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment-specific configuration."""

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Allow extra fields from .env
    )

    # Application
    APP_NAME: str = "Match Ledger API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Storage: "rest" (hosted backend), "sql" (SQLAlchemy) or "memory"
    STORAGE_BACKEND: Literal["rest", "sql", "memory"] = "rest"

    # Hosted relational backend (PostgREST API)
    BACKEND_URL: str = ""
    BACKEND_API_KEY: str = ""
    BACKEND_TIMEOUT_SECONDS: float = 30.0
    BACKEND_BREAKER_FAIL_MAX: int = 5
    BACKEND_BREAKER_RESET_TIMEOUT: int = 60

    # Self-hosted database for STORAGE_BACKEND=sql
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///data/matchledger.db")

    # Deleted match ids survive restarts in this file
    TOMBSTONE_PATH: str = str(PROJECT_ROOT / "data" / "local_storage.json")

    # Waits before re-reading the backend after writes
    RECOMPUTE_SETTLE_DELAY_MS: int = 200
    DELETE_SETTLE_DELAY_MS: int = 500
    MATCH_LIST_LIMIT: int = 1000

    # Wallet auth provider
    AUTH_PROVIDER_URL: str = ""
    AUTH_SECRET_KEY: str = ""
    AUTH_DOMAIN: str = "localhost"
    AUTH_TIMEOUT_SECONDS: float = 15.0
    SESSION_COOKIE_NAME: str = "jwt"
    SESSION_COOKIE_SECURE: bool = False

    # Admin operations (tombstone reset, status)
    ADMIN_TOKEN: str = ""

    # Periodic stats refresh
    STATS_REFRESH_ENABLED: bool = False
    STATS_REFRESH_INTERVAL_SECONDS: int = 120

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True

    # CORS - comma-separated string for env var parsing
    CORS_ORIGINS_STR: str = ""

    @property
    def CORS_ORIGINS(self) -> list[str]:
        """Get CORS origins with environment-aware defaults."""
        if self.CORS_ORIGINS_STR:
            origins = [o.strip() for o in self.CORS_ORIGINS_STR.split(",") if o.strip()]
            if origins:
                # Reject wildcard in production
                if self.is_production() and "*" in origins:
                    logger.warning(
                        "Wildcard CORS origins (*) are not allowed in production. "
                        "Please set explicit origins in CORS_ORIGINS_STR environment variable."
                    )
                    return []
                return origins

        if self.is_production():
            logger.warning(
                "CORS_ORIGINS_STR not set in production. "
                "Please set CORS_ORIGINS_STR environment variable with explicit origins."
            )
            return []
        else:
            return [
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:8001",
                "http://127.0.0.1:8001",
            ]

    @property
    def recompute_settle_delay(self) -> float:
        return self.RECOMPUTE_SETTLE_DELAY_MS / 1000.0

    @property
    def delete_settle_delay(self) -> float:
        return self.DELETE_SETTLE_DELAY_MS / 1000.0

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    def validate_required_secrets(self) -> list[str]:
        """
        Validate that required secrets are set for the current environment.

        Returns:
            List of missing secret names (empty if all present)
        """
        missing = []

        if self.STORAGE_BACKEND == "rest":
            if not self.BACKEND_URL:
                missing.append("BACKEND_URL")
            if not self.BACKEND_API_KEY:
                missing.append("BACKEND_API_KEY")

        if self.is_production():
            if not self.AUTH_PROVIDER_URL:
                missing.append("AUTH_PROVIDER_URL")
            if not self.AUTH_SECRET_KEY:
                missing.append("AUTH_SECRET_KEY")
            if not self.ADMIN_TOKEN:
                missing.append("ADMIN_TOKEN")

        return missing


def _load_env_file() -> Path:
    """
    Load the appropriate environment file based on ENVIRONMENT variable.

    Loads in order of precedence:
    1. .env.{ENVIRONMENT} (e.g., .env.production, .env.development)
    2. .env (fallback)
    """
    environment = os.getenv("ENVIRONMENT", "development")

    env_file = PROJECT_ROOT / f".env.{environment}"
    if env_file.exists():
        logger.info(f"Loading environment from {env_file.name}")
        return env_file

    default_env = PROJECT_ROOT / ".env"
    if default_env.exists():
        logger.info(f"Loading environment from .env (environment: {environment})")
        return default_env

    logger.warning(f"No environment file found for '{environment}' (checked .env.{environment}, .env)")
    return default_env


_env_file = _load_env_file()


class _SettingsWithEnvFile(Settings):
    model_config = SettingsConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


settings = _SettingsWithEnvFile()

# Validate secrets on startup
missing_secrets = settings.validate_required_secrets()
if missing_secrets:
    logger.warning(f"Missing required secrets for {settings.ENVIRONMENT}: {', '.join(missing_secrets)}")
    if settings.is_production():
        raise ValueError(
            f"Cannot start in production with missing secrets: {', '.join(missing_secrets)}. "
            f"Please set these environment variables in .env.production"
        )
