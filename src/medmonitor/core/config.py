"""Application Configuration Module.

Implements 12-factor app configuration using pydantic-settings.
All configuration is loaded from environment variables with sensible defaults.

Environment file loading priority:
1. If APP_ENV is set, loads .env.{APP_ENV} (e.g., .env.dev, .env.prod)
2. Falls back to .env if specific file doesn't exist
3. Environment variables always override file values

The Settings object is built once by the application factory and handed to
every component that needs it (``app.state.settings``); request handlers
read it through the ``get_app_settings`` dependency.
"""
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from fastapi import Depends, Request
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_env_file() -> str | tuple[str, ...]:
    """
    Determine which .env file(s) to load based on APP_ENV.

    Priority (later files override earlier):
    1. .env (base defaults)
    2. .env.{APP_ENV} (environment-specific overrides)
    """
    app_env = os.getenv("APP_ENV", "").lower()

    env_to_file = {
        "dev": "dev",
        "development": "dev",
        "prod": "prod",
        "production": "prod",
        "staging": "staging",
        "test": "test",
    }

    file_suffix = env_to_file.get(app_env, app_env)

    env_files: list[str] = []

    if Path(".env").exists():
        env_files.append(".env")

    if file_suffix:
        env_specific = f".env.{file_suffix}"
        if Path(env_specific).exists():
            env_files.append(env_specific)

    if env_files:
        return tuple(env_files)
    return ".env"  # Default even if doesn't exist


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Follows the 12-factor app methodology for configuration management.
    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Application Settings
    # ========================================
    APP_NAME: str = Field(
        default="medmonitor-clinic-service",
        description="Application name used in logging"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Semantic version of the application"
    )
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (never enable in production)"
    )

    # ========================================
    # Server Configuration
    # ========================================
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8080, ge=1, le=65535, description="Server port")
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    # ========================================
    # Database Configuration (PostgreSQL)
    # ========================================
    DATABASE_URL: str = Field(
        default="",
        description="PostgreSQL database connection URL (SQLAlchemy asyncpg format). Required in production."
    )
    DATABASE_POOL_SIZE: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Database connection pool size"
    )
    DATABASE_MAX_OVERFLOW: int = Field(
        default=10,
        ge=0,
        description="Max overflow connections beyond pool size"
    )
    DATABASE_POOL_TIMEOUT: int = Field(
        default=30,
        ge=1,
        description="Timeout for getting connection from pool (seconds)"
    )
    DATABASE_ECHO: bool = Field(
        default=False,
        description="Echo SQL statements to logs"
    )
    DATABASE_OPERATION_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for store calls made by the authorization gate"
    )

    # ========================================
    # Identity Issuer
    # ========================================
    IDENTITY_PROVIDER: Literal["google", "firebase"] = Field(
        default="google",
        description="External token issuer: Google Sign-In ID tokens or Firebase ID tokens"
    )
    GOOGLE_CLIENT_ID: str = Field(
        default="",
        description="OAuth client ID expected as the 'aud' claim of Google ID tokens"
    )
    FIREBASE_PROJECT_ID: str = Field(
        default="",
        description="Firebase project ID (used when IDENTITY_PROVIDER=firebase)"
    )
    IDENTITY_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single token verification call"
    )

    # ========================================
    # CORS Configuration
    # ========================================
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=False,
        description="Allow credentials in CORS requests. Must be False when CORS_ORIGINS='*'."
    )
    CORS_ALLOW_METHODS: str = Field(
        default="GET,POST,PUT,DELETE,OPTIONS,PATCH",
        description="Comma-separated list of allowed HTTP methods"
    )

    # ========================================
    # Scheduling
    # ========================================
    ALLOW_DOUBLE_BOOKING: bool = Field(
        default=False,
        description="Permit two Scheduled appointments for the same doctor at the same instant"
    )

    # ========================================
    # Startup bootstrap
    # ========================================
    BOOTSTRAP_ADMIN_EMAILS: str = Field(
        default="",
        description="Comma-separated emails promoted to admin at startup (existing users only)"
    )
    SEED_DEPARTMENTS: bool = Field(
        default=False,
        description="Create the default departments at startup when none exist"
    )

    # ========================================
    # Computed Properties
    # ========================================
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def cors_methods_list(self) -> list[str]:
        """Parse CORS methods from comma-separated string."""
        return [method.strip() for method in self.CORS_ALLOW_METHODS.split(",")]

    @property
    def bootstrap_admin_emails_list(self) -> list[str]:
        """Parse bootstrap admin emails, lowercased."""
        return [
            email.strip().lower()
            for email in self.BOOTSTRAP_ADMIN_EMAILS.split(",")
            if email.strip()
        ]

    @property
    def identity_audience(self) -> str:
        """Audience the configured issuer must have minted the token for."""
        if self.IDENTITY_PROVIDER == "firebase":
            return self.FIREBASE_PROJECT_ID
        return self.GOOGLE_CLIENT_ID

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.APP_ENV == "development"

    # ========================================
    # Validators
    # ========================================
    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Require DATABASE_URL; warn (not silently substitute) when absent in dev."""
        if not v:
            warnings.warn(
                "DATABASE_URL is not set. The application will fail on first DB access.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.CORS_ORIGINS.strip() == "*" and self.CORS_ALLOW_CREDENTIALS:
            raise ValueError(
                "CORS_ALLOW_CREDENTIALS cannot be True when CORS_ORIGINS is '*'. "
                "Set CORS_ORIGINS to an explicit comma-separated list of origins."
            )

        if self.is_production:
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production")
            if "localhost" in self.DATABASE_URL or "127.0.0.1" in self.DATABASE_URL:
                raise ValueError("DATABASE_URL must not point to localhost in production")
            if not self.identity_audience:
                raise ValueError(
                    f"An expected token audience must be configured for "
                    f"IDENTITY_PROVIDER={self.IDENTITY_PROVIDER} in production"
                )
            if self.ALLOW_DOUBLE_BOOKING:
                warnings.warn(
                    "ALLOW_DOUBLE_BOOKING is enabled in production.",
                    UserWarning,
                    stacklevel=2,
                )
        return self


@lru_cache
def get_settings() -> Settings:
    """Build settings from the environment.

    Only the process entrypoint (``main.app``), Alembic and scripts call this;
    everything else receives the instance the application factory was given.
    """
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings the app was created with."""
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_app_settings)]
