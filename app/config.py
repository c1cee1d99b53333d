# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# Environment-driven settings for the API and the Celery worker, validated
# by pydantic-settings at import time.
#
# Usage:
#   from app.config import settings
#   settings.BREVO_API_KEY
#
# Values come from the process environment first, then a .env file in the
# working directory. Supabase URL and keys are required.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Shared by the API process and Celery workers.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="dev-jwt-secret-change-in-production",
        description="Legacy HS256 secret used to verify Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (Celery broker, realtime fan-out, per-user state)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for Celery broker and pub/sub"
    )

    # -------------------------------------------------------------------------
    # Email (Brevo transactional API)
    # -------------------------------------------------------------------------

    BREVO_API_KEY: str = Field(
        default="",
        description="Brevo API key; emails are rejected when empty"
    )

    BREVO_API_URL: str = Field(
        default="https://api.brevo.com/v3/smtp/email",
        description="Brevo transactional email endpoint"
    )

    EMAIL_SENDER_NAME: str = Field(
        default="Spraxe Support",
        description="Display name used as the email sender"
    )

    EMAIL_SENDER_ADDRESS: str = Field(
        default="spraxecare@gmail.com",
        description="Sender address registered with Brevo"
    )

    # -------------------------------------------------------------------------
    # Storefront Settings
    # -------------------------------------------------------------------------

    PUBLIC_RATE_LIMIT: int = Field(
        default=20,
        ge=1,
        description="Requests allowed per window for public order endpoints"
    )

    PUBLIC_RATE_WINDOW_SECONDS: int = Field(
        default=600,
        ge=1,
        description="Rate limit window length in seconds"
    )

    TICKET_AUTO_CLOSE_DAYS: int = Field(
        default=3,
        ge=1,
        description="Resolved tickets untouched for this many days are closed"
    )

    TICKET_SLA_AT_RISK_HOURS: int = Field(
        default=4,
        ge=1,
        description="Tickets due within this many hours are flagged at risk"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    # CORS origins (comma-separated string that gets parsed)
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # File Upload Settings
    # -------------------------------------------------------------------------

    MAX_IMAGE_SIZE_MB: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum product/featured/attachment image size in MB"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://spraxe.com" -> ["http://localhost:3000", "https://spraxe.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def max_image_size_bytes(self) -> int:
        """Convert MB to bytes for upload validation."""
        return self.MAX_IMAGE_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Module-level instance used across app/, core/, lib/ and workers/
settings = get_settings()
