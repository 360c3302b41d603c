"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # AUTH
    # ===================
    jwt_secret: str = Field(
        ...,
        min_length=16,
        description="Secret used to sign and verify bearer tokens"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    jwt_expire_minutes: int = Field(
        default=60 * 24,
        ge=5,
        le=60 * 24 * 30,
        description="Access token lifetime in minutes"
    )

    # ===================
    # SHIPSGO TRACKING
    # ===================
    shipsgo_api_url: str = Field(
        default="https://api.shipsgo.com/v2",
        description="ShipsGo API base URL"
    )
    shipsgo_api_key: Optional[str] = Field(
        None,
        description="ShipsGo user token (mock mode when not set)"
    )
    shipsgo_timeout_seconds: float = Field(
        default=5.0,
        ge=1,
        le=60,
        description="Timeout for a single ShipsGo request"
    )
    shipsgo_fallback_to_mock: bool = Field(
        default=False,
        description="Attach mock tracking data to degraded responses"
    )
    shipsgo_rate_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Tracking requests allowed per client per minute"
    )

    # ===================
    # BUSINESS SETTINGS
    # ===================
    payment_status_mode: str = Field(
        default="strict",
        pattern="^(strict|manual)$",
        description="strict: payment status must match the ledger unless overridden"
    )
    tracking_number_prefix: str = Field(
        default="GH",
        min_length=1,
        max_length=4,
        description="Prefix for generated public tracking numbers"
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Public frontend URL (used in tracking links)"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Allowed CORS origins"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def shipsgo_configured(self) -> bool:
        """Check if the ShipsGo API key is set."""
        return bool(self.shipsgo_api_key)

    @property
    def strict_payment_status(self) -> bool:
        return self.payment_status_mode == "strict"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
