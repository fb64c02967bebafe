"""
Application Settings for Gylde

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Stripe price ids are configured per (tier, interval) pair. A pair left
    unset is not purchasable and checkout for it fails with a
    configuration error.
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    app_base_url: str = "http://localhost:4200"

    # CORS Configuration
    allowed_origins: list[str] = [
        "http://localhost:4200",
        "http://127.0.0.1:4200",
    ]

    # Auth (JWT verification)
    auth_issuer: str = "http://localhost:9099/auth/v1"
    auth_jwks_url: Optional[str] = None
    auth_audience: str = "authenticated"
    auth_jwt_secret: Optional[str] = None

    # Stripe Configuration
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_plus_monthly: Optional[str] = None
    stripe_price_plus_quarterly: Optional[str] = None
    stripe_price_elite_monthly: Optional[str] = None
    stripe_price_elite_quarterly: Optional[str] = None

    # Remote-config style limits
    premium_max_photos: int = 20

    # Live views (Server-Sent Events)
    live_ping_seconds: int = 15

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject limits that would break the entitlement math."""
        if self.premium_max_photos < 1:
            raise ValueError("PREMIUM_MAX_PHOTOS must be at least 1")
        if self.live_ping_seconds < 1:
            raise ValueError("LIVE_PING_SECONDS must be at least 1")
        return self

    @property
    def jwks_url(self) -> str:
        """JWKS endpoint, derived from the issuer when not set explicitly."""
        if self.auth_jwks_url:
            return self.auth_jwks_url
        return f"{self.auth_issuer.rstrip('/')}/.well-known/jwks.json"

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
