"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import Environment


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    JWT secrets have no defaults: a missing or short secret fails
    validation, which aborts startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Deployment environment",
    )

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3001, ge=1, le=65535, description="API server port")
    api_prefix: str = Field(default="/api/v1", description="Route prefix")
    debug: bool = Field(default=False, description="Enable debug mode")
    cors_origin: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origin",
    )

    # Database settings
    database_url: str = Field(
        default="postgresql+asyncpg://ha:ha@localhost:5432/ha_management",
        description="PostgreSQL connection URL (async format)",
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_echo: bool = Field(default=False, description="Echo SQL statements")

    # Rate limiting (per client address)
    rate_limit_enabled: bool = Field(default=True, description="Enable request rate limits")
    rate_limit_per_minute: int = Field(
        default=100, ge=1, description="Requests per minute across the API"
    )
    auth_rate_limit_per_minute: int = Field(
        default=10, ge=1, description="Requests per minute to the /auth endpoints"
    )

    # JWT Authentication Settings
    jwt_secret: str = Field(
        min_length=32,
        description="Secret key for access token signing (at least 32 characters)",
    )
    jwt_refresh_secret: Annotated[str, Field(min_length=32)] | None = Field(
        default=None,
        description="Secret key for refresh token signing, falls back to jwt_secret",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    jwt_access_token_expire_minutes: int = Field(
        default=15,
        ge=1,
        le=60,
        description="Access token expiration in minutes",
    )
    jwt_refresh_token_expire_days: int = Field(
        default=7,
        ge=1,
        le=30,
        description="Refresh token expiration in days",
    )
    jwt_issuer: str = Field(
        default="ha-management-api",
        description="JWT issuer claim",
    )
    jwt_audience: str = Field(
        default="ha-management-client",
        description="JWT audience claim",
    )

    @computed_field
    @property
    def is_production(self) -> bool:
        """Whether internal error details must be hidden from clients."""
        return self.environment == Environment.PRODUCTION

    @property
    def expose_error_details(self) -> bool:
        """Show raw internal messages in error responses."""
        return self.debug or not self.is_production


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    get_settings.cache_clear()
