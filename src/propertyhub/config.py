"""Configuration system for PropertyHub.

Uses pydantic-settings to load configuration from environment variables
and .env files. Variable names match the field names (e.g. DATABASE_URL,
REDIS_URL, CORS_ORIGIN).
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Deployment environment; 'production' enables secure cookies",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # Persistence
    database_url: str | None = Field(
        default=None,
        description="Postgres DSN (PostGIS required)",
    )
    db_pool_min_size: int = Field(default=2, ge=1)
    db_pool_max_size: int = Field(default=10, ge=1)

    # Cache
    redis_url: str | None = Field(
        default=None,
        description="Redis URL; an in-process cache is used when unset",
    )
    cache_enabled: bool = Field(default=True, description="Disable to never cache")
    cache_namespace: str = Field(
        default="propertyhub",
        description="Prefix for every cache key; a flush only touches this namespace",
    )
    listing_cache_ttl: int = Field(
        default=600,
        gt=0,
        description="Seconds to keep listing and listing-collection results",
    )
    property_cache_ttl: int = Field(
        default=1800,
        gt=0,
        description="Seconds to keep single-property lookups",
    )
    nearby_cache_ttl: int = Field(
        default=600,
        gt=0,
        description="Seconds to keep nearby-search results",
    )

    # Geo search
    nearby_default_radius: float = Field(
        default=5000,
        ge=0,
        description="Radius in meters used when the request omits one",
    )
    nearby_page_size: int = Field(
        default=50,
        ge=1,
        description="Maximum properties returned by a nearby search",
    )

    # HTTP
    cors_origin: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )
    max_body_bytes: int = Field(default=16 * 1024, gt=0)

    # Auth
    jwt_secret_key: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=15, gt=0)
    refresh_token_expire_days: int = Field(default=7, gt=0)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip().rstrip("/") for o in self.cors_origin.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Settings singleton, read once from the environment."""
    return Settings()
