"""Application configuration using pydantic-settings."""
from enum import StrEnum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheBackendType(StrEnum):
    """Where cached user data lives."""

    REDIS = "redis"
    MEMORY = "memory"


class ConsistencyStrategy(StrEnum):
    """Names used in configuration to select a UserService implementation."""

    BULK_INVALIDATE = "bulk"
    KEYED_INVALIDATE = "keyed"
    NO_CACHE = "none"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, validation_alias="DB_MAX_OVERFLOW")
    # Create the users table on startup (no migrations are shipped)
    db_create_tables: bool = Field(default=True, validation_alias="DB_CREATE_TABLES")

    # Cache - process-wide switch, read once at startup and never mutated
    cache_enabled: bool = Field(default=True, validation_alias="CACHE_ENABLED")
    cache_backend: CacheBackendType = Field(
        default=CacheBackendType.REDIS, validation_alias="CACHE_BACKEND",
    )

    # Redis - backing store for the user cache
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")

    # Which consistency strategy AppContext.service() hands out by default
    consistency_strategy: ConsistencyStrategy = Field(
        default=ConsistencyStrategy.KEYED_INVALIDATE, validation_alias="CONSISTENCY_STRATEGY",
    )

    @model_validator(mode="after")
    def validate_cache_backend(self) -> "Settings":
        """Require a Redis URL when caching through Redis."""
        if (
            self.cache_enabled
            and self.cache_backend == CacheBackendType.REDIS
            and not self.redis_url.strip()
        ):
            raise ValueError(
                "REDIS_URL must be set when CACHE_ENABLED is true and CACHE_BACKEND is 'redis'.",
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
