"""
Shared configuration management for the resource cache.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CACHE_GRACE_PERIOD_MS = 150_000
DEFAULT_PREFETCH_DELAY_MS = 50


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RESOURCE_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Observability
    enable_metrics: bool = Field(default=True)


class CacheConfig(BaseConfig):
    """Cache-specific configuration."""

    # Milliseconds an unowned entry survives before eviction
    cache_grace_period_ms: int = Field(default=DEFAULT_CACHE_GRACE_PERIOD_MS, ge=0)

    # Hover delay before an armed prefetch fires
    prefetch_delay_ms: int = Field(default=DEFAULT_PREFETCH_DELAY_MS, ge=0)


def get_config(**overrides) -> CacheConfig:
    """Get cache configuration, applying explicit overrides on top of the environment."""
    return CacheConfig(**overrides)
