"""
Shared configuration management for the request cache.
"""

from typing import Any, Mapping, Optional, Tuple

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Connection and service settings for the cache."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore"
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Redis
    host: str = "localhost"
    port: int = 6379
    db: Optional[int] = None
    # Default expiry in milliseconds, used by CacheHandle.put()
    max_age: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("max_age", "maxAge", "CACHE_MAX_AGE"),
    )

    # HTTP service
    service_name: str = "cache"
    service_host: str = "0.0.0.0"
    service_port: int = 8000

    @property
    def store_key(self) -> Tuple[str, int, int]:
        """Identity of the Redis keyspace these settings address."""
        return (self.host, self.port, self.db or 0)


def split_options(options: Optional[Any]) -> Tuple[Optional[Any], CacheSettings]:
    """Split adapter options into an explicit handle and settings.

    ``options`` may be a ``CacheSettings`` instance, a mapping using the
    ``{cache, host, port, db, maxAge}`` keys, or ``None``.
    """
    if options is None:
        return None, CacheSettings()

    if isinstance(options, CacheSettings):
        return None, options

    if not isinstance(options, Mapping):
        raise TypeError(f"Unsupported cache options type: {type(options).__name__}")

    values = dict(options)
    cache = values.pop("cache", None)
    return cache, CacheSettings(**values)


def get_config() -> CacheSettings:
    """Get configuration from the environment."""
    return CacheSettings()
