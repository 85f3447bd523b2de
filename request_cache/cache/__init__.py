"""
Cache package.

Provides the Redis-backed CacheHandle that stores JSON-serialized values
and reports results through callbacks.
"""

from .redis_cache import CacheHandle, ConnectionState, DeleteOutcome

__all__ = ["CacheHandle", "ConnectionState", "DeleteOutcome"]
