"""
request_cache: JSON cache over Redis attached to every HTTP request.

    from fastapi import FastAPI
    from request_cache import cache_middleware

    app = FastAPI()
    app.middleware("http")(cache_middleware({"host": "localhost", "port": 6379, "db": 1}))

Handlers then use ``request.state.cache``.
"""

from .cache import CacheHandle, ConnectionState, DeleteOutcome
from .middleware import CacheMiddleware, CacheRegistry, cache_middleware, cache_registry, get_cache
from .shared.config import CacheSettings
from .shared.errors import CacheError, ConnectionNotReadyError, SerializationError, StoreError

__all__ = [
    "CacheHandle",
    "ConnectionState",
    "DeleteOutcome",
    "CacheMiddleware",
    "CacheRegistry",
    "cache_middleware",
    "cache_registry",
    "get_cache",
    "CacheSettings",
    "CacheError",
    "ConnectionNotReadyError",
    "SerializationError",
    "StoreError",
]
