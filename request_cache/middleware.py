"""
Pipeline adapter attaching a shared cache handle to every request.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .cache.redis_cache import CacheHandle
from .shared.config import CacheSettings, split_options
from .shared.logging import get_logger


logger = get_logger("cache.middleware")

CallNext = Callable[[Request], Awaitable[Response]]


class CacheRegistry:
    """Reference-counted owner of cache handles, one per Redis keyspace."""

    def __init__(self):
        self.logger = get_logger("cache.registry")
        self._handles: Dict[Tuple[Any, ...], CacheHandle] = {}
        self._refs: Dict[int, int] = {}

    @staticmethod
    def _key(settings: CacheSettings) -> Tuple[Any, ...]:
        return settings.store_key + (settings.max_age,)

    def acquire(self, settings: CacheSettings, **handle_kwargs) -> CacheHandle:
        """Return the handle for ``settings``, creating it on first use."""
        key = self._key(settings)
        handle = self._handles.get(key)
        if handle is None:
            handle = CacheHandle.from_settings(settings, **handle_kwargs)
            self._handles[key] = handle
            self._refs[id(handle)] = 0
            self.logger.debug("Created cache handle", store=handle.store_name)

        self._refs[id(handle)] += 1
        return handle

    def references(self, handle: CacheHandle) -> int:
        """Number of outstanding references held on ``handle``."""
        return self._refs.get(id(handle), 0)

    async def release(self, handle: CacheHandle) -> bool:
        """Drop one reference; close the handle when none remain.

        Returns True if the handle was closed.
        """
        refs = self._refs.get(id(handle))
        if refs is None:
            self.logger.debug("Release of unregistered cache handle ignored", store=handle.store_name)
            return False

        refs -= 1
        if refs > 0:
            self._refs[id(handle)] = refs
            return False

        del self._refs[id(handle)]
        for key, registered in list(self._handles.items()):
            if registered is handle:
                del self._handles[key]
        await handle.close()
        return True


cache_registry = CacheRegistry()


def cache_middleware(options: Optional[Any] = None, *, registry: Optional[CacheRegistry] = None):
    """Build a ``(request, call_next)`` middleware attaching the cache handle.

    ``options`` may carry an existing handle under ``"cache"``; it is then
    used verbatim and not owned by the registry. Otherwise a handle is
    acquired from ``registry`` (the process-wide registry by default) for the
    given host, port, db and maxAge. The handle is exposed as the ``cache``
    attribute of the returned function.
    """
    cache, settings = split_options(options)
    if cache is None:
        cache = (registry or cache_registry).acquire(settings)
        logger.info("Setup cache.", store=cache.store_name)
    else:
        logger.info("Setup cache.", store=getattr(cache, "store_name", None), shared=True)

    async def middleware(request: Request, call_next: CallNext) -> Response:
        request.state.cache = cache
        return await call_next(request)

    middleware.cache = cache
    return middleware


class CacheMiddleware(BaseHTTPMiddleware):
    """Class form of the adapter for ``app.add_middleware``."""

    def __init__(self, app, cache: CacheHandle):
        super().__init__(app)
        self.cache = cache

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request.state.cache = self.cache
        return await call_next(request)


def get_cache(request: Request) -> CacheHandle:
    """FastAPI dependency returning the handle attached to the request."""
    return request.state.cache
