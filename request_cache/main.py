"""
HTTP service exposing the request cache.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional

from fastapi import Body, Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .cache.redis_cache import CacheHandle
from .middleware import CacheRegistry, cache_middleware, cache_registry, get_cache
from .shared.config import CacheSettings, get_config
from .shared.errors import CacheError
from .shared.logging import configure_logging, get_logger
from .shared.metrics import CacheMetrics, get_metrics_collector


async def _invoke(operation: Callable, *args) -> Any:
    """Await a cache operation and raise the error its callback received."""
    outcome: Dict[str, Any] = {}

    def callback(error, result):
        outcome["error"] = error
        outcome["result"] = result

    await operation(*args, callback=callback)
    if outcome.get("error") is not None:
        raise outcome["error"]
    return outcome.get("result")


class CacheService:
    """Cache service with the pipeline adapter and HTTP endpoints."""

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        cache: Optional[CacheHandle] = None,
        *,
        registry: Optional[CacheRegistry] = None,
        metrics: Optional[CacheMetrics] = None,
    ):
        self.config = settings or get_config()
        self.service_name = self.config.service_name
        configure_logging(self.service_name, self.config.log_level)
        self.logger = get_logger(f"{self.service_name}.service")
        self.metrics = metrics or get_metrics_collector()
        self.registry = registry or cache_registry

        # A supplied handle is borrowed; otherwise the registry owns it.
        self._owns_cache = cache is None
        options = self.config if cache is None else {"cache": cache}
        self.cache_adapter = cache_middleware(options, registry=self.registry)
        self.cache: CacheHandle = self.cache_adapter.cache

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_cache_routes()

        self.app.state.cache_service = self

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        try:
            await self.cache.connect()
        except CacheError as exc:
            self.logger.warning(
                "Cache unavailable at startup; cache operations will fail fast",
                store=self.cache.store_name,
                error=exc.message,
            )
        try:
            yield
        finally:
            if self._owns_cache:
                await self.registry.release(self.cache)

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description="JSON cache over Redis",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
            lifespan=self._lifespan,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.middleware("http")(self.cache_adapter)

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()

            response = await call_next(request)

            duration = time.time() - start_time
            self.metrics.record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
                duration=duration
            )
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )

            return response

    def _setup_routes(self):
        """Set up health, metrics and error handling."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            cache_health = await self.cache.health_check()
            body = {
                "service": self.service_name,
                "status": "ok" if cache_health["healthy"] else "degraded",
                "dependencies": {"redis": cache_health},
                "version": "1.0.0",
            }
            return JSONResponse(status_code=200 if cache_health["healthy"] else 503, content=body)

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry or REGISTRY),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(CacheError)
        async def cache_exception_handler(request: Request, exc: CacheError):
            """Handle CacheError."""
            self.logger.error(
                "Cache error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "code": "INTERNAL_ERROR",
                    "message": "Internal server error",
                    "details": {}
                }
            )

    def _setup_cache_routes(self):
        """Set up routes over the cache operations."""

        @self.app.get("/cache")
        async def count_entries(cache: CacheHandle = Depends(get_cache)):
            return {"count": await _invoke(cache.count)}

        @self.app.delete("/cache")
        async def flush_entries(cache: CacheHandle = Depends(get_cache)):
            await _invoke(cache.flush)
            return {"flushed": True}

        @self.app.get("/cache/{key}")
        async def get_entry(
            key: str,
            cacheable: bool = Query(True),
            cache: CacheHandle = Depends(get_cache),
        ):
            """Look up a key. A stored JSON null reads the same as a miss."""
            value = await _invoke(cache.get, key, cacheable)
            return {"key": key, "found": value is not None, "value": value}

        @self.app.put("/cache/{key}")
        async def put_entry(
            key: str,
            value: Any = Body(...),
            ttl: Optional[int] = Query(None),
            cache: CacheHandle = Depends(get_cache),
        ):
            if ttl is None:
                await _invoke(cache.put, key, value)
            else:
                await _invoke(cache.setex, key, ttl, value)
            return {"key": key, "stored": True, "ttl": ttl if ttl is not None else cache.default_ttl}

        @self.app.delete("/cache/{key}")
        async def delete_entry(key: str, cache: CacheHandle = Depends(get_cache)):
            outcome = (await _invoke(cache.delete, key))[0]
            if outcome.error is not None:
                raise outcome.error
            return {"key": key, "deleted": outcome.deleted}

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.service_host,
            port=self.config.service_port,
            log_level=self.config.log_level.lower()
        )


def create_app(settings: Optional[CacheSettings] = None, cache: Optional[CacheHandle] = None) -> FastAPI:
    """Create FastAPI application."""
    service = CacheService(settings, cache)
    return service.app


if __name__ == "__main__":
    service = CacheService()
    service.run()
