"""
Shared utilities for the request cache.

This package aggregates the building blocks used by the cache handle,
the pipeline adapter and the HTTP service:

- config: Cache configuration via pydantic-settings
- logging: Structured logging with structlog
- metrics: Prometheus metrics helpers
- errors: Canonical cache error types and responses

Do not import from request_cache.cache or request_cache.middleware into
shared/ to avoid import cycles.
"""
