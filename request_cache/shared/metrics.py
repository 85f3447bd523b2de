"""
Shared metrics configuration for the request cache.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry


class CacheMetrics:
    """Centralized metrics collector for cache handles and the service."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache and HTTP metrics."""

        # Cache operation metrics
        self._metrics["cache_operations_total"] = Counter(
            "cache_operations_total",
            "Total cache operations",
            ["operation", "result"],
            registry=self.registry
        )

        self._metrics["cache_operation_duration_seconds"] = Histogram(
            "cache_operation_duration_seconds",
            "Cache operation duration in seconds",
            ["operation"],
            registry=self.registry
        )

        self._metrics["cache_connection_state"] = Gauge(
            "cache_connection_state",
            "Cache connection state (1 connected, 0 disconnected)",
            ["store"],
            registry=self.registry
        )

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_operation(self, operation: str, result: str, duration: float):
        """Record a cache operation outcome."""
        self._metrics["cache_operations_total"].labels(
            operation=operation,
            result=result
        ).inc()

        self._metrics["cache_operation_duration_seconds"].labels(
            operation=operation
        ).observe(duration)

    def record_connection_state(self, store: str, connected: bool):
        """Record the connection state of a handle."""
        self._metrics["cache_connection_state"].labels(store=store).set(1 if connected else 0)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)


_default_metrics: Optional[CacheMetrics] = None
_default_lock = threading.Lock()


def get_metrics_collector(registry: Optional[CollectorRegistry] = None) -> CacheMetrics:
    """Get a metrics collector.

    Without a registry the process-wide collector bound to the default
    Prometheus registry is returned; it is created once because metric names
    can only be registered once per registry.
    """
    global _default_metrics

    if registry is not None:
        return CacheMetrics(registry=registry)

    with _default_lock:
        if _default_metrics is None:
            _default_metrics = CacheMetrics()
        return _default_metrics
