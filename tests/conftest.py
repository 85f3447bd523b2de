"""
Shared fixtures for request cache tests.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry
from redis.exceptions import ResponseError

from request_cache.cache.redis_cache import CacheHandle
from request_cache.shared.metrics import CacheMetrics


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis with decode_responses=True."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, int] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.closed = False

    async def ping(self):
        self.calls.append(("ping",))
        return True

    async def get(self, key):
        self.calls.append(("get", key))
        return self.data.get(key)

    async def set(self, key, value):
        self.calls.append(("set", key, value))
        self.data[key] = value
        self.expiry.pop(key, None)
        return True

    async def setex(self, key, seconds, value):
        self.calls.append(("setex", key, seconds, value))
        if seconds <= 0:
            raise ResponseError("invalid expire time in 'setex' command")
        self.data[key] = value
        self.expiry[key] = seconds
        return True

    async def delete(self, *keys):
        self.calls.append(("delete",) + keys)
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                self.expiry.pop(key, None)
                removed += 1
        return removed

    async def dbsize(self):
        self.calls.append(("dbsize",))
        return len(self.data)

    async def flushdb(self):
        self.calls.append(("flushdb",))
        self.data.clear()
        self.expiry.clear()
        return True

    async def info(self):
        self.calls.append(("info",))
        return {"redis_version": "7.2.4", "used_memory_human": "1.02M"}

    async def aclose(self):
        self.closed = True


class CallbackRecorder:
    """Callback collecting every (error, result) invocation."""

    def __init__(self):
        self.calls: List[Tuple[Optional[Exception], Any]] = []

    def __call__(self, error, result):
        self.calls.append((error, result))

    @property
    def error(self):
        return self.calls[-1][0]

    @property
    def result(self):
        return self.calls[-1][1]


@pytest.fixture
def registry():
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    """Metrics collector bound to the isolated registry."""
    return CacheMetrics(registry=registry)


@pytest.fixture
def fake_redis():
    """In-memory Redis double."""
    return FakeRedis()


@pytest.fixture
def handle(fake_redis, metrics):
    """Cache handle that has not completed its connection handshake."""
    return CacheHandle("localhost", 6379, client=fake_redis, metrics=metrics)


@pytest_asyncio.fixture
async def connected_handle(handle, fake_redis):
    """Cache handle in the connected state with call history cleared."""
    await handle.connect()
    fake_redis.calls.clear()
    return handle


@pytest.fixture
def recorder():
    """Fresh callback recorder."""
    return CallbackRecorder()
