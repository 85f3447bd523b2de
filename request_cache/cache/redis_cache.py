"""
Redis-backed cache handle.

Every operation is a coroutine taking an optional ``callback(error, result)``
(plain function or coroutine function). Errors are delivered only through
the callback's error argument; the awaited return value is the result, or
``None`` when the operation failed.
"""

import asyncio
import inspect
import math
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

import redis.asyncio as redis

from ..shared.config import CacheSettings
from ..shared.errors import CacheError, ConnectionNotReadyError, StoreError
from ..shared.logging import get_logger
from ..shared.metrics import CacheMetrics, get_metrics_collector
from . import serialization


Callback = Callable[[Optional[CacheError], Any], Any]


class ConnectionState(str, Enum):
    """Logical connection state of a cache handle."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass
class DeleteOutcome:
    """Result of deleting a single key."""

    key: str
    deleted: bool
    error: Optional[CacheError] = None


async def _deliver(callback: Optional[Callback], error: Optional[CacheError], result: Any) -> None:
    if callback is None:
        return
    outcome = callback(error, result)
    if inspect.isawaitable(outcome):
        await outcome


def _coerce_ttl(ttl: Any) -> int:
    """Convert a TTL to whole seconds; non-numeric values become 0."""
    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())
    if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
        return 0
    if not math.isfinite(ttl):
        return 0
    return int(ttl)


class CacheHandle:
    """JSON cache over a single Redis connection."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: Optional[int] = None,
        max_age: Optional[int] = None,
        *,
        client: Optional[redis.Redis] = None,
        metrics: Optional[CacheMetrics] = None,
    ):
        self.host = host
        self.port = port
        self.db = db
        self.max_age = max_age
        self.logger = get_logger("cache.handle")
        self.metrics = metrics or get_metrics_collector()

        # The client issues SELECT for ``db`` on every connection it opens,
        # before any other command runs on that connection.
        self.client = client if client is not None else redis.Redis(
            host=host,
            port=port,
            db=db or 0,
            encoding="utf-8",
            decode_responses=True,
        )
        self.state = ConnectionState.DISCONNECTED

    @classmethod
    def from_settings(cls, settings: CacheSettings, **kwargs) -> "CacheHandle":
        """Create a handle from cache settings."""
        return cls(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            max_age=settings.max_age,
            **kwargs,
        )

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def store_name(self) -> str:
        return f"{self.host}:{self.port}/{self.db or 0}"

    @property
    def default_ttl(self) -> Optional[int]:
        """Default expiry in seconds derived from ``max_age`` milliseconds."""
        if not self.max_age or self.max_age <= 0:
            return None
        return math.ceil(self.max_age / 1000)

    def _set_state(self, state: ConnectionState) -> None:
        self.state = state
        self.metrics.record_connection_state(self.store_name, state is ConnectionState.CONNECTED)

    async def connect(self) -> None:
        """Complete the connection handshake and start accepting commands."""
        if self.connected:
            return

        try:
            await self.client.ping()
        except Exception as exc:
            self.logger.error("Failed to connect cache", store=self.store_name, error=str(exc))
            raise StoreError.from_exception("connect", exc) from exc

        self._set_state(ConnectionState.CONNECTED)
        self.logger.info("Cache connected", store=self.store_name, db=self.db or 0)

    async def close(self) -> None:
        """Close the Redis client."""
        try:
            await self.client.aclose()
        finally:
            self._set_state(ConnectionState.DISCONNECTED)
            self.logger.info("Cache closed", store=self.store_name)

    def _require_connection(self) -> None:
        if not self.connected:
            raise ConnectionNotReadyError(details={"store": self.store_name})

    async def _execute(
        self,
        operation: str,
        command: Callable[[], Awaitable[Any]],
        callback: Optional[Callback],
        classify: Optional[Callable[[Any], str]] = None,
        **context,
    ) -> Any:
        """Run a store command under the connection guard and report it."""
        start = time.perf_counter()
        error: Optional[CacheError] = None
        result: Any = None

        try:
            self._require_connection()
            result = await command()
        except CacheError as exc:
            error = exc
        except Exception as exc:
            error = StoreError.from_exception(operation, exc)

        if error is None:
            outcome = classify(result) if classify else "ok"
        else:
            outcome = "error"
            result = None
            self.logger.warning(
                "Cache operation failed",
                operation=operation,
                code=error.code,
                error=error.message,
                **context,
            )
        self.metrics.record_operation(operation, outcome, time.perf_counter() - start)

        await _deliver(callback, error, result)
        return result

    async def get(self, key: str, cacheable: bool = True, callback: Optional[Callback] = None) -> Any:
        """Fetch the value stored under ``key`` if the caller allows caching."""
        if not cacheable:
            self.metrics.record_operation("get", "bypass", 0.0)
            await _deliver(callback, None, None)
            return None

        async def command():
            return serialization.loads(await self.client.get(key))

        return await self._execute(
            "get",
            command,
            callback,
            classify=lambda value: "miss" if value is None else "hit",
            key=key,
        )

    async def set(self, key: str, value: Any, callback: Optional[Callback] = None) -> Optional[bool]:
        """Store ``value`` under ``key`` without expiry."""

        async def command():
            payload = serialization.dumps(value)
            return bool(await self.client.set(key, payload))

        return await self._execute("set", command, callback, key=key)

    async def setex(
        self,
        key: str,
        ttl: Union[int, float, timedelta, Any],
        value: Any,
        callback: Optional[Callback] = None,
    ) -> Optional[bool]:
        """Store ``value`` under ``key`` expiring after ``ttl`` seconds.

        A non-numeric ``ttl`` is sent as 0, which Redis rejects as an invalid
        expire time; the rejection reaches the callback as a StoreError.
        """
        seconds = _coerce_ttl(ttl)

        async def command():
            payload = serialization.dumps(value)
            return bool(await self.client.setex(key, seconds, payload))

        return await self._execute("setex", command, callback, key=key, ttl=seconds)

    async def put(self, key: str, value: Any, callback: Optional[Callback] = None) -> Optional[bool]:
        """Store ``value`` using the handle's default max-age, if any."""
        ttl = self.default_ttl
        if ttl is None:
            return await self.set(key, value, callback)
        return await self.setex(key, ttl, value, callback)

    async def delete(
        self,
        keys: Union[str, Iterable[str]],
        callback: Optional[Callback] = None,
    ) -> Optional[List[DeleteOutcome]]:
        """Delete one key or a collection of keys.

        The callback is invoked once with a list holding one DeleteOutcome
        per key, in input order.
        Anything that is not a collection, such as an int, is treated as a
        single key.
        """

        async def command():
            if isinstance(keys, (str, bytes)) or not isinstance(keys, Iterable):
                batch = [keys]
            else:
                batch = list(keys)
            replies = await asyncio.gather(
                *(self.client.delete(key) for key in batch),
                return_exceptions=True,
            )
            outcomes = []
            for key, reply in zip(batch, replies):
                if isinstance(reply, Exception):
                    error = StoreError.from_exception("delete", reply)
                    self.logger.warning("Cache delete failed", key=key, error=error.message)
                    outcomes.append(DeleteOutcome(key=key, deleted=False, error=error))
                else:
                    outcomes.append(DeleteOutcome(key=key, deleted=bool(reply)))
            return outcomes

        return await self._execute("delete", command, callback)

    async def count(self, callback: Optional[Callback] = None) -> Optional[int]:
        """Number of entries in the selected logical database."""

        async def command():
            return int(await self.client.dbsize())

        return await self._execute("count", command, callback)

    async def flush(self, callback: Optional[Callback] = None) -> Optional[bool]:
        """Remove every entry in the selected logical database."""

        async def command():
            await self.client.flushdb()
            self.logger.info("Cache flushed", store=self.store_name)
            return True

        return await self._execute("flush", command, callback)

    async def health_check(self) -> Dict[str, Any]:
        """Report connection state and basic server information."""
        result: Dict[str, Any] = {
            "healthy": False,
            "state": self.state.value,
            "store": self.store_name,
            "db": self.db or 0,
            "error": None,
        }

        if not self.connected:
            result["error"] = "Not connected to Redis"
            return result

        try:
            await self.client.ping()
            info = await self.client.info()
            result["healthy"] = True
            result["server_version"] = info.get("redis_version")
            result["used_memory_human"] = info.get("used_memory_human")
        except Exception as exc:
            result["error"] = str(exc)
            self.logger.error("Cache health check failed", error=str(exc))

        return result
