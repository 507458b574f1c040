"""Redis connection utilities and the cache store."""

import time
from collections.abc import Awaitable, Callable
from enum import Enum
from functools import lru_cache
from typing import Any, TypeVar

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from contact_crawler.config import get_settings
from contact_crawler.exceptions import CacheError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@lru_cache
def get_redis_pool(url: str) -> ConnectionPool:
    """Get a cached Redis connection pool for ``url``."""
    settings = get_settings()
    return ConnectionPool.from_url(
        url,
        decode_responses=True,
        max_connections=10,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_timeout=settings.redis_socket_timeout,
    )


def get_redis_connection(url: str | None = None) -> Redis:
    """Get a Redis client from the shared pool.

    Closing the client leaves the pool open for the next caller.
    """
    pool = get_redis_pool(url or str(get_settings().redis_url))
    return Redis(connection_pool=pool)


class ConnectionState(str, Enum):
    """Connectivity of the cache store."""

    UNKNOWN = "unknown"  # No call made yet
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"  # Backing off before the next attempt


class RedisStore:
    """Key/value store over Redis with its own connectivity state.

    After a connection failure the store refuses calls with ``CacheError``
    until the back-off window passes, so callers fail fast instead of waiting
    on socket timeouts. The window doubles on consecutive failures up to
    ``max_backoff`` and resets on the first successful call.
    """

    def __init__(
        self,
        client: Redis | None = None,
        base_backoff: float = 1.0,
        max_backoff: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self.base_backoff = base_backoff
        self.max_backoff = max_backoff
        self._clock = clock
        self._state = ConnectionState.UNKNOWN
        self._failures = 0
        self._retry_at = 0.0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def client(self) -> Redis:
        if self._client is None:
            self._client = get_redis_connection()
        return self._client

    def _mark_down(self, op: str, key: str, error: Exception) -> None:
        self._failures += 1
        backoff = min(self.max_backoff, self.base_backoff * 2 ** (self._failures - 1))
        self._retry_at = self._clock() + backoff
        if self._state != ConnectionState.DISCONNECTED:
            logger.warning("cache_store_disconnected", op=op, key=key, error=str(error))
        self._state = ConnectionState.DISCONNECTED
        logger.debug("cache_store_backoff", seconds=backoff, failures=self._failures)

    def _mark_up(self) -> None:
        if self._state == ConnectionState.DISCONNECTED:
            logger.info("cache_store_reconnected", failures=self._failures)
        self._state = ConnectionState.CONNECTED
        self._failures = 0
        self._retry_at = 0.0

    async def _call(self, op: str, key: str, fn: Callable[[Redis], Awaitable[T]]) -> T:
        if self._state == ConnectionState.DISCONNECTED and self._clock() < self._retry_at:
            raise CacheError("Cache store unavailable (reconnecting)", key=key)

        try:
            result = await fn(self.client)
        except RedisError as e:
            self._mark_down(op, key, e)
            raise CacheError(f"Cache {op} failed: {e}", key=key) from e

        self._mark_up()
        return result

    async def get(self, key: str) -> str | None:
        """Get a value, or None if the key is missing."""
        value: Any = await self._call("get", key, lambda r: r.get(key))
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set a value with a TTL in seconds."""
        return bool(await self._call("set", key, lambda r: r.set(key, value, ex=ttl_seconds)))

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        return bool(await self._call("delete", key, lambda r: r.delete(key)))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
