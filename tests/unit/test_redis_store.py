"""Tests for the Redis-backed cache store."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from contact_crawler.exceptions import CacheError
from contact_crawler.redis import (
    ConnectionState,
    RedisStore,
    get_redis_connection,
    get_redis_pool,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def make_client() -> MagicMock:
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


class TestRedisStore:
    """Tests for RedisStore operations."""

    @pytest.mark.asyncio
    async def test_get_set_delete(self) -> None:
        """Operations pass through to Redis."""
        client = make_client()
        client.get.return_value = '{"pagesScanned": 1}'
        store = RedisStore(client=client)

        assert await store.set("crawl:x", "v", 3600) is True
        client.set.assert_awaited_once_with("crawl:x", "v", ex=3600)
        assert await store.get("crawl:x") == '{"pagesScanned": 1}'
        assert await store.delete("crawl:x") is True
        assert store.state == ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_bytes_decoded(self) -> None:
        """Byte responses are decoded."""
        client = make_client()
        client.get.return_value = b"value"
        assert await RedisStore(client=client).get("k") == "value"

    @pytest.mark.asyncio
    async def test_failure_raises_cache_error(self) -> None:
        """Redis errors surface as CacheError and mark the store down."""
        client = make_client()
        client.get.side_effect = RedisConnectionError("Connection refused")
        store = RedisStore(client=client)

        with pytest.raises(CacheError) as exc_info:
            await store.get("crawl:x")

        assert exc_info.value.details == {"key": "crawl:x"}
        assert store.state == ConnectionState.DISCONNECTED


class TestReconnectBackoff:
    """Tests for the connectivity state machine."""

    @pytest.mark.asyncio
    async def test_fails_fast_during_backoff(self) -> None:
        """Calls inside the back-off window do not touch Redis."""
        clock = FakeClock()
        client = make_client()
        client.get.side_effect = RedisConnectionError("down")
        store = RedisStore(client=client, base_backoff=1.0, clock=clock)

        with pytest.raises(CacheError):
            await store.get("k")
        with pytest.raises(CacheError, match="reconnecting"):
            await store.get("k")

        assert client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_reconnects_after_window(self) -> None:
        """After the window a call is attempted and success resets state."""
        clock = FakeClock()
        client = make_client()
        client.get.side_effect = [RedisConnectionError("down"), "cached"]
        store = RedisStore(client=client, base_backoff=1.0, clock=clock)

        with pytest.raises(CacheError):
            await store.get("k")
        clock.now += 1.5

        assert await store.get("k") == "cached"
        assert store.state == ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_backoff_doubles_and_caps(self) -> None:
        """Consecutive failures double the window up to max_backoff."""
        clock = FakeClock()
        client = make_client()
        client.set.side_effect = RedisConnectionError("down")
        store = RedisStore(client=client, base_backoff=1.0, max_backoff=3.0, clock=clock)

        windows = []
        for _ in range(4):
            with pytest.raises(CacheError):
                await store.set("k", "v", 10)
            windows.append(store._retry_at - clock.now)
            clock.now = store._retry_at

        assert windows == [1.0, 2.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        """close() releases the client."""
        client = make_client()
        store = RedisStore(client=client)
        await store.close()
        client.aclose.assert_awaited_once()


class TestRedisConnection:
    """Tests for connection pooling."""

    @pytest.fixture(autouse=True)
    def _fresh_pools(self):
        get_redis_pool.cache_clear()
        yield
        get_redis_pool.cache_clear()

    @pytest.mark.asyncio
    async def test_clients_share_one_pool(self) -> None:
        """Every client for a URL reuses the same pool, even after close."""
        first = get_redis_connection()
        await first.aclose()
        second = get_redis_connection()

        assert first.connection_pool is second.connection_pool
        assert get_redis_pool.cache_info().currsize == 1

    def test_pool_per_url(self) -> None:
        """Different URLs get their own pool."""
        a = get_redis_connection("redis://localhost:6379/0")
        b = get_redis_connection("redis://localhost:6379/1")

        assert a.connection_pool is not b.connection_pool
        assert a.connection_pool.connection_kwargs["decode_responses"] is True

    @pytest.mark.asyncio
    async def test_store_close_keeps_pool(self) -> None:
        """Closing a store does not create a new pool for the next one."""
        store = RedisStore()
        pool = store.client.connection_pool
        await store.close()

        assert RedisStore().client.connection_pool is pool
