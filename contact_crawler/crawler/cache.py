"""Crawl result caching."""

from typing import Protocol

import structlog

from contact_crawler.crawler.models import CrawlResult
from contact_crawler.exceptions import CacheError

logger = structlog.get_logger(__name__)

# Default cache TTL: 1 hour
DEFAULT_CACHE_TTL_SECONDS = 3600


class CacheStore(Protocol):
    """Key/value store the crawl cache writes through.

    Implementations raise ``CacheError`` when the store is unreachable.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool: ...

    async def delete(self, key: str) -> bool: ...


class CrawlCache:
    """
    Cache for crawl results keyed by seed URL.

    Store failures are logged and never reach the caller: reads degrade to a
    miss and writes report False.
    """

    def __init__(self, store: CacheStore, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS):
        """
        Initialize the cache.

        Args:
            store: Backing key/value store
            ttl_seconds: Time-to-live for cache entries (default: 1 hour)
        """
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._prefix = "crawl:"

    def cache_key(self, seed_url: str) -> str:
        """Generate cache key for a seed URL."""
        return f"{self._prefix}{seed_url}"

    async def get(self, seed_url: str) -> CrawlResult | None:
        """
        Get the cached crawl result for a seed URL.

        Args:
            seed_url: The seed URL the crawl started from

        Returns:
            CrawlResult if found and readable, None otherwise
        """
        key = self.cache_key(seed_url)
        try:
            data = await self.store.get(key)
        except CacheError as e:
            logger.warning("cache_get_error", key=key, error=e.message)
            return None

        if not data:
            logger.debug("cache_miss", key=key)
            return None

        try:
            result = CrawlResult.from_json(data)
        except (ValueError, TypeError) as e:
            logger.warning("cache_corrupt_entry", key=key, error=str(e))
            return None

        logger.info(
            "cache_hit",
            key=key,
            emails=len(result.emails),
            phones=len(result.phones),
            pages=result.pages_scanned,
        )
        return result

    async def set(self, seed_url: str, result: CrawlResult) -> bool:
        """
        Store a crawl result.

        Args:
            seed_url: The seed URL the crawl started from
            result: The CrawlResult to cache

        Returns:
            True if cached successfully, False otherwise
        """
        key = self.cache_key(seed_url)
        try:
            await self.store.set(key, result.to_json(), self.ttl_seconds)
        except CacheError as e:
            logger.warning("cache_set_error", key=key, error=e.message)
            return False

        logger.info("cache_set", key=key, pages=result.pages_scanned, ttl_seconds=self.ttl_seconds)
        return True

    async def invalidate(self, seed_url: str) -> bool:
        """
        Invalidate the cached result for a seed URL.

        Returns:
            True if an entry was deleted, False otherwise
        """
        key = self.cache_key(seed_url)
        try:
            deleted = await self.store.delete(key)
        except CacheError as e:
            logger.warning("cache_invalidate_error", key=key, error=e.message)
            return False

        logger.info("cache_invalidated", key=key, deleted=deleted)
        return deleted
