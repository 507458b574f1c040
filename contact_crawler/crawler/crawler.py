"""Breadth-first contact crawler with bounded concurrency."""

import asyncio
import time
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

import httpx
import structlog

from contact_crawler.config import Settings, get_settings
from contact_crawler.crawler.cache import CrawlCache
from contact_crawler.crawler.extractor import extract_contacts, extract_links
from contact_crawler.crawler.fetcher import Fetcher
from contact_crawler.crawler.frontier import CrawlTask, Frontier
from contact_crawler.crawler.models import CrawlResult
from contact_crawler.crawler.render import PageRenderer, RendererConfig
from contact_crawler.crawler.robots import RobotsPolicy, fetch_robots_policy
from contact_crawler.crawler.url import extract_host, normalize_url
from contact_crawler.exceptions import (
    ConfigurationError,
    CrawlAbortedError,
    FetchError,
    LinkParseError,
    RenderError,
)

logger = structlog.get_logger(__name__)


class Renderer(Protocol):
    """Headless render fallback."""

    async def render_page(self, url: str) -> tuple[str, str | None]: ...


@dataclass
class CrawlConfig:
    """Configuration for a crawl. Durations are in seconds."""

    concurrency: int = 5
    request_delay: float = 1.0  # Pause after every batch
    timeout: float = 10.0
    max_retries: int = 3
    retry_delay: float = 1.0
    render_timeout: float = 15.0
    robots_timeout: float = 10.0
    user_agent: str = "AggressiveCrawler"
    max_pages: int | None = None
    use_cached_result: bool = False

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "CrawlConfig":
        """Build a config from application settings."""
        settings = settings or get_settings()
        return cls(
            concurrency=settings.crawl_concurrency,
            request_delay=settings.request_delay_ms / 1000,
            timeout=settings.request_timeout_ms / 1000,
            max_retries=settings.request_retries,
            retry_delay=settings.retry_delay_ms / 1000,
            render_timeout=settings.render_timeout_ms / 1000,
            robots_timeout=settings.robots_timeout_ms / 1000,
            user_agent=settings.user_agent,
            max_pages=settings.crawl_max_pages,
            use_cached_result=settings.use_cached_result,
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_seed(start_url: object) -> str:
    if not start_url or not isinstance(start_url, str):
        raise ConfigurationError("URL is required", field="url")

    try:
        parsed = urlparse(start_url)
    except ValueError as e:
        raise ConfigurationError(f"Invalid URL format: {e}", field="url") from e

    if parsed.scheme not in ("http", "https"):
        raise ConfigurationError('URL scheme must be "http" or "https"', field="url")
    if not parsed.hostname:
        raise ConfigurationError(f"Invalid URL format: no host in {start_url!r}", field="url")

    try:
        normalized = normalize_url(start_url)
    except LinkParseError as e:
        raise ConfigurationError(f"Invalid URL format: {e.message}", field="url") from e
    if not normalized:
        raise ConfigurationError(f"URL is not a crawlable page: {start_url}", field="url")
    return normalized


def _validate_config(max_depth: object, config: CrawlConfig) -> None:
    if not _is_int(max_depth) or max_depth < 0:  # type: ignore[operator]
        raise ConfigurationError("maxDepth must be a non-negative integer", field="max_depth")
    if not _is_int(config.concurrency) or config.concurrency < 1:
        raise ConfigurationError(
            f"Expected `concurrency` to be a positive integer, got {config.concurrency!r}",
            field="concurrency",
        )
    if config.max_pages is not None and (not _is_int(config.max_pages) or config.max_pages < 1):
        raise ConfigurationError("maxPages must be a positive integer", field="max_pages")
    if config.request_delay < 0:
        raise ConfigurationError("request delay must not be negative", field="request_delay")


class ContactCrawler:
    """Crawls one site breadth-first, collecting emails and phone numbers.

    Usage::

        crawler = ContactCrawler("https://example.com", max_depth=2)
        await crawler.initialize()
        result = await crawler.crawl()

    Each iteration drains at most ``concurrency`` tasks from the frontier,
    runs them concurrently and waits for all of them before pausing and
    drawing the next batch, so no more than ``concurrency`` fetches are ever
    in flight.
    """

    def __init__(
        self,
        start_url: str,
        max_depth: int = 2,
        config: CrawlConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        renderer: Renderer | None = None,
        cache: CrawlCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or CrawlConfig()
        self.seed_url = _validate_seed(start_url)
        _validate_config(max_depth, self.config)

        self.start_url = start_url
        self.max_depth = max_depth
        self.base_host = extract_host(self.seed_url) or ""

        self.fetcher = fetcher or Fetcher(
            user_agent=self.config.user_agent,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
            retry_delay=self.config.retry_delay,
            transport=transport,
        )
        self.renderer: Renderer = renderer or PageRenderer(
            RendererConfig(
                timeout=int(self.config.render_timeout * 1000),
                user_agent=self.config.user_agent,
            )
        )
        self.cache = cache
        self._transport = transport

        self.robots: RobotsPolicy | None = None
        self.frontier = Frontier(
            max_depth=max_depth,
            is_allowed=self.is_allowed,
            max_pages=self.config.max_pages,
        )
        self.result = CrawlResult()
        self.cached_result: CrawlResult | None = None
        self._limiter: asyncio.Semaphore | None = None
        self._in_flight = 0
        self.peak_in_flight = 0

    @property
    def initialized(self) -> bool:
        return self._limiter is not None

    async def initialize(self) -> CrawlResult | None:
        """
        Prepare the crawl: create the concurrency limiter, load robots.txt
        and look up a previous result for this seed.

        Returns:
            The cached result for this seed, if any

        Raises:
            CrawlAbortedError: If robots.txt disallows the seed URL
        """
        self._limiter = asyncio.Semaphore(self.config.concurrency)

        self.robots = await fetch_robots_policy(
            self.seed_url,
            user_agent=self.config.user_agent,
            timeout=self.config.robots_timeout,
            transport=self._transport,
        )
        if not self.is_allowed(self.seed_url):
            logger.warning("seed_blocked_by_robots", url=self.start_url)
            raise CrawlAbortedError(self.start_url)

        if self.cache is not None:
            self.cached_result = await self.cache.get(self.start_url)

        return self.cached_result

    def is_allowed(self, url: str) -> bool:
        """Check a URL against the loaded robots.txt policy."""
        if self.robots is None:
            return True
        return self.robots.is_allowed(url)

    async def fetch_page(self, url: str) -> str:
        """
        Get page content, falling back to a headless render when the HTTP
        fetch fails after its retries.

        Raises:
            RenderError: If the render fallback fails too
        """
        self._in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self._in_flight)
        try:
            try:
                return await self.fetcher.fetch_html(url)
            except FetchError as e:
                logger.info("fetch_failed_rendering", url=url, error=e.message)

            html, error = await self.renderer.render_page(url)
            if error or not html:
                raise RenderError(url, error)
            return html
        finally:
            self._in_flight -= 1

    async def _process_page(self, task: CrawlTask) -> None:
        if self._limiter is None:
            raise RuntimeError("ContactCrawler.initialize() must be awaited before crawling")
        try:
            async with self._limiter:
                html = await self.fetch_page(task.url)
        except RenderError as e:
            # Content unavailable: not counted as scanned
            self.result.pages_failed += 1
            logger.warning("page_unavailable", url=task.url, error=e.message)
            return

        self.result.pages_scanned += 1
        emails, phones = extract_contacts(html)
        self.result.add_contacts(emails, phones)

        queued = 0
        if task.depth < self.max_depth:
            for link in extract_links(html, task.url, self.base_host):
                if self.frontier.push(CrawlTask(url=link, depth=task.depth + 1)):
                    queued += 1

        logger.debug(
            "page_crawled",
            url=task.url,
            depth=task.depth,
            emails=len(emails),
            phones=len(phones),
            links_queued=queued,
        )

    async def _run_batch(self, tasks: list[CrawlTask]) -> None:
        outcomes = await asyncio.gather(
            *(self._process_page(task) for task in tasks),
            return_exceptions=True,
        )
        for task, outcome in zip(tasks, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.error(
                    "page_task_failed",
                    url=task.url,
                    error=str(outcome),
                    exc_info=outcome,
                )

    async def crawl(self, cancel: asyncio.Event | None = None) -> CrawlResult:
        """
        Run the crawl until the frontier is empty.

        Args:
            cancel: Optional event checked between batches; when set the
                crawl stops and returns what it has collected so far, without
                writing it to the cache

        Returns:
            CrawlResult with all contacts found
        """
        if not self.initialized:
            await self.initialize()

        if self.cached_result is not None and self.config.use_cached_result:
            logger.info("crawl_served_from_cache", url=self.start_url)
            return self.cached_result

        started = time.monotonic()
        logger.info(
            "crawl_started",
            url=self.seed_url,
            host=self.base_host,
            max_depth=self.max_depth,
            max_pages=self.config.max_pages,
            concurrency=self.config.concurrency,
        )

        self.frontier.push(CrawlTask(url=self.seed_url, depth=0))
        batches = 0
        cancelled = False

        while self.frontier:
            if cancel is not None and cancel.is_set():
                logger.info("crawl_cancelled", pending=len(self.frontier))
                cancelled = True
                break

            tasks = self.frontier.drain(self.config.concurrency)
            if tasks:
                batches += 1
                await self._run_batch(tasks)

            await asyncio.sleep(self.config.request_delay)

        # Partial results from a cancelled crawl are never cached
        if self.cache is not None and not cancelled:
            await self.cache.set(self.start_url, self.result)

        logger.info(
            "crawl_completed",
            url=self.seed_url,
            pages_scanned=self.result.pages_scanned,
            pages_failed=self.result.pages_failed,
            urls_dispatched=self.frontier.dispatched,
            urls_skipped=self.frontier.skipped,
            emails=len(self.result.emails),
            phones=len(self.result.phones),
            batches=batches,
            cancelled=cancelled,
            duration_seconds=round(time.monotonic() - started, 2),
        )

        return self.result


async def crawl_site(
    url: str,
    max_depth: int | None = None,
    max_pages: int | None = None,
    use_cache: bool = True,
    settings: Settings | None = None,
) -> CrawlResult:
    """
    Convenience function to crawl a site with settings-driven defaults.

    Args:
        url: The seed URL
        max_depth: Maximum link depth (default from settings)
        max_pages: Maximum pages to fetch (default from settings)
        use_cache: Read and write results through Redis
        settings: Settings override

    Returns:
        CrawlResult with contacts found
    """
    from contact_crawler.redis import RedisStore

    settings = settings or get_settings()
    config = CrawlConfig.from_settings(settings)
    if max_pages is not None:
        config.max_pages = max_pages

    store = RedisStore() if use_cache else None
    cache = CrawlCache(store, ttl_seconds=settings.cache_ttl_seconds) if store else None

    crawler = ContactCrawler(
        url,
        max_depth=settings.crawl_max_depth if max_depth is None else max_depth,
        config=config,
        cache=cache,
    )
    try:
        await crawler.initialize()
        return await crawler.crawl()
    finally:
        if store is not None:
            await store.close()
