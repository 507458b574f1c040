"""HTTP fetcher with linear-backoff retries."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
import structlog

from contact_crawler.exceptions import FetchError

logger = structlog.get_logger(__name__)

TEXT_CONTENT_TYPES = ("text/", "application/xhtml", "application/xml")


@dataclass
class FetchResult:
    """Result of fetching a URL."""

    url: str
    final_url: str  # After redirects
    status_code: int
    content_type: str | None
    html: str | None
    error: str | None
    fetch_time_ms: int
    fetched_at: datetime
    attempts: int = 1

    @property
    def success(self) -> bool:
        """Check if fetch was successful."""
        return 200 <= self.status_code < 300 and self.html is not None


def _is_text(content_type: str) -> bool:
    # Servers that omit the header usually send HTML
    if not content_type:
        return True
    content_type = content_type.lower()
    return any(content_type.startswith(prefix) for prefix in TEXT_CONTENT_TYPES)


class Fetcher:
    """HTTP fetcher with retries.

    Retries cover transport failures (connection errors, timeouts) and 5xx
    responses. The delay before retry ``n`` is ``n * retry_delay`` seconds.
    """

    def __init__(
        self,
        user_agent: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport

    def _result(
        self,
        url: str,
        start_time: datetime,
        attempts: int,
        response: httpx.Response | None = None,
        error: str | None = None,
    ) -> FetchResult:
        fetch_time = int((datetime.now(UTC) - start_time).total_seconds() * 1000)
        if response is None:
            return FetchResult(
                url=url,
                final_url=url,
                status_code=0,
                content_type=None,
                html=None,
                error=error,
                fetch_time_ms=fetch_time,
                fetched_at=start_time,
                attempts=attempts,
            )

        content_type = response.headers.get("content-type", "")
        html = None
        if response.is_success and _is_text(content_type):
            html = response.text

        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            content_type=content_type,
            html=html,
            error=error,
            fetch_time_ms=fetch_time,
            fetched_at=start_time,
            attempts=attempts,
        )

    async def fetch(self, url: str) -> FetchResult:
        """
        Fetch a URL with retries.

        Args:
            url: The URL to fetch

        Returns:
            FetchResult with response data or error
        """
        start_time = datetime.now(UTC)
        error: str | None = None

        for attempt in range(1, self.max_retries + 2):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    follow_redirects=True,
                    max_redirects=5,
                    transport=self._transport,
                ) as client:
                    response = await client.get(
                        url,
                        headers={
                            "User-Agent": self.user_agent,
                            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                            "Accept-Language": "en-US,en;q=0.5",
                        },
                    )

            except httpx.TimeoutException:
                error = "Request timed out"

            except httpx.TransportError as e:
                error = str(e) or type(e).__name__

            except httpx.RequestError as e:
                # Redirect loops and undecodable bodies won't change on retry
                logger.info("fetch_failed", url=url, error=str(e))
                return self._result(url, start_time, attempt, error=str(e) or type(e).__name__)

            else:
                if response.status_code < 500:
                    # Success, or a client error that retrying won't fix
                    if not response.is_success:
                        error = f"HTTP error: {response.status_code}"
                    return self._result(url, start_time, attempt, response, error)
                error = f"HTTP error: {response.status_code}"

            if attempt <= self.max_retries:
                logger.warning(
                    "fetch_retry",
                    url=url,
                    error=error,
                    attempt=attempt,
                )
                await asyncio.sleep(self.retry_delay * attempt)

        logger.info("fetch_retries_exhausted", url=url, error=error, attempts=self.max_retries + 1)
        return self._result(url, start_time, self.max_retries + 1, error=error)

    async def fetch_html(self, url: str) -> str:
        """
        Fetch a URL and return its body text.

        Raises:
            FetchError: If the page could not be fetched after all retries
        """
        result = await self.fetch(url)
        if not result.success:
            raise FetchError(
                url,
                result.error or f"No text content ({result.content_type})",
                status_code=result.status_code,
            )
        return result.html  # type: ignore[return-value]
