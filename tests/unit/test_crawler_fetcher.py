"""Tests for the HTTP fetcher."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from contact_crawler.crawler.fetcher import Fetcher
from contact_crawler.exceptions import FetchError
from tests.fixtures import FakeSite

URL = "https://example.com/contact"


def make_fetcher(site: FakeSite, max_retries: int = 3) -> Fetcher:
    return Fetcher(
        user_agent="AggressiveCrawler",
        timeout=5.0,
        max_retries=max_retries,
        retry_delay=0,
        transport=site.transport,
    )


class TestFetch:
    """Tests for Fetcher.fetch."""

    @pytest.mark.asyncio
    async def test_success(self, site: FakeSite) -> None:
        """A 200 HTML response is returned on the first attempt."""
        site.add(URL, "<p>hello</p>")
        result = await make_fetcher(site).fetch(URL)

        assert result.success is True
        assert result.html == "<p>hello</p>"
        assert result.attempts == 1
        assert site.fetches(URL) == 1

    @pytest.mark.asyncio
    async def test_sends_user_agent(self) -> None:
        """The configured user agent is sent."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers["user-agent"])
            return httpx.Response(200, text="ok")

        fetcher = Fetcher(user_agent="AggressiveCrawler", transport=httpx.MockTransport(handler))
        await fetcher.fetch(URL)
        assert seen == ["AggressiveCrawler"]

    @pytest.mark.asyncio
    async def test_retries_network_error_then_succeeds(self, site: FakeSite) -> None:
        """A connection error is retried and the second attempt wins."""
        site.add(URL, "ok")
        site.errors[URL] = [httpx.ConnectError("connection reset")]

        result = await make_fetcher(site).fetch(URL)

        assert result.success is True
        assert result.attempts == 2
        assert site.fetches(URL) == 2

    @pytest.mark.asyncio
    async def test_retries_timeouts(self, site: FakeSite) -> None:
        """Timeouts are retried."""
        site.add(URL, "ok")
        site.errors[URL] = [httpx.ReadTimeout("slow"), httpx.ConnectTimeout("slow")]

        result = await make_fetcher(site).fetch(URL)

        assert result.success is True
        assert result.attempts == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, site: FakeSite) -> None:
        """max_retries=3 means four attempts in total."""
        site.add(URL, "ok")
        site.errors[URL] = [httpx.ConnectError("down") for _ in range(10)]

        result = await make_fetcher(site, max_retries=3).fetch(URL)

        assert result.success is False
        assert result.status_code == 0
        assert result.attempts == 4
        assert site.fetches(URL) == 4
        assert "down" in (result.error or "")

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, site: FakeSite) -> None:
        """5xx responses are retried."""
        site.add(URL, "oops", status_code=503)
        result = await make_fetcher(site, max_retries=2).fetch(URL)

        assert result.success is False
        assert site.fetches(URL) == 3
        assert result.error == "HTTP error: 503"

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, site: FakeSite) -> None:
        """4xx responses fail immediately."""
        result = await make_fetcher(site).fetch(URL)

        assert result.success is False
        assert result.status_code == 404
        assert site.fetches(URL) == 1

    @pytest.mark.asyncio
    async def test_binary_content_has_no_html(self, site: FakeSite) -> None:
        """Non-text responses are not treated as page content."""
        site.add(URL, "PK", content_type="application/zip")
        result = await make_fetcher(site).fetch(URL)

        assert result.status_code == 200
        assert result.html is None
        assert result.success is False

    @pytest.mark.asyncio
    async def test_linear_backoff(self, site: FakeSite) -> None:
        """Retry n waits n * retry_delay seconds."""
        site.add(URL, "ok")
        site.errors[URL] = [httpx.ConnectError("down") for _ in range(3)]
        fetcher = Fetcher(
            user_agent="AggressiveCrawler",
            max_retries=3,
            retry_delay=1.0,
            transport=site.transport,
        )

        with patch("contact_crawler.crawler.fetcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            result = await fetcher.fetch(URL)

        assert result.success is True
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 3.0]


class TestFetchHtml:
    """Tests for Fetcher.fetch_html."""

    @pytest.mark.asyncio
    async def test_returns_body(self, site: FakeSite) -> None:
        """Returns the body text on success."""
        site.add(URL, "<a href='/x'>x</a>")
        assert await make_fetcher(site).fetch_html(URL) == "<a href='/x'>x</a>"

    @pytest.mark.asyncio
    async def test_raises_fetch_error(self, site: FakeSite) -> None:
        """Failure surfaces as FetchError."""
        with pytest.raises(FetchError) as exc_info:
            await make_fetcher(site).fetch_html(URL)

        assert exc_info.value.details["status_code"] == 404
        assert exc_info.value.code == "fetch_error"
