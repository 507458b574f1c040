"""Crawler exceptions."""

from typing import Any


class CrawlerError(Exception):
    """Base exception for the contact crawler."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(CrawlerError):
    """Invalid seed URL or engine configuration."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="configuration_error",
            details=details,
        )


class CrawlAbortedError(CrawlerError):
    """The crawl cannot start (seed blocked by robots.txt)."""

    def __init__(self, url: str, reason: str = "Blocked by robots.txt"):
        super().__init__(
            message=f"{reason}: {url}",
            code="crawl_aborted",
            details={"url": url},
        )


class FetchError(CrawlerError):
    """HTTP fetch failed after all retries."""

    def __init__(self, url: str, error: str | None = None, status_code: int = 0):
        message = f"Failed to fetch {url}"
        if error:
            message = f"{message}: {error}"
        super().__init__(
            message=message,
            code="fetch_error",
            details={"url": url, "status_code": status_code},
        )


class RenderError(CrawlerError):
    """Headless render fallback failed."""

    def __init__(self, url: str, error: str | None = None):
        super().__init__(
            message=error or f"Failed to render {url}",
            code="render_error",
            details={"url": url},
        )


class CacheError(CrawlerError):
    """Cache store unavailable or operation failed."""

    def __init__(self, message: str = "Cache store unavailable", key: str | None = None):
        details = {"key": key} if key else {}
        super().__init__(
            message=message,
            code="cache_error",
            details=details,
        )


class LinkParseError(CrawlerError):
    """An href could not be resolved to a URL."""

    def __init__(self, href: str, error: str | None = None):
        super().__init__(
            message=f"Invalid link {href!r}" + (f": {error}" if error else ""),
            code="link_parse_error",
            details={"href": href},
        )
