"""URL normalization and utilities for the crawler."""

from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from contact_crawler.exceptions import LinkParseError

# Binary resources never worth fetching for contact details
SKIP_EXTENSIONS = frozenset(
    [
        # Images
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".svg",
        ".ico",
        ".webp",
        ".bmp",
        # Media
        ".mp3",
        ".mp4",
        ".avi",
        ".mov",
        ".webm",
        ".wav",
        # Archives
        ".zip",
        ".rar",
        ".7z",
        ".tar",
        ".gz",
        # Other
        ".exe",
        ".dmg",
        ".apk",
        ".css",
        ".js",
    ]
)

# Query parameters to strip (tracking, session, etc.)
STRIP_PARAMS = frozenset(
    [
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "fbclid",
        "gclid",
        "msclkid",
        "mc_cid",
        "mc_eid",
        "_ga",
        "_gl",
    ]
)

DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_url(url: str, base_url: str | None = None) -> str | None:
    """
    Normalize a URL for consistent comparison and visited-set membership.

    Resolves relative references against ``base_url``, lowercases scheme and
    host, drops default ports, fragments and tracking parameters.

    Args:
        url: The URL or href to normalize
        base_url: Optional base URL for resolving relative URLs

    Returns:
        Normalized URL string, or None if the URL is not a crawlable
        http(s) resource

    Raises:
        LinkParseError: If the URL is malformed (e.g. a broken IPv6 host)
    """
    if not url or not url.strip():
        return None

    url = url.strip()

    try:
        if base_url:
            url = urljoin(base_url, url)
        parsed = urlparse(url)
        port = parsed.port
        host = parsed.hostname
    except ValueError as e:
        raise LinkParseError(url, str(e)) from e

    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        return None
    if not host:
        return None

    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"

    path = parsed.path or "/"
    path_lower = path.lower()
    for ext in SKIP_EXTENSIONS:
        if path_lower.endswith(ext):
            return None

    query = ""
    if parsed.query:
        params = [
            (k, v)
            for k, v in parse_qsl(parsed.query, keep_blank_values=True)
            if k.lower() not in STRIP_PARAMS
        ]
        if params:
            query = urlencode(params)

    return urlunparse((scheme, netloc, path, parsed.params, query, ""))


def extract_host(url: str) -> str | None:
    """Extract the lowercased hostname from a URL."""
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def is_same_host(url: str, host: str) -> bool:
    """Check if a URL's host equals ``host`` exactly (subdomains excluded)."""
    url_host = extract_host(url)
    return url_host is not None and url_host == host.lower()
