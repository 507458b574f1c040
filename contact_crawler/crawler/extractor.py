"""Contact and link extraction from page HTML.

Both contact patterns are heuristics run over the raw markup, so addresses in
``mailto:`` hrefs are found as well as visible text. Expect some noise:
version strings or asset names shaped like ``a@b.cd`` match the email
pattern, and long digit runs (order numbers, timestamps) match the phone
pattern. Obfuscated addresses ("jane at example dot com") and phone numbers
written with parentheses or dots are missed.
"""

import re
import unicodedata

import structlog
from bs4 import BeautifulSoup

from contact_crawler.crawler.url import is_same_host, normalize_url
from contact_crawler.exceptions import LinkParseError

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"[\w.-]+@[\w.-]+\.\w{2,}")

# Optional "+", then at least 9 digits/separators starting and ending on a digit
PHONE_PATTERN = re.compile(r"\+?\d[\d\s-]{7,}\d")

PHONE_SEPARATORS = re.compile(r"[\s-]")


def normalize_phone(raw: str) -> str:
    """NFKC-normalize a phone match and drop whitespace and hyphens."""
    return PHONE_SEPARATORS.sub("", unicodedata.normalize("NFKC", raw))


def extract_emails(html: str) -> set[str]:
    """Find email-shaped tokens."""
    return set(EMAIL_PATTERN.findall(html))


def extract_phones(html: str) -> set[str]:
    """Find phone-shaped digit runs, normalized."""
    return {normalize_phone(match) for match in PHONE_PATTERN.findall(html)}


def extract_contacts(html: str) -> tuple[set[str], set[str]]:
    """
    Extract contact details from page content.

    Args:
        html: Page markup or text

    Returns:
        Tuple of (emails, phones)
    """
    if not html:
        return set(), set()
    return extract_emails(html), extract_phones(html)


def extract_links(html: str, base_url: str, base_host: str) -> list[str]:
    """
    Extract same-host links from HTML.

    Args:
        html: Page markup
        base_url: URL the page was fetched from, for resolving relative hrefs
        base_host: Host links must match exactly (subdomains excluded)

    Returns:
        Normalized links, deduplicated, in document order
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    links: list[str] = []
    seen: set[str] = set()

    for a_tag in soup.find_all("a", href=True):
        href = a_tag["href"]
        if isinstance(href, list):
            href = " ".join(href)

        try:
            normalized = normalize_url(href, base_url)
        except LinkParseError as e:
            logger.warning("invalid_link", href=href, page=base_url, error=e.message)
            continue

        if not normalized or normalized in seen:
            continue
        if not is_same_host(normalized, base_host):
            continue

        seen.add(normalized)
        links.append(normalized)

    return links
