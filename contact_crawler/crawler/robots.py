"""Robots.txt parser and policy fetcher."""

import re
from dataclasses import dataclass, field
from urllib.parse import urljoin, urlparse

import httpx
import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RobotsRule:
    """A single robots.txt rule."""

    path: str
    allowed: bool

    def matches(self, url_path: str) -> bool:
        """Check if this rule matches a URL path."""
        if "*" in self.path or self.path.endswith("$"):
            anchored = self.path.endswith("$")
            body = self.path[:-1] if anchored else self.path
            pattern = "^" + ".*".join(re.escape(part) for part in body.split("*"))
            if anchored:
                pattern += "$"
            return bool(re.match(pattern, url_path))
        return url_path.startswith(self.path)


@dataclass
class _AgentGroup:
    agents: list[str] = field(default_factory=list)
    rules: list[RobotsRule] = field(default_factory=list)
    crawl_delay: float | None = None


def _agent_name(user_agent: str) -> str:
    ua_lower = user_agent.lower()
    return ua_lower.split("/")[0] if "/" in ua_lower else ua_lower


@dataclass(frozen=True)
class RobotsPolicy:
    """Parsed robots.txt rules applicable to one user agent.

    Immutable once built; an empty policy allows everything.
    """

    rules: tuple[RobotsRule, ...] = ()
    crawl_delay: float | None = None
    sitemaps: tuple[str, ...] = ()

    @classmethod
    def allow_all(cls) -> "RobotsPolicy":
        """Policy used when robots.txt is missing or unreachable."""
        return cls()

    @classmethod
    def parse(cls, content: str, user_agent: str = "*") -> "RobotsPolicy":
        """
        Parse robots.txt content.

        Rules are grouped by ``User-agent`` block. A group naming our product
        token exactly (case-insensitive, version ignored) wins over the ``*``
        group; without either, everything is allowed.

        Args:
            content: The robots.txt file content
            user_agent: The user agent to match rules for

        Returns:
            RobotsPolicy with the rules for ``user_agent``
        """
        groups: list[_AgentGroup] = []
        current: _AgentGroup | None = None
        in_rules = False
        sitemaps: list[str] = []

        for raw_line in content.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue

            directive, _, value = line.partition(":")
            directive = directive.strip().lower()
            value = value.strip()

            if directive == "user-agent":
                # A user-agent line after rules starts a new group
                if current is None or in_rules:
                    current = _AgentGroup()
                    groups.append(current)
                    in_rules = False
                current.agents.append(_agent_name(value))

            elif directive in ("allow", "disallow"):
                if current is None:
                    continue
                in_rules = True
                # Empty disallow means allow all
                if value:
                    current.rules.append(RobotsRule(path=value, allowed=directive == "allow"))

            elif directive == "crawl-delay":
                if current is None:
                    continue
                in_rules = True
                try:
                    current.crawl_delay = float(value)
                except ValueError:
                    logger.debug("robots_bad_crawl_delay", value=value)

            elif directive == "sitemap" and value.startswith("http"):
                sitemaps.append(value)

        ua_name = _agent_name(user_agent)
        specific = [g for g in groups if ua_name in g.agents]
        chosen = specific or [g for g in groups if "*" in g.agents]

        rules = tuple(rule for group in chosen for rule in group.rules)
        crawl_delay = next((g.crawl_delay for g in chosen if g.crawl_delay is not None), None)

        return cls(rules=rules, crawl_delay=crawl_delay, sitemaps=tuple(sitemaps))

    def is_allowed(self, url: str) -> bool:
        """
        Check if a URL (or bare path) may be crawled.

        The longest matching rule wins; ``Allow`` wins ties.

        Args:
            url: Absolute URL or path to check

        Returns:
            True if crawling is allowed, False otherwise
        """
        try:
            parsed = urlparse(url)
        except ValueError:
            return True
        path = parsed.path or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"

        sorted_rules = sorted(self.rules, key=lambda r: (len(r.path), r.allowed), reverse=True)
        for rule in sorted_rules:
            if rule.matches(path):
                return rule.allowed

        return True


async def fetch_robots_policy(
    base_url: str,
    user_agent: str,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RobotsPolicy:
    """
    Fetch and parse robots.txt for the origin of ``base_url``.

    Any failure (network error, timeout, non-200 response) degrades to an
    allow-all policy.

    Args:
        base_url: Any URL on the site
        user_agent: Agent token used for the request and rule matching
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)

    Returns:
        The parsed RobotsPolicy
    """
    robots_url = urljoin(base_url, "/robots.txt")

    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        ) as client:
            response = await client.get(robots_url, headers={"User-Agent": user_agent})
    except httpx.HTTPError as e:
        logger.warning("robots_fetch_failed", url=robots_url, error=str(e))
        return RobotsPolicy.allow_all()

    if response.status_code != 200:
        logger.info("robots_not_found", url=robots_url, status=response.status_code)
        return RobotsPolicy.allow_all()

    policy = RobotsPolicy.parse(response.text, user_agent)
    logger.debug("robots_loaded", url=robots_url, rules=len(policy.rules))
    return policy
