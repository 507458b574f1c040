"""Crawler package for contact discovery."""

from contact_crawler.crawler.cache import CacheStore, CrawlCache
from contact_crawler.crawler.crawler import ContactCrawler, CrawlConfig, crawl_site
from contact_crawler.crawler.extractor import extract_contacts, extract_links
from contact_crawler.crawler.fetcher import Fetcher, FetchResult
from contact_crawler.crawler.frontier import CrawlTask, Frontier
from contact_crawler.crawler.models import CrawlResult
from contact_crawler.crawler.render import PageRenderer, RendererConfig
from contact_crawler.crawler.robots import RobotsPolicy, RobotsRule, fetch_robots_policy
from contact_crawler.crawler.url import extract_host, is_same_host, normalize_url

__all__ = [
    # Engine
    "ContactCrawler",
    "CrawlConfig",
    "CrawlResult",
    "crawl_site",
    # Frontier
    "CrawlTask",
    "Frontier",
    # Fetch and render
    "Fetcher",
    "FetchResult",
    "PageRenderer",
    "RendererConfig",
    # Robots
    "RobotsPolicy",
    "RobotsRule",
    "fetch_robots_policy",
    # Extraction
    "extract_contacts",
    "extract_links",
    # Cache
    "CacheStore",
    "CrawlCache",
    # URL utilities
    "normalize_url",
    "extract_host",
    "is_same_host",
]
