"""Crawler for paginated search result listings.

This package provides:
- Value types and abstract fetcher/extractor interfaces
- An httpx page fetcher and a BeautifulSoup extractor
- The pagination/backoff crawl loop
- The daily crawl schedule
"""

from .base import (
    Empty,
    Entries,
    ExtractionFault,
    Extractor,
    PageFetched,
    PageFetcher,
    RateLimited,
    ScrapedProduct,
    TransportError,
)
from .crawl_loop import BackoffPolicy, CrawlLoop, CrawlState, advance
from .extractor import SearchResultExtractor, build_link
from .fetcher import SearchPageFetcher, build_http_client
from .scheduler import CrawlScheduler

__all__ = [
    # Value types
    "ScrapedProduct",
    "PageFetched",
    "RateLimited",
    "TransportError",
    "Entries",
    "Empty",
    "ExtractionFault",
    # Interfaces and implementations
    "PageFetcher",
    "Extractor",
    "SearchPageFetcher",
    "SearchResultExtractor",
    "build_http_client",
    "build_link",
    # Crawl loop
    "BackoffPolicy",
    "CrawlLoop",
    "CrawlState",
    "advance",
    # Schedule
    "CrawlScheduler",
]
