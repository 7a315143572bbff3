"""Search results page fetcher.

Issues one GET per call through a shared httpx client and classifies the
response. Retry policy lives in the crawl loop, not here.
"""

from typing import Dict

import httpx

from pricecrawler.config import Settings
from pricecrawler.scrapers.base import (
    PageFetched,
    PageFetcher,
    PageResult,
    RateLimited,
    TransportError,
)


def build_http_client(config: Settings) -> httpx.AsyncClient:
    """Create the process-wide HTTP client with the configured identity."""
    return httpx.AsyncClient(
        headers={
            "User-Agent": config.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        },
        timeout=config.HTTP_TIMEOUT_SECONDS,
        follow_redirects=True,
    )


class SearchPageFetcher(PageFetcher):
    """Fetches `<site><search path>?<query param>=<term>&page=<n>`."""

    def __init__(self, client: httpx.AsyncClient, config: Settings):
        super().__init__()
        self.client = client
        self.search_url = config.search_url
        self.query_param = config.SEARCH_QUERY_PARAM
        self.search_term = config.SEARCH_TERM
        self.rate_limit_status_codes = frozenset(config.RATE_LIMIT_STATUS_CODES)
        self.logger = self.logger.bind(search_term=self.search_term)

    def build_params(self, page_number: int) -> Dict[str, str]:
        return {self.query_param: self.search_term, "page": str(page_number)}

    async def fetch(self, page_number: int) -> PageResult:
        try:
            response = await self.client.get(
                self.search_url, params=self.build_params(page_number)
            )
        except httpx.HTTPError as e:
            self.logger.error(
                "http_request_failed",
                page=page_number,
                error=str(e),
                error_type=type(e).__name__,
            )
            return TransportError(reason=f"{type(e).__name__}: {e}")

        if response.status_code in self.rate_limit_status_codes:
            self.logger.warning(
                "rate_limited",
                page=page_number,
                status_code=response.status_code,
            )
            return RateLimited(status_code=response.status_code)

        if not response.is_success:
            self.logger.error(
                "unexpected_status",
                page=page_number,
                status_code=response.status_code,
            )
            return TransportError(reason=f"unexpected status {response.status_code}")

        # Body read and content-decoding failures surface above as httpx.HTTPError
        markup = response.text
        self.logger.debug("page_fetched", page=page_number, size=len(markup))
        return PageFetched(markup=markup)
