"""Search results extractor.

Structure (Amazon-style listing, selectors are configurable):
  div[data-component-type='s-search-result']   one result block
    - h2 > a                                   product name + relative href
    - span.a-price > span.a-offscreen          current price, then "was" price
"""

from typing import List
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from pricecrawler.config import Settings
from pricecrawler.core.exceptions import ExtractionError
from pricecrawler.scrapers.base import Extractor, ScrapedProduct


class SearchResultExtractor(Extractor):
    """Parses search result blocks with BeautifulSoup."""

    platform = "search"

    def __init__(self, config: Settings):
        super().__init__()
        self.result_selector = config.RESULT_SELECTOR
        self.name_selector = config.NAME_SELECTOR
        self.price_selector = config.PRICE_SELECTOR
        self.link_base_url = config.link_base_url

    def select_blocks(self, markup: str) -> List[Tag]:
        soup = BeautifulSoup(markup, "html.parser")
        return soup.select(self.result_selector)

    def parse_block(self, block: Tag) -> ScrapedProduct:
        anchor = block.select_one(self.name_selector)
        if anchor is None:
            raise ExtractionError(self.platform, "product name anchor not found")

        name = anchor.get_text(" ", strip=True)
        if not name:
            raise ExtractionError(self.platform, "product name is empty")

        href = anchor.get("href")
        if not href:
            raise ExtractionError(self.platform, f"no href on product anchor for {name!r}")

        # First price is the current one, a second one is the old "was" price
        prices = [
            elem.get_text(strip=True)
            for elem in block.select(self.price_selector)
        ]
        prices = [p for p in prices if p]
        if not prices:
            raise ExtractionError(self.platform, f"no price element for {name!r}")

        return ScrapedProduct(
            name=name,
            price=prices[0],
            old_price=prices[1] if len(prices) > 1 else None,
            link=build_link(self.link_base_url, href),
        )


def build_link(base_url: str, href: str) -> str:
    """Resolve a scraped href against the site's base URL.

    >>> build_link("https://example.com", "/dp/ABC123")
    'https://example.com/dp/ABC123'
    """
    return urljoin(base_url.rstrip("/") + "/", href)
