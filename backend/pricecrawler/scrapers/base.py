"""Base crawler interfaces and the value types passed between them.

The crawl loop only talks to PageFetcher and Extractor through the
abstract classes defined here, so either side can be swapped for a fake
in tests or for another site's implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Union

import structlog

from pricecrawler.core.exceptions import ExtractionError


@dataclass(frozen=True)
class ScrapedProduct:
    """One product listing as it appeared on a search results page."""

    name: str
    price: str  # Kept exactly as displayed, e.g. "$35.00"
    link: str
    old_price: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name:
            raise ValueError("name is required")
        if not self.price:
            raise ValueError("price is required")
        if not self.link:
            raise ValueError("link is required")


# ---------------------------------------------------------------------------
# Page fetch results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageFetched:
    """2xx response with a decoded body."""

    markup: str


@dataclass(frozen=True)
class RateLimited:
    """The server refused load; back off and retry the same page."""

    status_code: int


@dataclass(frozen=True)
class TransportError:
    """Request could not be completed or the response was unusable."""

    reason: str


PageResult = Union[PageFetched, RateLimited, TransportError]


# ---------------------------------------------------------------------------
# Extraction results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractionFault:
    """A result block that could not be parsed into a product."""

    index: int  # Position of the block on the page, 0-based
    reason: str


EntryResult = Union[ScrapedProduct, ExtractionFault]


@dataclass(frozen=True)
class Entries:
    """At least one result block was present on the page."""

    products: List[ScrapedProduct] = field(default_factory=list)
    faults: List[ExtractionFault] = field(default_factory=list)


@dataclass(frozen=True)
class Empty:
    """No result blocks on the page; pagination is over."""


ExtractionResult = Union[Entries, Empty]


class PageFetcher(ABC):
    """Fetches one search results page per call. Never retries."""

    def __init__(self):
        self.logger = structlog.get_logger(component="page_fetcher")

    @abstractmethod
    async def fetch(self, page_number: int) -> PageResult:
        """Issue exactly one request for the given results page.

        Args:
            page_number: 1-based page number

        Returns:
            PageFetched, RateLimited or TransportError
        """
        pass


class Extractor(ABC):
    """Turns one page of markup into products.

    Subclasses locate result blocks and parse a single block; this base
    class takes care of isolating failures so that a malformed block only
    costs that one listing.
    """

    platform: str = ""

    def __init__(self):
        self.logger = structlog.get_logger(component="extractor", platform=self.platform)

    @abstractmethod
    def select_blocks(self, markup: str) -> List[Any]:
        """Return every result block found in the markup, in page order."""
        pass

    @abstractmethod
    def parse_block(self, block: Any) -> ScrapedProduct:
        """Parse one result block.

        Raises:
            ExtractionError: If the block is missing a required part
        """
        pass

    def iter_entries(self, markup: str) -> Iterator[EntryResult]:
        """Lazily yield a product or a fault for every result block."""
        return self._iter_blocks(self.select_blocks(markup))

    def _iter_blocks(self, blocks: List[Any]) -> Iterator[EntryResult]:
        for index, block in enumerate(blocks):
            try:
                yield self.parse_block(block)
            except (ExtractionError, ValueError) as e:
                yield ExtractionFault(index=index, reason=str(e))

    def extract(self, markup: str) -> ExtractionResult:
        """Parse a page, isolating per-entry failures.

        Returns:
            Empty if the page has no result blocks, otherwise Entries with
            the parsed products and any faults in page order.
        """
        blocks = self.select_blocks(markup)
        if not blocks:
            return Empty()

        products: List[ScrapedProduct] = []
        faults: List[ExtractionFault] = []
        for entry in self._iter_blocks(blocks):
            if isinstance(entry, ExtractionFault):
                self.logger.warning(
                    "entry_extraction_failed",
                    index=entry.index,
                    reason=entry.reason,
                )
                faults.append(entry)
            else:
                products.append(entry)

        return Entries(products=products, faults=faults)
