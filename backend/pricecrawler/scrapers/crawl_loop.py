"""Pagination and backoff state machine for one crawl sweep.

The sweep is modelled as an immutable CrawlState threaded through
`advance()`, a pure function from (state, observation) to
(next state, optional wait). CrawlLoop performs the I/O around it: it
fetches the current page, runs the extractor on success, feeds the
observation to `advance()` and sleeps for whatever wait comes back.

    Fetching(page, retry)
        Entries      -> Fetching(page + 1, 0) after the courtesy delay
        Empty        -> Done
        RateLimited  -> Fetching(page, retry + 1) after a short backoff,
                        or after a long rest once retry reaches the threshold
        TransportError -> Done (keeps everything collected so far)
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Tuple, Union

import structlog

from pricecrawler.config import Settings
from pricecrawler.scrapers.base import (
    Empty,
    Entries,
    Extractor,
    PageFetched,
    PageFetcher,
    RateLimited,
    ScrapedProduct,
    TransportError,
)

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

Observation = Union[Entries, Empty, RateLimited, TransportError]

COURTESY = "courtesy"
SHORT_BACKOFF = "short_backoff"
LONG_REST = "long_rest"


@dataclass(frozen=True)
class BackoffPolicy:
    """Delays applied between requests, in seconds."""

    courtesy_delay: float = 20.0
    short_backoff: float = 15.0
    long_rest: float = 3600.0
    rate_limit_threshold: int = 10
    max_pages: int = 0  # 0 = unlimited

    @classmethod
    def from_settings(cls, config: Settings) -> "BackoffPolicy":
        return cls(
            courtesy_delay=config.COURTESY_DELAY_SECONDS,
            short_backoff=config.SHORT_BACKOFF_SECONDS,
            long_rest=config.LONG_REST_SECONDS,
            rate_limit_threshold=config.RATE_LIMIT_THRESHOLD,
            max_pages=config.MAX_PAGES,
        )

    def rate_limit_wait(self, retry_count: int) -> "Wait":
        """Wait to apply after the `retry_count`-th consecutive rate limit."""
        if retry_count >= self.rate_limit_threshold:
            return Wait(seconds=self.long_rest, kind=LONG_REST)
        return Wait(seconds=self.short_backoff, kind=SHORT_BACKOFF)


@dataclass(frozen=True)
class Wait:
    seconds: float
    kind: str


@dataclass(frozen=True)
class CrawlState:
    """Everything one sweep knows about itself."""

    page: int = 1
    retry_count: int = 0
    batch: Tuple[ScrapedProduct, ...] = ()
    done: bool = False
    pages_fetched: int = 0
    faults: int = 0
    stop_reason: Optional[str] = None


def advance(
    state: CrawlState, observation: Observation, policy: BackoffPolicy
) -> Tuple[CrawlState, Optional[Wait]]:
    """Compute the next state and the wait before the next fetch."""
    if state.done:
        return state, None

    if isinstance(observation, Entries):
        next_state = replace(
            state,
            page=state.page + 1,
            retry_count=0,
            batch=state.batch + tuple(observation.products),
            pages_fetched=state.pages_fetched + 1,
            faults=state.faults + len(observation.faults),
        )
        if policy.max_pages and next_state.pages_fetched >= policy.max_pages:
            return replace(next_state, done=True, stop_reason="max_pages"), None
        return next_state, Wait(seconds=policy.courtesy_delay, kind=COURTESY)

    if isinstance(observation, Empty):
        return replace(
            state,
            retry_count=0,
            done=True,
            pages_fetched=state.pages_fetched + 1,
            stop_reason="no_results",
        ), None

    if isinstance(observation, RateLimited):
        retry_count = state.retry_count + 1
        return replace(state, retry_count=retry_count), policy.rate_limit_wait(retry_count)

    if isinstance(observation, TransportError):
        return replace(state, done=True, stop_reason="transport_error"), None

    raise TypeError(f"Unknown observation: {observation!r}")


class CrawlLoop:
    """Drives a PageFetcher across pages and collects the extracted products."""

    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: Extractor,
        policy: Optional[BackoffPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize crawl loop.

        Args:
            fetcher: Page fetcher, called once per attempt
            extractor: Markup extractor
            policy: Delays and limits, defaults to BackoffPolicy()
            sleep: Awaitable used for every wait in the sweep
        """
        self.fetcher = fetcher
        self.extractor = extractor
        self.policy = policy or BackoffPolicy()
        self._sleep = sleep
        self.logger = logger.bind(service="crawl_loop")
        self.last_state: Optional[CrawlState] = None

    async def observe(self, page_number: int) -> Observation:
        """Fetch a page and, if it came back, extract it."""
        result = await self.fetcher.fetch(page_number)
        if isinstance(result, PageFetched):
            return self.extractor.extract(result.markup)
        return result

    async def run(self) -> List[ScrapedProduct]:
        """Run one pagination sweep.

        Returns:
            Products from every page fetched, in page order
        """
        state = CrawlState()
        self.logger.info("sweep_started")

        while not state.done:
            observation = await self.observe(state.page)
            page = state.page
            state, wait = advance(state, observation, self.policy)
            self._log_step(page, observation, state, wait)
            self.last_state = state

            if wait is not None:
                await self._sleep(wait.seconds)

        self.logger.info(
            "sweep_finished",
            reason=state.stop_reason,
            pages=state.pages_fetched,
            products=len(state.batch),
            faults=state.faults,
        )
        return list(state.batch)

    def _log_step(
        self,
        page: int,
        observation: Observation,
        state: CrawlState,
        wait: Optional[Wait],
    ) -> None:
        if isinstance(observation, Entries):
            self.logger.debug(
                "page_scraped",
                page=page,
                products=len(observation.products),
                faults=len(observation.faults),
            )
        elif isinstance(observation, Empty):
            self.logger.info("no_results_on_page", page=page)
        elif isinstance(observation, RateLimited):
            if wait is not None and wait.kind == LONG_REST:
                self.logger.error(
                    "possibly_blocked_resting",
                    page=page,
                    retry_count=state.retry_count,
                    rest_seconds=wait.seconds,
                )
            else:
                self.logger.warning(
                    "rate_limited_backing_off",
                    page=page,
                    retry_count=state.retry_count,
                    status_code=observation.status_code,
                )
        elif isinstance(observation, TransportError):
            self.logger.error(
                "sweep_aborted",
                page=page,
                reason=observation.reason,
                products_kept=len(state.batch),
            )
