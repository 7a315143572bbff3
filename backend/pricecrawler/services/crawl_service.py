"""Crawl orchestration service.

Connects the crawl loop with the persister and the daily schedule:
crawl all pages, write the batch, sleep until the next run, repeat.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog

from pricecrawler.scrapers.crawl_loop import CrawlLoop, SleepFunc
from pricecrawler.scrapers.scheduler import CrawlScheduler
from pricecrawler.services.persister import PersistReport, ProductPersister

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CycleReport:
    started_at: datetime
    finished_at: datetime
    products_found: int
    persist: Optional[PersistReport]  # None for dry runs

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class CrawlService:
    """Runs crawl cycles once per scheduled interval, forever."""

    def __init__(
        self,
        crawl_loop: CrawlLoop,
        persister: ProductPersister,
        scheduler: CrawlScheduler,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.crawl_loop = crawl_loop
        self.persister = persister
        self.scheduler = scheduler
        self._sleep = sleep
        self.logger = logger.bind(service="crawl_service")

    async def run_cycle(self, dry_run: bool = False) -> CycleReport:
        """Crawl every page and persist what was found.

        Args:
            dry_run: Skip the database write

        Returns:
            CycleReport for this cycle
        """
        started_at = datetime.now()
        self.logger.info("crawl_cycle_started", dry_run=dry_run)

        products = await self.crawl_loop.run()

        report = None
        if not dry_run:
            report = await self.persister.persist(products)

        cycle = CycleReport(
            started_at=started_at,
            finished_at=datetime.now(),
            products_found=len(products),
            persist=report,
        )
        self.logger.info(
            "crawl_cycle_completed",
            products_found=cycle.products_found,
            inserted=report.inserted if report else 0,
            complete=report.complete if report else None,
            duration_seconds=round(cycle.duration_seconds, 2),
        )
        return cycle

    async def _run_cycle_wrapper(self) -> Optional[CycleReport]:
        """Run a cycle without letting its failure end the service."""
        try:
            return await self.run_cycle()
        except Exception as e:
            self.logger.error(
                "crawl_cycle_failed",
                error=str(e),
                exc_info=True,
            )
            return None

    async def run_forever(self, cycles: Optional[int] = None) -> None:
        """Crawl now, then once per scheduled run.

        Args:
            cycles: Stop after this many cycles; None runs until the process dies
        """
        completed = 0
        while cycles is None or completed < cycles:
            await self._run_cycle_wrapper()
            completed += 1

            delay = self.scheduler.delay_until_next_run()
            self.logger.info("sleeping_until_next_run", delay_seconds=int(delay.total_seconds()))
            await self._sleep(delay.total_seconds())
