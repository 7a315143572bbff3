"""Writes a crawl batch into the products table.

Each product is inserted and committed on its own. The first failed
insert is rolled back and ends the batch; rows committed before it stay
in the table. PersistReport tells the caller exactly how far it got.
"""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Iterable, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pricecrawler.models.product import Product
from pricecrawler.scrapers.base import ScrapedProduct

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PersistReport:
    """Outcome of one batch write."""

    attempted: int
    inserted: int
    failed_at: Optional[int] = None  # Batch index of the failed insert
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.failed_at is None


class ProductPersister:
    """Best-effort, non-atomic batch writer for scraped products."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timezone: Optional[tzinfo] = None,
    ):
        """Initialize product persister.

        Args:
            session_factory: Async session factory for database access
            timezone: Zone that decides the calendar date; None uses the host zone
        """
        self.session_factory = session_factory
        self.timezone = timezone
        self.logger = logger.bind(service="product_persister")

    async def persist(
        self,
        batch: Iterable[ScrapedProduct],
        observed_on: Optional[date] = None,
    ) -> PersistReport:
        """Insert every product in order, stopping at the first failure.

        Args:
            batch: Products in accumulation order
            observed_on: Date stored in scraped_at, defaults to today in self.timezone

        Returns:
            PersistReport with counts and the failure, if any
        """
        observed_on = observed_on or datetime.now(self.timezone).date()
        attempted = 0
        inserted = 0

        async with self.session_factory() as session:
            for index, scraped in enumerate(batch):
                attempted += 1
                session.add(self._to_row(scraped, observed_on))
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    self.logger.error(
                        "product_insert_failed",
                        index=index,
                        name=scraped.name[:50],
                        inserted=inserted,
                        error=str(e),
                        message="Stopping batch, earlier rows stay committed",
                    )
                    return PersistReport(
                        attempted=attempted,
                        inserted=inserted,
                        failed_at=index,
                        error=str(e),
                    )
                inserted += 1

        self.logger.info("batch_persisted", inserted=inserted, scraped_at=observed_on.isoformat())
        return PersistReport(attempted=attempted, inserted=inserted)

    @staticmethod
    def _to_row(scraped: ScrapedProduct, observed_on: date) -> Product:
        return Product(
            name=scraped.name,
            price=scraped.price,
            old_price=scraped.old_price,
            link=scraped.link,
            scraped_at=observed_on,
        )
