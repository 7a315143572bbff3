"""Services module for persistence and crawl orchestration.

Services sit between the crawler components and the database: the
persister writes crawl batches, the crawl service runs the daily cycle.
"""

from pricecrawler.services.persister import PersistReport, ProductPersister
from pricecrawler.services.crawl_service import CrawlService, CycleReport

__all__ = [
    "PersistReport",
    "ProductPersister",
    "CrawlService",
    "CycleReport",
]
