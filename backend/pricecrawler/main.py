"""PriceCrawler -- service entry point.

Builds the long-lived HTTP client and database engine, wires the crawl
components together and runs one crawl per day until the process dies.
"""

import asyncio
import sys

import structlog

from pricecrawler.config import Settings, settings
from pricecrawler.core.logging_config import configure_logging
from pricecrawler.db.session import (
    build_engine,
    build_session_factory,
    create_tables,
    wait_for_database,
)
from pricecrawler.scrapers.crawl_loop import BackoffPolicy, CrawlLoop
from pricecrawler.scrapers.extractor import SearchResultExtractor
from pricecrawler.scrapers.fetcher import SearchPageFetcher, build_http_client
from pricecrawler.scrapers.scheduler import CrawlScheduler
from pricecrawler.services.crawl_service import CrawlService
from pricecrawler.services.persister import ProductPersister

logger = structlog.get_logger(__name__)


def build_crawl_loop(client, config: Settings) -> CrawlLoop:
    """Wire fetcher, extractor and backoff policy from settings."""
    return CrawlLoop(
        fetcher=SearchPageFetcher(client, config),
        extractor=SearchResultExtractor(config),
        policy=BackoffPolicy.from_settings(config),
    )


async def run(config: Settings = settings) -> None:
    """Start the crawler and keep it resident."""
    logger.info(
        "starting_pricecrawler",
        environment=config.ENVIRONMENT,
        site=config.SITE_URL,
        search_term=config.SEARCH_TERM,
    )

    engine = build_engine(config)
    try:
        await wait_for_database(engine)
        if config.DB_CREATE_TABLES:
            await create_tables(engine)

        async with build_http_client(config) as client:
            scheduler = CrawlScheduler.from_settings(config)
            service = CrawlService(
                crawl_loop=build_crawl_loop(client, config),
                persister=ProductPersister(build_session_factory(engine), timezone=scheduler.timezone),
                scheduler=scheduler,
            )
            await service.run_forever()
    finally:
        await engine.dispose()

    logger.error("crawl_loop_exited", message="The crawl loop should never finish")


def main() -> None:
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("pricecrawler_interrupted")
        sys.exit(0)


if __name__ == "__main__":
    main()
