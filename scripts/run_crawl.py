"""Manual crawl runner for testing selectors and backoff settings.

Runs a single crawl sweep against the configured site, prints what was
found and, unless --dry-run is given, writes the batch to the database.

Usage:
    python scripts/run_crawl.py --dry-run --max-pages 2
    python scripts/run_crawl.py --term "raspberry pi 5" --limit 5
    python scripts/run_crawl.py --max-pages 1
"""

import asyncio
import argparse
import sys
import os

# Add backend to path so we can import pricecrawler modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from pricecrawler.config import Settings
from pricecrawler.core.logging_config import configure_logging
from pricecrawler.db.session import build_engine, build_session_factory, create_tables
from pricecrawler.main import build_crawl_loop
from pricecrawler.scrapers.fetcher import build_http_client
from pricecrawler.scrapers.scheduler import CrawlScheduler
from pricecrawler.services.crawl_service import CrawlService
from pricecrawler.services.persister import ProductPersister


async def run_crawl(config: Settings, dry_run: bool = False, limit: int = 10):
    """Run one crawl cycle and display the results.

    Args:
        config: Settings with any command line overrides applied
        dry_run: Crawl without writing to the database
        limit: Maximum number of products to display (default: 10)
    """
    print(f"\n{'='*70}")
    print(f"  Crawling {config.SITE_URL} for '{config.SEARCH_TERM}'")
    print(f"{'='*70}")
    print(f"  📄 Max pages: {config.MAX_PAGES or 'unlimited'}")
    print(f"  ⏱️  Courtesy delay: {config.COURTESY_DELAY_SECONDS}s")
    print(f"  💾 Persist: {'no (dry run)' if dry_run else 'yes'}")
    print(f"{'='*70}\n")

    engine = build_engine(config)
    try:
        if not dry_run and config.DB_CREATE_TABLES:
            await create_tables(engine)

        async with build_http_client(config) as client:
            crawl_loop = build_crawl_loop(client, config)
            scheduler = CrawlScheduler.from_settings(config)
            service = CrawlService(
                crawl_loop=crawl_loop,
                persister=ProductPersister(build_session_factory(engine), timezone=scheduler.timezone),
                scheduler=scheduler,
            )
            report = await service.run_cycle(dry_run=dry_run)
    finally:
        await engine.dispose()

    state = crawl_loop.last_state
    print(f"\n✅ Sweep finished: {state.stop_reason if state else 'unknown'}")
    print(f"   Pages fetched: {state.pages_fetched if state else 0}")
    print(f"   Products found: {report.products_found}")
    if state and state.faults:
        print(f"   ⚠️  Malformed listings skipped: {state.faults}")

    if report.persist is not None:
        print(f"   Rows inserted: {report.persist.inserted}/{report.persist.attempted}")
        if not report.persist.complete:
            print(f"   ❌ Batch stopped at index {report.persist.failed_at}: {report.persist.error}")

    products = list(state.batch) if state else []
    if products:
        print(f"\n{'='*70}")
        print(f"  First {min(limit, len(products))} Products")
        print(f"{'='*70}\n")
        for i, product in enumerate(products[:limit], 1):
            print(f"[{i}] {product.name}")
            print(f"    💰 Price: {product.price}")
            if product.old_price:
                print(f"    🔖 Was: {product.old_price}")
            print(f"    🔗 URL: {product.link[:80]}")
            print()

    print(f"⏭️  Next scheduled run in {scheduler.delay_until_next_run()}\n")


def main():
    """Parse arguments and run one crawl."""
    parser = argparse.ArgumentParser(
        description="Run a single crawl sweep for testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_crawl.py --dry-run --max-pages 2
  python scripts/run_crawl.py --term "raspberry pi 5" --limit 5
        """,
    )

    parser.add_argument(
        "--term",
        help="Search term (default: SEARCH_TERM setting)",
    )

    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Stop after this many pages (default: MAX_PAGES setting)",
    )

    parser.add_argument(
        "--courtesy-delay",
        type=float,
        default=None,
        help="Seconds to wait between pages (default: COURTESY_DELAY_SECONDS setting)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Crawl but do not write to the database",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of products to display (default: 10)",
    )

    args = parser.parse_args()

    overrides = {}
    if args.term:
        overrides["SEARCH_TERM"] = args.term
    if args.max_pages is not None:
        overrides["MAX_PAGES"] = args.max_pages
    if args.courtesy_delay is not None:
        overrides["COURTESY_DELAY_SECONDS"] = args.courtesy_delay

    config = Settings(**overrides)
    configure_logging(config.LOG_LEVEL, json=config.LOG_JSON)

    try:
        asyncio.run(run_crawl(config, dry_run=args.dry_run, limit=args.limit))
    except KeyboardInterrupt:
        print("\n\n⛔ Interrupted by user.")
        sys.exit(0)


if __name__ == "__main__":
    main()
