"""Pytest configuration and shared fixtures."""

from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from pricecrawler.config import Settings
from pricecrawler.models.base import Base


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at a fake site with zero delays."""
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        SITE_URL="https://example.com",
        SEARCH_PATH="/search",
        SEARCH_QUERY_PARAM="query",
        SEARCH_TERM="raspberry pi",
        USER_AGENT="TestAgent/1.0",
        COURTESY_DELAY_SECONDS=20.0,
        SHORT_BACKOFF_SECONDS=15.0,
        LONG_REST_SECONDS=3600.0,
        RATE_LIMIT_THRESHOLD=10,
        CRAWL_TIMEZONE="UTC",
    )


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with the products table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


def result_block(
    name: Optional[str] = "Raspberry Pi 5 8GB",
    href: Optional[str] = "/dp/B0CK2FCG1K",
    prices: Optional[List[str]] = None,
) -> str:
    """Markup for one search result block; None drops that part."""
    prices = ["$80.00"] if prices is None else prices
    anchor = ""
    if name is not None:
        href_attr = f' href="{href}"' if href is not None else ""
        anchor = f'<h2><a class="a-link-normal"{href_attr}><span>{name}</span></a></h2>'
    price_html = "".join(
        f'<span class="a-price"><span class="a-offscreen">{p}</span>'
        f'<span aria-hidden="true">{p}</span></span>'
        for p in prices
    )
    return (
        '<div data-component-type="s-search-result" class="s-result-item">'
        f'<div class="s-title">{anchor}</div>'
        f'<div class="s-price">{price_html}</div>'
        "</div>"
    )


def results_page(*blocks: str) -> str:
    """A full results page wrapping the given blocks."""
    return (
        "<html><head><title>Results</title></head><body>"
        '<div class="s-main-slot">'
        + "".join(blocks)
        + "</div></body></html>"
    )


@pytest.fixture
def make_block():
    return result_block


@pytest.fixture
def make_page():
    return results_page
