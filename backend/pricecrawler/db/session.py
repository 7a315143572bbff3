"""Async database engine, session factory and startup checks."""

import logging

import structlog
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from pricecrawler.config import Settings
from pricecrawler.models.base import Base

logger = structlog.get_logger(__name__)


def build_engine(config: Settings) -> AsyncEngine:
    """Create the process-wide async engine."""
    # SQLite doesn't support pool_size / max_overflow / pool_pre_ping
    is_sqlite = config.DATABASE_URL.startswith("sqlite")

    engine_kwargs: dict = {"echo": config.DEBUG}
    if not is_sqlite:
        # One crawl task uses the database, a small pool is plenty
        engine_kwargs.update(pool_size=2, max_overflow=2, pool_pre_ping=True)

    return create_async_engine(config.DATABASE_URL, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=2, min=2, max=60),
    retry=retry_if_exception_type((OperationalError, InterfaceError, OSError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def wait_for_database(engine: AsyncEngine) -> None:
    """Block until the database answers a trivial query."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_reachable")


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables; existing tables and rows are left alone."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_verified")
