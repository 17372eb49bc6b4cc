"""
Database Connection Management

Scoped async engine handles with SQLAlchemy 2.0. The engine is acquired
for the duration of one dataset run or benchmark and is always disposed on
exit, including when the run fails.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from ormbench.config import Settings, get_settings

logger = structlog.get_logger(__name__)


def store_url(dataset: str, settings: Optional[Settings] = None) -> str:
    """Resolve the database URL for ``oltp`` or ``olap``."""
    settings = settings or get_settings()
    return settings.database.url_for(dataset)


@asynccontextmanager
async def open_store(url: str, echo: bool = False) -> AsyncGenerator[AsyncEngine, None]:
    """
    Open a database engine for one run.

    Verifies the connection before yielding and disposes the engine on
    every exit path.

    Args:
        url: SQLAlchemy async database URL
        echo: Echo SQL statements through the ``sqlalchemy.engine`` logger

    Yields:
        AsyncEngine: The connected engine

    Example:
        async with open_store(store_url("oltp")) as engine:
            await DatasetOrchestrator(engine, ...).populate()
    """
    # Runs are sequential, one connection at a time
    engine = create_async_engine(url, echo=echo, poolclass=NullPool)
    safe_url = make_url(url).render_as_string(hide_password=True)

    try:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Failed to connect to database", url=safe_url, error=str(e))
            raise
        logger.info("Database connection established", url=safe_url)
        yield engine
    finally:
        await engine.dispose()
        logger.info("Database engine disposed", url=safe_url)


@asynccontextmanager
async def session_scope(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    Get an ORM session bound to ``engine``.

    Commits on success, rolls back on error and always closes.

    Yields:
        AsyncSession: Database session
    """
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()
