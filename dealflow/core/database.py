from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from dealflow.config import settings

logger = logging.getLogger(__name__)

# Async engine backing the readiness probe; the pipeline repository owns its own sync engine.
engine: AsyncEngine | None = None
async_session: async_sessionmaker[AsyncSession] | None = None

_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _async_database_url(url: str) -> str:
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


async def init_database():
    """Initialize database connection if DATABASE_URL is provided."""
    global engine, async_session

    if not settings.database_url:
        logger.info("No DATABASE_URL provided, running with in-memory pipeline storage")
        return

    try:
        engine = create_async_engine(
            _async_database_url(settings.database_url),
            echo=settings.debug,
            pool_pre_ping=True,
            pool_recycle=300,
        )

        async_session = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Database connection initialized successfully")

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def dispose_database() -> None:
    """Release pooled connections on shutdown."""
    global engine, async_session
    if engine is not None:
        await engine.dispose()
    engine = None
    async_session = None


async def get_database() -> AsyncSession | None:
    """Get database session."""
    if not async_session:
        yield None
        return

    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_health() -> bool:
    """Check if database is accessible."""
    if not engine:
        return True  # No database configured, consider healthy

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
