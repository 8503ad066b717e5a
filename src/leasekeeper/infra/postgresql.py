"""Database engine management."""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel

from leasekeeper.app.config import get_settings
from leasekeeper.core.logging_schema import LogEvent
from leasekeeper.infra.models import LeaderLease

logger = logging.getLogger(__name__)


async def init_db() -> AsyncEngine:
    """Create the engine and check connectivity. The lease store closes it."""
    settings = get_settings()
    url = str(settings.database.url)

    engine = create_async_engine(
        url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        pool_recycle=3600,
        pool_pre_ping=True,
    )

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info(
            "PostgreSQL connected",
            extra={"event": LogEvent.STORE_CONNECTED, "pool_size": settings.database.pool_size},
        )
    except Exception as e:
        logger.error(
            "PostgreSQL connection failed",
            extra={
                "event": LogEvent.STORE_ERROR,
                "error_type": type(e).__name__,
                "error": str(e),
            },
        )
        raise

    return engine


async def create_schema(engine: AsyncEngine) -> None:
    """Create the leader_leases table if it does not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=[LeaderLease.__table__])
