"""
Async SQLAlchemy engine, session factory and schema helpers for the
relational store the migration writes to
"""

from typing import AsyncIterator, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

# NullPool: the scheduler opens one short-lived session per run
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.ENVIRONMENT == "development",
    poolclass=NullPool,
    future=True
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session that is closed when the caller is done"""
    async with async_session_maker() as session:
        yield session


async def create_tables(bind: Optional[AsyncEngine] = None) -> List[str]:
    """
    Create every table registered on the model metadata.

    Existing tables are left untouched.

    Returns:
        Sorted table names
    """
    # Importing the package registers every mapped class on Base.metadata
    from models import Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    table_names = sorted(Base.metadata.tables)
    logger.info(f"Tables ready: {', '.join(table_names)}")
    return table_names


async def check_connection(session: AsyncSession) -> bool:
    """Round-trip a trivial query; failures are logged, not raised"""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {str(e)}")
        return False
