"""
Script to run one incremental sensor data migration
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from core.config import settings
from core.logging import setup_logging
from migration.extractors.mongo_extractor import MongoRawDataSource
from migration.runner import MigrationRunner
from schemas.migration import MigrationConfig

setup_logging()
logger = logging.getLogger(__name__)


async def run_migration():
    """Run one migration for the configured sync name"""

    # Create database engine
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,
    )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    try:
        async with AsyncSessionLocal() as session:
            runner = MigrationRunner(
                session,
                MongoRawDataSource(),
                MigrationConfig.from_settings()
            )
            stats = await runner.migrate()
            logger.info(
                f"Migration completed: "
                f"Processed={stats.total_processed}, "
                f"Migrated={stats.successful_migrations}, "
                f"Failed={stats.failed_migrations}"
            )

    except Exception as e:
        logger.error(f"Migration error: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(run_migration())
