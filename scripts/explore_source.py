"""
Script to inspect the raw MongoDB source: databases, collections and recent documents
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.logging import setup_logging
from core.exceptions import MigrationException
from migration.extractors.mongo_extractor import MongoRawDataSource

setup_logging()
logger = logging.getLogger(__name__)


async def explore_source(sample_size: int = 5, device_address: str = None):
    source = MongoRawDataSource()

    try:
        await source.connect()

        databases = await source.list_databases()
        logger.info(f"Databases: {', '.join(databases)}")

        collections = await source.list_collections()
        logger.info(f"Collections in {source.database_name}: {', '.join(collections)}")

        if device_address:
            records = await source.fetch_by_device(device_address)
            logger.info(f"Found {len(records)} documents for device {device_address}")
            records = records[:sample_size]
        else:
            records = await source.fetch_recent(sample_size)

        MongoRawDataSource.log_sample(records, sample_size)

    except MigrationException as e:
        logger.error(f"Source exploration failed: {str(e)}")
        sys.exit(1)
    finally:
        await source.disconnect()


if __name__ == "__main__":
    asyncio.run(explore_source(device_address=sys.argv[1] if len(sys.argv) > 1 else None))
