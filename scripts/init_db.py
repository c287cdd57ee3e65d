"""
Script to create the relational schema the migration writes to
"""

import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.exc import SQLAlchemyError
from core.database import create_tables, engine
from core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    try:
        await create_tables()
    except SQLAlchemyError as e:
        logger.error(f"Failed to create tables: {str(e)}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())
