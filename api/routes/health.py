"""
Health check endpoint with database and migration status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, get_scheduler
from core.database import check_connection
from schemas.api import HealthCheckResponse
from migration.scheduler import MigrationScheduler
from migration.sync_state import SyncStateStore
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    scheduler: MigrationScheduler = Depends(get_scheduler)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Watermark of every sync process
    - Scheduler status
    """

    db_connected = await check_connection(db)

    sync_states = []
    if db_connected:
        try:
            sync_states = await SyncStateStore(db).list_states()
        except Exception as e:
            logger.error(f"Failed to fetch sync states: {str(e)}")

    return HealthCheckResponse(
        status="healthy" if db_connected else "unhealthy",
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        sync_states=sync_states,
        scheduler=scheduler.get_status()
    )
