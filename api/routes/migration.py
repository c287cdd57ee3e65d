"""
Migration control endpoints: manual trigger, scheduler status and sync watermarks
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from core.exceptions import MigrationAlreadyRunningError
from api.dependencies import get_scheduler
from schemas.api import (
    ErrorResponse,
    MigrationResponse,
    MigrationStatusResponse,
    SyncStatusResponse,
)
from migration.scheduler import MigrationScheduler
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/migration", tags=["Migration"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump()
    )


@router.post(
    "/trigger",
    response_model=MigrationResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def trigger_migration(scheduler: MigrationScheduler = Depends(get_scheduler)):
    """
    Run a migration immediately.

    Returns 400 when a migration (scheduled or manual) is already in progress.
    """
    request_id = f"req_{uuid.uuid4().hex[:12]}"
    logger.info(f"[{request_id}] POST /migration/trigger")

    try:
        stats = await scheduler.trigger_manual_migration()
    except MigrationAlreadyRunningError as e:
        logger.warning(f"[{request_id}] {e.message}")
        return _error(400, e.message)
    except Exception as e:
        logger.error(f"[{request_id}] Manual migration failed: {str(e)}")
        return _error(500, "Migration failed")

    return MigrationResponse(
        data=stats,
        message="Migration completed successfully"
    )


@router.get("/status", response_model=MigrationStatusResponse)
async def get_migration_status(scheduler: MigrationScheduler = Depends(get_scheduler)):
    """Scheduler state: enabled flag, in-progress flag, interval and next execution"""
    return MigrationStatusResponse(
        data=scheduler.get_status(),
        message="Migration status retrieved successfully"
    )


@router.get(
    "/sync/{name}",
    response_model=SyncStatusResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_sync_status(
    name: str,
    scheduler: MigrationScheduler = Depends(get_scheduler)
):
    status = await scheduler.get_sync_status(name)
    if status is None:
        return _error(404, f"No sync state found for '{name}'")

    return SyncStatusResponse(
        data=status,
        message="Sync status retrieved successfully"
    )


@router.delete("/sync/{name}")
async def reset_sync_state(
    name: str,
    scheduler: MigrationScheduler = Depends(get_scheduler)
):
    """Delete the watermark so the next run migrates all history"""
    logger.info(f"DELETE /migration/sync/{name}")
    await scheduler.reset_sync_state(name)
    return {
        "success": True,
        "message": f"Sync state '{name}' reset"
    }
