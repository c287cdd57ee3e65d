"""
Persisted watermark store for incremental migration
"""

from typing import List, Optional
from datetime import datetime, timezone
import logging

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import SyncStateError
from models.sync_state import MigrationState
from schemas.migration import SyncStatus

logger = logging.getLogger(__name__)


class SyncStateStore:
    """
    Read and advance the per-name sync watermark.
    
    A missing row means the sync has never run and the next run migrates
    all history (watermark 0).
    """
    
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    async def get_state(self, name: str) -> Optional[MigrationState]:
        result = await self.db.execute(
            select(MigrationState).where(MigrationState.name == name)
        )
        return result.scalar_one_or_none()
    
    async def get_last_sync_timestamp(self, name: str) -> int:
        state = await self.get_state(name)
        if state is None:
            logger.info(f"First migration run for {name} - starting from timestamp 0 (all data)")
            return 0
        return state.last_sync_timestamp
    
    async def advance_watermark(self, name: str, timestamp: int) -> MigrationState:
        """
        Upsert the watermark for a sync name.
        
        The stored value never decreases. total_migrated is left as is.
        """
        try:
            state = await self.get_state(name)
            now = datetime.utcnow()
            
            if state is None:
                state = MigrationState(
                    name=name,
                    last_sync_timestamp=timestamp,
                    total_migrated=0,
                    last_run_at=now,
                )
                self.db.add(state)
            else:
                if timestamp < state.last_sync_timestamp:
                    logger.warning(
                        f"Ignoring watermark {timestamp} for {name}: "
                        f"behind stored value {state.last_sync_timestamp}"
                    )
                else:
                    state.last_sync_timestamp = timestamp
                state.last_run_at = now
                state.updated_at = now
            
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SyncStateError(
                "Failed to update sync watermark",
                context={"sync_name": name, "operation": "upsert", "timestamp": timestamp},
                original_exception=e
            )
        return state
    
    async def reset(self, name: str) -> None:
        try:
            await self.db.execute(delete(MigrationState).where(MigrationState.name == name))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SyncStateError(
                "Failed to reset sync state",
                context={"sync_name": name, "operation": "reset"},
                original_exception=e
            )
        logger.info(f"Reset sync state for: {name}")
    
    async def get_status(self, name: str) -> Optional[SyncStatus]:
        state = await self.get_state(name)
        if state is None:
            return None
        return self.to_status(state)
    
    async def list_states(self) -> List[SyncStatus]:
        result = await self.db.execute(select(MigrationState).order_by(MigrationState.name))
        return [self.to_status(state) for state in result.scalars().all()]
    
    @staticmethod
    def to_status(state: MigrationState) -> SyncStatus:
        return SyncStatus(
            name=state.name,
            last_sync_timestamp=state.last_sync_timestamp,
            last_sync_date=datetime.fromtimestamp(
                state.last_sync_timestamp, tz=timezone.utc
            ).isoformat(),
            total_migrated=state.total_migrated,
            last_run_at=state.last_run_at.isoformat(),
        )
