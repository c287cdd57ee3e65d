"""
Pydantic schemas for migration configuration, run statistics and status
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
import enum

from core.config import Settings, settings


class RunStatus(str, enum.Enum):
    """Lifecycle of a migration run"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# ============================================================================
# Configuration
# ============================================================================

class MigrationConfig(BaseModel):
    """Explicit configuration for the migration runner"""
    batch_size: int = Field(default=100, ge=1)
    sync_name: str = Field(default="main_sync", min_length=1, max_length=100)
    
    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "MigrationConfig":
        source = source or settings
        return cls(
            batch_size=source.MIGRATION_BATCH_SIZE,
            sync_name=source.MIGRATION_SYNC_NAME,
        )


class SchedulerConfig(BaseModel):
    """Explicit configuration for the migration scheduler"""
    enabled: bool = False
    interval_minutes: int = Field(default=15, ge=1)
    
    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "SchedulerConfig":
        source = source or settings
        return cls(
            enabled=source.MIGRATION_ENABLED,
            interval_minutes=source.MIGRATION_INTERVAL_MINUTES,
        )


# ============================================================================
# Run Statistics
# ============================================================================

class MigrationRunStats(BaseModel):
    """Per-invocation migration statistics (never persisted)"""
    total_processed: int = 0
    successful_migrations: int = 0
    failed_migrations: int = 0
    stations_matched: int = 0
    stations_not_found: int = 0
    last_sync_timestamp: int = 0
    start_time: datetime = Field(default_factory=datetime.utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, description="Run duration in milliseconds")
    
    class Config:
        json_schema_extra = {
            "example": {
                "total_processed": 150,
                "successful_migrations": 145,
                "failed_migrations": 5,
                "stations_matched": 140,
                "stations_not_found": 10,
                "last_sync_timestamp": 1640995200,
                "start_time": "2024-01-15T10:00:00",
                "end_time": "2024-01-15T10:00:05",
                "duration": 5432
            }
        }


# ============================================================================
# Status Schemas
# ============================================================================

class SyncStatus(BaseModel):
    """Persisted watermark for one sync process"""
    name: str
    last_sync_timestamp: int
    last_sync_date: str = Field(..., description="Watermark as ISO-8601 (UTC)")
    total_migrated: int
    last_run_at: str = Field(..., description="Last watermark update as ISO-8601")


class SchedulerStatus(BaseModel):
    """Scheduler state exposed to the API"""
    enabled: bool
    running: bool
    interval_minutes: int
    next_execution: Optional[str] = None
    last_run_status: RunStatus = RunStatus.IDLE
    
    class Config:
        use_enum_values = True
