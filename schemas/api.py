"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Generic, TypeVar
from datetime import datetime

from schemas.migration import MigrationRunStats, SchedulerStatus, SyncStatus

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Success envelope used by the migration endpoints"""
    success: bool = True
    data: T
    message: str


class ErrorResponse(BaseModel):
    """Standard error response"""
    success: bool = False
    error: str


class MigrationResponse(APIResponse[MigrationRunStats]):
    pass


class MigrationStatusResponse(APIResponse[SchedulerStatus]):
    pass


class SyncStatusResponse(APIResponse[SyncStatus]):
    pass


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    sync_states: List[SyncStatus] = Field(default_factory=list)
    scheduler: Optional[SchedulerStatus] = None
