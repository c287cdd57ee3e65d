"""
Pydantic schemas for data validation and serialization.

This package defines Pydantic models used throughout the migration pipeline:

Schemas:
    raw: Raw time-series documents from the source store
    normalized: Calibration configuration and normalized reading payloads
    migration: Run configuration, run statistics and status models
    api: API endpoint request/response envelopes

Usage:
    from schemas.raw import RawReading
    from schemas.normalized import SensorReadingCreate, ParameterTypeConfig
    from schemas.migration import MigrationConfig, MigrationRunStats

Example:
    reading = RawReading.from_document({
        "_id": "X1",
        "uuid": "AA:BB",
        "unixtime": 1700000000,
        "temperatura": 25.5,
    })
    assert reading.values == {"temperatura": 25.5}
"""

from schemas.raw import RawReading
from schemas.normalized import (
    ParameterTypeConfig,
    CalibrationEntry,
    CalibrationResult,
    SensorReadingCreate,
)
from schemas.migration import (
    MigrationConfig,
    SchedulerConfig,
    MigrationRunStats,
    SyncStatus,
    SchedulerStatus,
)
from schemas.api import HealthCheckResponse

__all__ = [
    "RawReading",
    "ParameterTypeConfig",
    "CalibrationEntry",
    "CalibrationResult",
    "SensorReadingCreate",
    "MigrationConfig",
    "SchedulerConfig",
    "MigrationRunStats",
    "SyncStatus",
    "SchedulerStatus",
    "HealthCheckResponse",
]
