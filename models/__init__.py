"""
SQLAlchemy ORM models for database tables.

This package defines the relational schema the migration pipeline reads
from and writes to:

Models:
    base: Base declarative class, JSON column type and shared enums
    station: Stations, parameter types and station parameters (read-only inputs)
    sensor_reading: Normalized readings and their parameter links (pipeline output)
    sync_state: Incremental sync watermark per sync name

Usage:
    from models import Station, ParameterType, Parameter, SensorReading
    from models.sync_state import MigrationState

Relationships:
    - Station → Parameter (one-to-many)
    - ParameterType → Parameter (one-to-many)
    - SensorReading ↔ Parameter (many-to-many via sensor_reading_parameters)
"""

from models.base import Base, StationStatus
from models.station import Station, ParameterType, Parameter
from models.sensor_reading import SensorReading, SensorReadingParameter
from models.sync_state import MigrationState

__all__ = [
    "Base",
    "StationStatus",
    "Station",
    "ParameterType",
    "Parameter",
    "SensorReading",
    "SensorReadingParameter",
    "MigrationState",
]
