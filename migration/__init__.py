"""
Sensor data migration pipeline components.

This package moves raw sensor documents from MongoDB into the relational
station/reading schema:

Modules:
    base: Abstract raw data source contract
    expression: Polynomial expression parser and evaluator
    directory: Station and parameter lookups
    sync_state: Persisted watermark store
    runner: Migration orchestrator (fetch, calibrate, load, advance watermark)
    scheduler: APScheduler integration with single-flight manual trigger

Subpackages:
    extractors: Raw data sources (MongoDB)
    transformers: Calibration engine
    loaders: Normalized reading persistence

Architecture:
    Each run is incremental:

    1. Fetch - Read documents newer than the watermark, oldest first
    2. Calibrate - Apply per-channel offset/factor and parameter polynomials
    3. Load - Persist readings batch by batch with their parameter links
    4. Advance - Move the watermark to the newest fetched timestamp

    Record-level failures are counted in the run statistics and never abort
    the run.

Usage:
    from migration.extractors import MongoRawDataSource
    from migration.runner import MigrationRunner

    runner = MigrationRunner(session, MongoRawDataSource())
    stats = await runner.migrate()

    print(f"Migrated {stats.successful_migrations} readings")
"""

from migration.base import RawDataSource
from migration.extractors import MongoRawDataSource
from migration.loaders import SensorReadingLoader
from migration.runner import MigrationRunner
from migration.scheduler import MigrationScheduler
from migration.transformers import CalibrationEngine

__all__ = [
    "RawDataSource",
    "MigrationRunner",
    "MigrationScheduler",
    "MongoRawDataSource",
    "CalibrationEngine",
    "SensorReadingLoader",
]
