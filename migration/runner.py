# ============================================================================
# File: migration/runner.py
# Description: Incremental raw-to-relational sensor migration orchestrator
# ============================================================================
"""
Migration Runner - Orchestrates fetch, calibrate, load and watermark advance.

This module provides the incremental migration pipeline with:
- Resumable sync via a persisted watermark (exclusive lower bound)
- Partial failure support (a bad record never aborts its batch or the run)
- Batch-level persistence with create-then-link ordering
- Detailed run statistics
"""

from typing import Dict, List, Optional
from datetime import datetime, timezone
import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import BatchPersistenceError
from migration.base import RawDataSource
from migration.directory import StationDirectory
from migration.loaders.reading_loader import SensorReadingLoader
from migration.sync_state import SyncStateStore
from migration.transformers.calibration import CalibrationEngine
from schemas.migration import MigrationConfig, MigrationRunStats, SyncStatus
from schemas.normalized import ParameterTypeConfig, SensorReadingCreate
from schemas.raw import RawDocument, RawReading, ID_FIELD, DEVICE_FIELD, timestamp_or_none

logger = logging.getLogger(__name__)


class MigrationRunner:
    """
    Sensor data migration orchestrator.

    Responsibilities:
    - Determine the resume point from the sync watermark
    - Match raw readings to stations by device address
    - Calibrate readings and derive parameter values
    - Persist normalized readings batch by batch
    - Advance the watermark and report run statistics
    """

    def __init__(
        self,
        db_session: AsyncSession,
        source: RawDataSource,
        config: Optional[MigrationConfig] = None,
        calibration: Optional[CalibrationEngine] = None
    ):
        self.db = db_session
        self.source = source
        self.config = config or MigrationConfig.from_settings()
        self.calibration = calibration or CalibrationEngine()
        self.sync_state = SyncStateStore(db_session)
        self.directory = StationDirectory(db_session)
        self.loader = SensorReadingLoader(db_session)

    async def migrate(self) -> MigrationRunStats:
        """
        Run one incremental migration.

        Pipeline phases:
        1. Connect to the raw source and read the watermark
        2. Fetch readings newer than the watermark, oldest first
        3. Calibrate and persist them in batches
        4. Advance the watermark to the newest fetched timestamp

        Returns:
            MigrationRunStats for this run. Record-level failures and
            unmatched stations are reported in the stats, not raised.

        Raises:
            SourceConnectionError: If the raw source is unreachable
            MigrationException: For other failures outside record processing
        """
        stats = MigrationRunStats(start_time=datetime.utcnow())

        try:
            logger.info(f"Starting sensor data migration ({self.config.sync_name})")

            await self.source.connect()

            last_sync_timestamp = await self.sync_state.get_last_sync_timestamp(
                self.config.sync_name
            )
            logger.info(
                "Last sync was at: "
                f"{datetime.fromtimestamp(last_sync_timestamp, tz=timezone.utc).isoformat()}"
            )

            documents = await self.source.fetch_since(last_sync_timestamp)
            stats.total_processed = len(documents)

            if not documents:
                logger.info("No new data to migrate")
                return self._finalize(stats)

            station_mappings = await self.directory.map_device_addresses_to_station_ids()

            await self._process_batches(documents, station_mappings, stats)

            # Failed records do not hold the watermark back
            timestamps = [
                timestamp for timestamp in map(timestamp_or_none, documents)
                if timestamp is not None
            ]
            if not timestamps:
                logger.warning("No fetched document had a usable timestamp, watermark unchanged")
                stats.last_sync_timestamp = last_sync_timestamp
                return self._finalize(stats)

            # Rounded up so fractional timestamps are not fetched again
            latest_timestamp = math.ceil(max(timestamps))
            await self.sync_state.advance_watermark(self.config.sync_name, latest_timestamp)
            stats.last_sync_timestamp = latest_timestamp

            return self._finalize(stats)

        except Exception as e:
            logger.error(f"Migration failed: {str(e)}")
            raise

        finally:
            await self.source.disconnect()

    async def _process_batches(
        self,
        documents: List[RawDocument],
        station_mappings: Dict[str, str],
        stats: MigrationRunStats
    ) -> None:
        batch_size = self.config.batch_size
        total_batches = (len(documents) + batch_size - 1) // batch_size

        for start in range(0, len(documents), batch_size):
            batch = documents[start:start + batch_size]
            logger.info(f"Processing batch {start // batch_size + 1}/{total_batches}")
            await self._process_batch(batch, station_mappings, stats)

    async def _process_batch(
        self,
        batch: List[RawDocument],
        station_mappings: Dict[str, str],
        stats: MigrationRunStats
    ) -> None:
        sensor_readings: List[SensorReadingCreate] = []

        for document in batch:
            phase = "transform"
            try:
                record = RawReading.from_document(document)
                phase = "calibration"
                sensor_reading = await self._process_record(record, station_mappings, stats)
                if sensor_reading is not None:
                    sensor_readings.append(sensor_reading)

            except Exception as e:
                stats.failed_migrations += 1
                source_id = document.get(ID_FIELD)
                error_detail = {
                    "phase": phase,
                    "source_id": str(source_id) if source_id is not None else None,
                    "device_address": document.get(DEVICE_FIELD),
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
                logger.error(
                    f"Error processing record {source_id}: {str(e)}",
                    extra={"error_context": error_detail}
                )
                if isinstance(e, SQLAlchemyError):
                    await self.db.rollback()

        if not sensor_readings:
            return

        try:
            written = await self.loader.load(sensor_readings)
            stats.successful_migrations += written

        except BatchPersistenceError as e:
            stats.failed_migrations += len(sensor_readings)
            logger.error(
                f"Batch write failed, {len(sensor_readings)} readings not migrated",
                extra={"error_context": e.to_dict()}
            )

    async def _process_record(
        self,
        record: RawReading,
        station_mappings: Dict[str, str],
        stats: MigrationRunStats
    ) -> Optional[SensorReadingCreate]:
        """Build the normalized reading for one raw record, or None when no station matches."""
        station_id = None
        if record.device_address is not None:
            station_id = station_mappings.get(record.device_address)

        if station_id is None:
            logger.warning(f"No station found for device address: {record.device_address}")
            stats.stations_not_found += 1
            return None

        stats.stations_matched += 1

        parameters = await self.directory.parameters_for_station(station_id)
        raw_values = dict(record.values)

        parameter_types = [
            ParameterTypeConfig.model_validate(parameter.parameter_type)
            for parameter in parameters
        ]
        result = self.calibration.process(parameter_types, raw_values)

        readings = {
            **raw_values,
            **result.calibrated_readings,
            **result.parameter_values,
        }

        return SensorReadingCreate(
            station_id=station_id,
            timestamp=datetime.fromtimestamp(record.unix_timestamp, tz=timezone.utc),
            source_id=record.external_id,
            device_address=record.device_address,
            readings=readings,
            parameter_ids=[parameter.id for parameter in parameters],
        )

    def _finalize(self, stats: MigrationRunStats) -> MigrationRunStats:
        stats.end_time = datetime.utcnow()
        stats.duration = int((stats.end_time - stats.start_time).total_seconds() * 1000)

        logger.info(
            "Migration completed: "
            f"total_processed={stats.total_processed}, "
            f"successful={stats.successful_migrations}, "
            f"failed={stats.failed_migrations}, "
            f"stations_matched={stats.stations_matched}, "
            f"stations_not_found={stats.stations_not_found}, "
            f"duration={stats.duration}ms, "
            f"last_sync_timestamp={stats.last_sync_timestamp}"
        )
        return stats

    async def reset_sync_state(self) -> None:
        await self.sync_state.reset(self.config.sync_name)

    async def get_sync_status(self) -> Optional[SyncStatus]:
        return await self.sync_state.get_status(self.config.sync_name)
