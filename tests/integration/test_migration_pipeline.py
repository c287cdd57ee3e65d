"""
Integration tests for the complete migration pipeline
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy import select, func
from core.exceptions import SourceConnectionError, BatchPersistenceError
from migration.extractors.mongo_extractor import MongoRawDataSource
from migration.runner import MigrationRunner
from migration.scheduler import MigrationScheduler
from migration.sync_state import SyncStateStore
from models.sensor_reading import SensorReading, SensorReadingParameter
from models.station import ParameterType
from schemas.migration import MigrationConfig, SchedulerConfig
from tests.fakes import FakeRawDataSource, make_document


async def count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar()


@pytest.mark.asyncio
async def test_full_migration_pipeline_integration(db_session, station):
    """
    Integration test: Fetch → Calibrate → Load → Advance watermark
    """
    source = FakeRawDataSource([
        make_document("X1", 1700000000, temperatura=25.5, umidade=60.0),
    ])
    runner = MigrationRunner(db_session, source, MigrationConfig(sync_name="main_sync"))

    stats = await runner.migrate()

    assert stats.total_processed == 1
    assert stats.successful_migrations == 1
    assert stats.failed_migrations == 0
    assert stats.stations_matched == 1
    assert stats.stations_not_found == 0
    assert stats.last_sync_timestamp == 1700000000
    assert stats.duration is not None and stats.duration >= 0
    assert source.connect_calls == 1
    assert source.disconnect_calls == 1

    reading = (await db_session.execute(select(SensorReading))).scalar_one()
    assert reading.station_id == "station-x1"
    assert reading.source_id == "X1"
    assert reading.device_address == "AA:BB"
    assert reading.timestamp.replace(tzinfo=timezone.utc) == datetime.fromtimestamp(1700000000, tz=timezone.utc)
    assert reading.readings == {"temperatura": 25.5, "umidade": 60.0}

    links = (await db_session.execute(select(SensorReadingParameter))).scalars().all()
    assert {link.parameter_id for link in links} == {"param-temperature", "param-humidity"}

    assert await SyncStateStore(db_session).get_last_sync_timestamp("main_sync") == 1700000000


@pytest.mark.asyncio
async def test_polynomial_values_are_merged_into_readings(db_session, session_maker, station):
    async with session_maker() as session:
        parameter_type = await session.get(ParameterType, "type-temperature")
        parameter_type.calibration = {"temperatura": {"offset": -2, "factor": 1.1}}
        parameter_type.polynomial = "a0 + a1*temperatura"
        parameter_type.coefficients = [1, 2]
        await session.commit()

    source = FakeRawDataSource([make_document("doc-1", 100, temperatura=20, extra="raw")])

    await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    reading = (await db_session.execute(select(SensorReading))).scalar_one()
    # parameter value overwrites the calibrated value under the same name
    assert reading.readings["temperatura"] == pytest.approx(1 + 2 * 19.8)
    assert reading.readings["extra"] == "raw"


@pytest.mark.asyncio
async def test_second_run_is_idempotent(db_session, station):
    source = FakeRawDataSource([
        make_document("doc-1", 100, temperatura=20),
        make_document("doc-2", 200, temperatura=21),
    ])
    runner = MigrationRunner(db_session, source, MigrationConfig())

    first = await runner.migrate()
    second = await runner.migrate()

    assert first.successful_migrations == 2
    assert second.total_processed == 0
    assert second.successful_migrations == 0
    assert source.fetched_since == [0, 200]
    assert await count(db_session, SensorReading) == 2
    assert await SyncStateStore(db_session).get_last_sync_timestamp("main_sync") == 200


@pytest.mark.asyncio
async def test_resume_uses_exclusive_lower_bound(db_session, station):
    await SyncStateStore(db_session).advance_watermark("main_sync", 200)
    source = FakeRawDataSource([
        make_document("doc-1", 199, temperatura=1),
        make_document("doc-2", 200, temperatura=2),
        make_document("doc-3", 201, temperatura=3),
    ])

    stats = await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert stats.total_processed == 1
    source_ids = (await db_session.execute(select(SensorReading.source_id))).scalars().all()
    assert source_ids == ["doc-3"]


@pytest.mark.asyncio
async def test_empty_source_returns_zero_stats(db_session, station):
    source = FakeRawDataSource([])

    stats = await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert stats.total_processed == 0
    assert stats.successful_migrations == 0
    assert stats.last_sync_timestamp == 0
    assert await SyncStateStore(db_session).get_state("main_sync") is None
    assert source.disconnect_calls == 1


@pytest.mark.asyncio
async def test_unknown_device_is_counted_not_failed(db_session, station):
    source = FakeRawDataSource([
        make_document("doc-1", 100, temperatura=20),
        make_document("doc-2", 101, device_address="FF:FF", temperatura=20),
        make_document("doc-3", 102, device_address=None, temperatura=20),
    ])

    stats = await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert stats.total_processed == 3
    assert stats.successful_migrations == 1
    assert stats.stations_matched == 1
    assert stats.stations_not_found == 2
    assert stats.failed_migrations == 0
    assert stats.last_sync_timestamp == 102


@pytest.mark.asyncio
async def test_bad_record_does_not_abort_batch(db_session, station):
    source = FakeRawDataSource([
        make_document("doc-1", 100, temperatura=20),
        make_document("doc-2", 101, temperatura="broken"),
        make_document("doc-3", 102, temperatura=22),
    ])

    stats = await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert stats.successful_migrations == 2
    assert stats.failed_migrations == 1
    # Failed records do not hold the watermark back
    assert stats.last_sync_timestamp == 102
    assert await SyncStateStore(db_session).get_last_sync_timestamp("main_sync") == 102


@pytest.mark.asyncio
async def test_records_processed_in_batches(db_session, station):
    source = FakeRawDataSource([
        make_document(f"doc-{i}", 100 + i, temperatura=float(i)) for i in range(5)
    ])
    runner = MigrationRunner(db_session, source, MigrationConfig(batch_size=2))
    runner.loader.load = AsyncMock(side_effect=lambda items: len(items))

    stats = await runner.migrate()

    assert [len(call.args[0]) for call in runner.loader.load.call_args_list] == [2, 2, 1]
    assert stats.successful_migrations == 5


@pytest.mark.asyncio
async def test_batch_persistence_failure_counts_whole_batch(db_session, station):
    source = FakeRawDataSource([
        make_document(f"doc-{i}", 100 + i, temperatura=float(i)) for i in range(4)
    ])
    runner = MigrationRunner(db_session, source, MigrationConfig(batch_size=2))
    original_load = runner.loader.load
    calls = []

    async def failing_first_batch(items):
        calls.append(len(items))
        if len(calls) == 1:
            raise BatchPersistenceError("Failed to persist sensor reading batch")
        return await original_load(items)

    runner.loader.load = failing_first_batch

    stats = await runner.migrate()

    assert stats.failed_migrations == 2
    assert stats.successful_migrations == 2
    assert stats.last_sync_timestamp == 103
    assert await count(db_session, SensorReading) == 2


@pytest.mark.asyncio
async def test_connection_failure_propagates_without_watermark_change(db_session, station):
    await SyncStateStore(db_session).advance_watermark("main_sync", 50)
    source = FakeRawDataSource(
        [make_document("doc-1", 100, temperatura=20)],
        connect_error=SourceConnectionError("Failed to connect to MongoDB")
    )

    with pytest.raises(SourceConnectionError):
        await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert source.disconnect_calls == 1
    assert source.fetched_since == []
    assert await SyncStateStore(db_session).get_last_sync_timestamp("main_sync") == 50
    assert await count(db_session, SensorReading) == 0


@pytest.mark.asyncio
async def test_reset_restarts_from_zero(db_session, station):
    source = FakeRawDataSource([make_document("doc-1", 100, temperatura=20)])
    runner = MigrationRunner(db_session, source, MigrationConfig(sync_name="reset_sync"))
    await runner.migrate()

    assert (await runner.get_sync_status()).last_sync_timestamp == 100
    await runner.reset_sync_state()
    assert await runner.get_sync_status() is None

    await runner.migrate()
    assert source.fetched_since == [0, 0]


@pytest.mark.asyncio
async def test_scheduler_runs_migration_in_own_session(session_maker, station):
    source = FakeRawDataSource([make_document("doc-1", 100, temperatura=20)])
    scheduler = MigrationScheduler(
        session_maker=session_maker,
        source_factory=lambda: source,
        config=SchedulerConfig(enabled=False),
        migration_config=MigrationConfig(sync_name="scheduled")
    )

    stats = await scheduler.trigger_manual_migration()

    assert stats.successful_migrations == 1
    status = await scheduler.get_sync_status()
    assert status.name == "scheduled"
    assert status.last_sync_timestamp == 100

    async with session_maker() as session:
        assert await count(session, SensorReading) == 1


@pytest.mark.asyncio
async def test_malformed_mongo_document_is_counted_as_failed(db_session, station):
    documents = [
        {"_id": "doc-1", "uuid": "AA:BB", "unixtime": 100, "temperatura": 20},
        {"_id": "doc-2", "uuid": "AA:BB", "temperatura": 21},
        {"_id": "doc-3", "uuid": "AA:BB", "unixtime": 102, "temperatura": 22},
    ]
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=documents)
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.close = AsyncMock()
    client.__getitem__.return_value.__getitem__.return_value.find.return_value = cursor
    source = MongoRawDataSource(
        connection_string="mongodb://test:27017",
        database_name="dadosClima",
        collection_name="clima"
    )

    with patch("migration.extractors.mongo_extractor.AsyncMongoClient", return_value=client):
        stats = await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert stats.total_processed == 3
    assert stats.successful_migrations == 2
    assert stats.failed_migrations == 1
    assert stats.last_sync_timestamp == 102
    client.close.assert_awaited_once()
    source_ids = (await db_session.execute(select(SensorReading.source_id))).scalars().all()
    assert sorted(source_ids) == ["doc-1", "doc-3"]


@pytest.mark.asyncio
async def test_fractional_timestamp_is_not_migrated_twice(db_session, station):
    source = FakeRawDataSource([make_document("a", 100.5, temperatura=20)])
    runner = MigrationRunner(db_session, source, MigrationConfig())

    first = await runner.migrate()
    second = await runner.migrate()

    assert first.successful_migrations == 1
    assert first.last_sync_timestamp == 101
    assert second.total_processed == 0
    assert source.fetched_since == [0, 101]
    assert await count(db_session, SensorReading) == 1
    reading = (await db_session.execute(select(SensorReading))).scalar_one()
    assert reading.timestamp.replace(tzinfo=timezone.utc) == datetime.fromtimestamp(100.5, tz=timezone.utc)


@pytest.mark.asyncio
async def test_run_without_parsable_timestamps_keeps_watermark(db_session, station):
    await SyncStateStore(db_session).advance_watermark("main_sync", 50)
    source = FakeRawDataSource()
    source.fetch_since = AsyncMock(return_value=[{"_id": "doc-1", "unixtime": "later"}])

    stats = await MigrationRunner(db_session, source, MigrationConfig()).migrate()

    assert stats.failed_migrations == 1
    assert stats.last_sync_timestamp == 50
    assert await SyncStateStore(db_session).get_last_sync_timestamp("main_sync") == 50
