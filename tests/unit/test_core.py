"""
Unit tests for logging and database helpers
"""

import logging
import pytest
from unittest.mock import AsyncMock
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool
from core.database import check_connection, create_tables
from core.logging import ContextFormatter


def make_record(**extra):
    record = logging.LogRecord(
        name="migration.runner",
        level=logging.ERROR,
        pathname=__file__,
        lineno=1,
        msg="Error processing record doc-2",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFormatter:
    """Test error context rendering"""

    def test_appends_error_context(self):
        formatter = ContextFormatter("%(levelname)s %(message)s")
        record = make_record(error_context={"phase": "transform", "source_id": "doc-2"})

        assert formatter.format(record) == (
            "ERROR Error processing record doc-2 | phase=transform source_id=doc-2"
        )

    def test_plain_record_is_unchanged(self):
        formatter = ContextFormatter("%(levelname)s %(message)s")

        assert formatter.format(make_record()) == "ERROR Error processing record doc-2"


class TestDatabaseHelpers:
    """Test schema creation and connectivity checks"""

    @pytest.mark.asyncio
    async def test_check_connection_succeeds(self, db_session):
        assert await check_connection(db_session) is True

    @pytest.mark.asyncio
    async def test_check_connection_reports_failure(self):
        session = AsyncMock()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))

        assert await check_connection(session) is False

    @pytest.mark.asyncio
    async def test_create_tables_on_empty_database(self, tmp_path):
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}",
            poolclass=NullPool,
        )
        try:
            table_names = await create_tables(engine)

            async with engine.connect() as conn:
                existing = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        finally:
            await engine.dispose()

        assert "sensor_readings" in table_names
        assert sorted(existing) == table_names
