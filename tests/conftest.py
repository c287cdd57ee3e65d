"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from models.base import Base
from models.station import Station, ParameterType, Parameter
from typing import AsyncGenerator


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a file-backed SQLite engine per test"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def station(session_maker):
    """Station X1 with temperature and humidity parameters"""
    station = Station(id="station-x1", name="X1", device_address="AA:BB")
    temperature = ParameterType(
        id="type-temperature",
        name="temperatura",
        metric="C",
        calibration={"temperatura": {"offset": 0, "factor": 1}},
        polynomial=None,
        coefficients=[],
    )
    humidity = ParameterType(
        id="type-humidity",
        name="umidade",
        metric="%",
        calibration={"umidade": {"offset": 0, "factor": 1}},
        polynomial=None,
        coefficients=[],
    )
    async with session_maker() as session:
        session.add_all([
            station,
            temperature,
            humidity,
            Parameter(id="param-temperature", station_id=station.id, parameter_type_id=temperature.id),
            Parameter(id="param-humidity", station_id=station.id, parameter_type_id=humidity.id),
        ])
        await session.commit()
    return station
