"""
FastAPI dependencies
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from migration.scheduler import MigrationScheduler


async def get_db() -> AsyncIterator[AsyncSession]:
    """Database session per request"""
    async for session in get_session():
        yield session


def get_scheduler(request: Request) -> MigrationScheduler:
    return request.app.state.scheduler
