"""
Abstract base class for raw time-series data sources
"""

from abc import ABC, abstractmethod
from typing import List

from schemas.raw import RawDocument


class RawDataSource(ABC):
    """
    Abstract base class for the schema-less source of raw readings.

    Responsibilities:
    - Explicit connect/disconnect around each migration run
    - Incremental fetch by unix timestamp (exclusive lower bound, oldest first)
    - Diagnostic scans outside the migration path

    Documents are returned as stored. Converting them to RawReading is left to
    the caller so one malformed document only fails itself.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Failures are fatal for the run."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the connection. Safe to call when not connected."""
        pass

    @abstractmethod
    async def fetch_since(self, timestamp: int) -> List[RawDocument]:
        """
        Fetch documents newer than a watermark.

        Args:
            timestamp: Last synced unix timestamp (seconds)

        Returns:
            Documents with unixtime > timestamp, oldest first
        """
        pass

    @abstractmethod
    async def fetch_all(self) -> List[RawDocument]:
        pass

    @abstractmethod
    async def fetch_by_device(self, device_address: str) -> List[RawDocument]:
        pass
