"""
In-memory raw data source and document builders for tests
"""

from typing import List
from migration.base import RawDataSource
from schemas.raw import RawDocument, timestamp_or_none


class FakeRawDataSource(RawDataSource):
    """In-memory raw source honouring the exclusive lower bound and ascending order"""

    def __init__(self, documents: List[RawDocument] = None, connect_error: Exception = None):
        self.documents = list(documents or [])
        self.connect_error = connect_error
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.fetched_since: List[int] = []

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error

    async def disconnect(self) -> None:
        self.disconnect_calls += 1

    async def fetch_since(self, timestamp: int) -> List[RawDocument]:
        # Like a $gt query, documents without a numeric unixtime never match
        self.fetched_since.append(timestamp)
        matching = [
            d for d in self.documents
            if timestamp_or_none(d) is not None and timestamp_or_none(d) > timestamp
        ]
        return sorted(matching, key=timestamp_or_none)

    async def fetch_all(self) -> List[RawDocument]:
        return list(self.documents)

    async def fetch_by_device(self, device_address: str) -> List[RawDocument]:
        return [d for d in self.documents if d.get("uuid") == device_address]


def make_document(external_id: str, unix_timestamp, device_address: str = "AA:BB", **values) -> RawDocument:
    document = {"_id": external_id, "unixtime": unix_timestamp}
    if device_address is not None:
        document["uuid"] = device_address
    document.update(values)
    return document
