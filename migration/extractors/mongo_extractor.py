"""
MongoDB raw data source for schema-less sensor documents.

Documents look like::

    {"_id": ObjectId(...), "uuid": "24:6F:28:AE:52:7C", "unixtime": 1640995200,
     "temperatura": 25.5, "umidade": 60.0, ...}

Every field other than ``_id``, ``uuid`` and ``unixtime`` is a sensor channel.
"""

from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime, timezone
import logging

from pymongo import AsyncMongoClient, ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from core.config import settings
from core.exceptions import SourceConnectionError, SourceQueryError
from migration.base import RawDataSource
from schemas.raw import RawDocument, ID_FIELD, TIMESTAMP_FIELD, DEVICE_FIELD, timestamp_or_none

logger = logging.getLogger(__name__)


class MongoRawDataSource(RawDataSource):
    """
    Read raw sensor documents from a MongoDB collection.
    
    The client is created in connect() and closed in disconnect(); every
    query method requires an open connection.
    """
    
    def __init__(
        self,
        connection_string: Optional[str] = None,
        database_name: Optional[str] = None,
        collection_name: Optional[str] = None,
        timeout_ms: Optional[int] = None
    ):
        self.connection_string = connection_string or settings.MONGO_CONNECTION_STRING
        self.database_name = database_name or settings.MONGO_DATABASE
        self.collection_name = collection_name or settings.MONGO_COLLECTION
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.MONGO_TIMEOUT_MS
        
        self.client: Optional[AsyncMongoClient] = None
        self.db = None
        self.collection = None
    
    @property
    def is_connected(self) -> bool:
        return self.collection is not None
    
    async def connect(self) -> None:
        """Connect and ping the server so unreachable sources fail fast."""
        logger.info(f"Connecting to MongoDB database {self.database_name}...")
        client_options: Dict[str, Any] = {}
        if self.timeout_ms:
            client_options["serverSelectionTimeoutMS"] = self.timeout_ms
        
        client = AsyncMongoClient(self.connection_string, **client_options)
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            await client.close()
            raise SourceConnectionError(
                "Failed to connect to MongoDB",
                context={
                    "database": self.database_name,
                    "collection": self.collection_name
                },
                original_exception=e
            )
        
        self.client = client
        self.db = client[self.database_name]
        self.collection = self.db[self.collection_name]
        logger.info("Successfully connected to MongoDB")
    
    async def disconnect(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            self.db = None
            self.collection = None
            logger.info("Disconnected from MongoDB")
    
    def _require_collection(self, operation: str):
        if self.collection is None:
            raise SourceQueryError(
                "Not connected to MongoDB. Call connect() first.",
                context={"operation": operation, "collection": self.collection_name}
            )
        return self.collection
    
    async def _find(
        self,
        operation: str,
        query: Mapping[str, Any],
        sort_direction: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[RawDocument]:
        collection = self._require_collection(operation)
        try:
            cursor = collection.find(query)
            if sort_direction is not None:
                cursor = cursor.sort(TIMESTAMP_FIELD, sort_direction)
            if limit is not None:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list()
        except PyMongoError as e:
            raise SourceQueryError(
                f"MongoDB query failed during {operation}",
                context={"operation": operation, "collection": self.collection_name},
                original_exception=e
            )
        return documents
    
    async def fetch_since(self, timestamp: int) -> List[RawDocument]:
        logger.info(
            f"Fetching data since timestamp: {timestamp} "
            f"({datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()})"
        )
        documents = await self._find(
            "fetch_since",
            {TIMESTAMP_FIELD: {"$gt": timestamp}},
            sort_direction=ASCENDING
        )
        logger.info(f"Found {len(documents)} new documents since last sync")
        return documents
    
    async def fetch_all(self) -> List[RawDocument]:
        documents = await self._find("fetch_all", {})
        logger.info(f"Found {len(documents)} documents in MongoDB collection")
        return documents
    
    async def fetch_recent(self, limit: int = 10) -> List[RawDocument]:
        """Most recent documents first"""
        return await self._find("fetch_recent", {}, sort_direction=DESCENDING, limit=limit)
    
    async def fetch_by_device(self, device_address: str) -> List[RawDocument]:
        documents = await self._find("fetch_by_device", {DEVICE_FIELD: device_address})
        logger.info(f"Found {len(documents)} documents for device {device_address}")
        return documents
    
    async def list_collections(self) -> List[str]:
        if self.db is None:
            self._require_collection("list_collections")
        return await self.db.list_collection_names()
    
    async def list_databases(self) -> List[str]:
        if self.client is None:
            self._require_collection("list_databases")
        return await self.client.list_database_names()
    
    @staticmethod
    def log_sample(documents: List[RawDocument], sample_size: int = 3) -> None:
        """Log a few documents for manual inspection"""
        for index, document in enumerate(documents[:sample_size], start=1):
            timestamp = timestamp_or_none(document)
            logger.info(
                f"Document {index}: id={document.get(ID_FIELD)} "
                f"device={document.get(DEVICE_FIELD)} "
                f"time={datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat() if timestamp is not None else 'invalid'} "
                f"fields={sorted(document.keys())}"
            )
