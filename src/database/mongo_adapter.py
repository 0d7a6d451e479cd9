"""
MongoDB adapter for the GridFS image bucket.
Owns the client connection and hands out the bucket and its files collection.
"""

import logging
import threading
from typing import Optional

from gridfs import GridFSBucket
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


class MongoAdapter:
    """MongoDB adapter exposing a GridFS bucket"""

    def __init__(self, connection_string: str, database_name: str,
                 bucket_name: str = "images", timeout_ms: int = 5000):
        if not connection_string:
            raise ValueError("MongoDB connection string required. Set MONGODB_URI environment variable or pass connection_string")

        self.connection_string = connection_string
        self.database_name = database_name
        self.bucket_name = bucket_name
        self.timeout_ms = timeout_ms

        self.client: Optional[MongoClient] = None
        self._db: Optional[Database] = None
        self._bucket: Optional[GridFSBucket] = None
        self._lock = threading.Lock()

    @property
    def connection_key(self) -> tuple:
        return (self.connection_string, self.database_name, self.bucket_name, self.timeout_ms)

    def connect(self) -> "MongoAdapter":
        """Establish the MongoDB connection once; later calls are no-ops"""
        with self._lock:
            if self._bucket is not None:
                return self
            try:
                client = MongoClient(
                    self.connection_string,
                    serverSelectionTimeoutMS=self.timeout_ms,
                )
                # Test connection
                client.admin.command('ping')
            except PyMongoError as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise StoreConnectionError(str(e)) from e

            self.client = client
            self._db = client[self.database_name]
            self._bucket = GridFSBucket(self._db, bucket_name=self.bucket_name)
            logger.info(f"Connected to MongoDB database: {self.database_name}, GridFS bucket: {self.bucket_name}")
            return self

    @property
    def db(self) -> Database:
        self.connect()
        return self._db

    @property
    def bucket(self) -> GridFSBucket:
        self.connect()
        return self._bucket

    @property
    def files_collection(self) -> Collection:
        """The ``<bucket>.files`` collection holding per-file metadata"""
        return self.db[f"{self.bucket_name}.files"]

    def ping(self) -> bool:
        """Return True when the deployment answers a ping"""
        try:
            self.db.client.admin.command('ping')
            return True
        except (PyMongoError, StoreConnectionError) as e:
            logger.warning(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        """Close the MongoDB connection"""
        with self._lock:
            if self.client is not None:
                self.client.close()
                logger.info("MongoDB connection closed")
            self.client = None
            self._db = None
            self._bucket = None


# Global adapter instance
_mongo_adapter: Optional[MongoAdapter] = None
_adapter_lock = threading.Lock()

def get_mongo_adapter(settings) -> MongoAdapter:
    """Get or create the process-wide adapter for the given settings"""
    global _mongo_adapter
    adapter = MongoAdapter(
        connection_string=settings.mongodb_uri,
        database_name=settings.mongodb_database,
        bucket_name=settings.gridfs_bucket_name,
        timeout_ms=settings.mongodb_timeout_ms,
    )
    with _adapter_lock:
        if _mongo_adapter is None or _mongo_adapter.connection_key != adapter.connection_key:
            if _mongo_adapter is not None:
                _mongo_adapter.close()
            _mongo_adapter = adapter
        return _mongo_adapter

def close_mongo_adapter() -> None:
    """Close and forget the process-wide adapter"""
    global _mongo_adapter
    with _adapter_lock:
        if _mongo_adapter is not None:
            _mongo_adapter.close()
        _mongo_adapter = None
