"""
GridFS-backed store for uploaded images.

Files are streamed into the bucket from a local path and streamed back out
in chunk-sized blocks; metadata lives in the ``<bucket>.files`` collection.
"""

import logging
from typing import Any, Dict, Iterator, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile
from pymongo.errors import PyMongoError

from .exceptions import StoreError, StoredFileMissing
from .mongo_adapter import MongoAdapter
from .schemas import StoredFileRecord

logger = logging.getLogger(__name__)

DEFAULT_STREAM_CHUNK_SIZE = 255 * 1024  # GridFS default chunk size

FileId = Union[str, ObjectId]


def is_valid_file_id(value: Optional[str]) -> bool:
    """Check a string against the store id format (24-character hex ObjectId)."""
    if not value or not isinstance(value, str) or len(value) != 24:
        return False
    return ObjectId.is_valid(value)


def to_object_id(file_id: FileId) -> ObjectId:
    if isinstance(file_id, ObjectId):
        return file_id
    if not is_valid_file_id(file_id):
        raise ValueError(f"Invalid file id: {file_id!r}")
    try:
        return ObjectId(file_id)
    except (InvalidId, TypeError) as e:
        raise ValueError(f"Invalid file id: {file_id!r}") from e


def iter_chunks(grid_out, chunk_size: Optional[int] = None) -> Iterator[bytes]:
    """Yield the contents of an open download stream, closing it afterwards."""
    size = chunk_size or getattr(grid_out, "chunk_size", None) or DEFAULT_STREAM_CHUNK_SIZE
    try:
        while True:
            data = grid_out.read(size)
            if not data:
                break
            yield data
    except PyMongoError as e:
        logger.error(f"GridFS stream error for file {getattr(grid_out, '_id', '?')}: {e}")
        raise StoreError(f"GridFS stream error: {e}") from e
    finally:
        grid_out.close()


class ImageStore:
    """Read/write/delete operations on the GridFS image bucket"""

    def __init__(self, adapter: MongoAdapter):
        self.adapter = adapter

    def connect(self) -> None:
        """Open the underlying connection; raises StoreConnectionError when unreachable."""
        self.adapter.connect()

    def upload_from_path(self, path: str, filename: str, metadata: Dict[str, Any]) -> ObjectId:
        """Stream a local file into the bucket and return the new file id.

        Raises:
            StoreError: the local file could not be read or the store write failed.
        """
        bucket = self.adapter.bucket
        try:
            with open(path, "rb") as source:
                file_id = bucket.upload_from_stream(filename, source, metadata=metadata)
        except OSError as e:
            logger.error(f"Error reading temp file {path} for {filename}: {e}")
            raise StoreError(f"Error reading temporary file: {e}") from e
        except PyMongoError as e:
            logger.error(f"GridFS upload error for {filename}: {e}")
            raise StoreError(f"GridFS upload error: {e}") from e

        logger.info(f"GridFS upload finished for {filename}, ID: {file_id}")
        return file_id

    def find_file(self, file_id: FileId) -> Optional[StoredFileRecord]:
        """Look up the metadata of a stored file; None when absent."""
        object_id = to_object_id(file_id)
        try:
            document = self.adapter.files_collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error(f"GridFS metadata lookup failed for {object_id}: {e}")
            raise StoreError(f"GridFS lookup error: {e}") from e
        if document is None:
            return None
        return StoredFileRecord.from_files_document(document)

    def open_download_stream(self, file_id: FileId):
        """Open a download stream for a stored file.

        Raises:
            StoredFileMissing: no file exists with this id.
        """
        object_id = to_object_id(file_id)
        try:
            return self.adapter.bucket.open_download_stream(object_id)
        except NoFile as e:
            raise StoredFileMissing(file_id) from e
        except PyMongoError as e:
            raise StoreError(f"GridFS download error: {e}") from e

    def delete(self, file_id: FileId) -> None:
        """Delete a stored file's chunks and metadata.

        Raises:
            StoredFileMissing: no file exists with this id.
        """
        object_id = to_object_id(file_id)
        try:
            self.adapter.bucket.delete(object_id)
        except NoFile as e:
            raise StoredFileMissing(file_id) from e
        except PyMongoError as e:
            raise StoreError(f"GridFS delete error: {e}") from e
        logger.info(f"GridFS file {object_id} deleted")
