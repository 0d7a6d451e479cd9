"""Errors raised by the object-store layer."""


class StoreError(Exception):
    """Base class for object-store failures."""


class StoreConnectionError(StoreError):
    """The MongoDB deployment could not be reached."""

    def __init__(self, detail: str):
        super().__init__(f"MongoDB connection error: {detail}")
        self.detail = detail


class StoredFileMissing(StoreError):
    """No GridFS file exists for the requested id."""

    def __init__(self, file_id):
        super().__init__(f"File not found for id {file_id}")
        self.file_id = file_id
