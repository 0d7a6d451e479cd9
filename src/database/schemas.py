"""
Models for records kept in the GridFS bucket.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StoredFileRecord(BaseModel):
    """Metadata of a file stored in the GridFS bucket."""
    file_id: str = Field(description="Store-assigned ObjectId as a 24-character hex string")
    filename: str = Field(description="Stored display name")
    content_type: str = Field(default=DEFAULT_CONTENT_TYPE, description="Declared content type")
    length: int = Field(ge=0, description="Size of the file in bytes")
    owner_id: Optional[str] = Field(None, description="Identifier of the uploading user")
    upload_date: Optional[datetime] = Field(None, description="When the store finished the write")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Raw metadata document")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "file_id": "665f1c2ab1e4f2a9c8d7e6f5",
                "filename": "uid123_1717500000000_cat.png",
                "content_type": "image/png",
                "length": 48213,
                "owner_id": "uid123",
                "upload_date": "2024-06-04T12:00:00Z",
                "metadata": {"originalName": "cat.png", "userId": "uid123"},
            }
        }
    )

    @classmethod
    def from_files_document(cls, document: Dict[str, Any]) -> "StoredFileRecord":
        """Build a record from a raw ``<bucket>.files`` document."""
        metadata = dict(document.get("metadata") or {})
        content_type = (
            metadata.get("contentType")
            or document.get("contentType")
            or DEFAULT_CONTENT_TYPE
        )
        return cls(
            file_id=str(document["_id"]),
            filename=document.get("filename") or "",
            content_type=content_type,
            length=document.get("length", 0),
            owner_id=metadata.get("userId"),
            upload_date=document.get("uploadDate"),
            metadata=metadata,
        )
