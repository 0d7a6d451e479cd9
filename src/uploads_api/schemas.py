####################################
# --- Request/response schemas --- #
####################################

from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

SUPPORTED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]
SUPPORTED_PDF_TYPE = "application/pdf"
CONVERTED_PAGE_CONTENT_TYPE = "image/png"


class UploadResult(BaseModel):
    """One stored file produced by `POST /api/upload-image`."""
    original_name: str = Field(alias="originalName", description="Name of the file as uploaded")
    file_id: str = Field(alias="fileId", description="Store id of the stored file")
    filename: str = Field(description="Stored file name")
    content_type: str = Field(alias="contentType", description="Content type of the stored file")
    page_number: Optional[int] = Field(
        None,
        alias="pageNumber",
        description="Page of the source PDF (PDF uploads only)",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "originalName": "report.pdf",
                "fileId": "665f1c2ab1e4f2a9c8d7e6f5",
                "filename": "uid123_report_page_1.png",
                "contentType": "image/png",
                "pageNumber": 1,
            }
        },
    )

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""
    message: str
    error_key: Optional[str] = Field(None, alias="errorKey")
    req_id: Optional[str] = Field(None, alias="reqId")
    error: Optional[str] = Field(None, description="Underlying error detail")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    """Response model for `DELETE /api/images/:fileId`."""
    message: str


UploadResponse = List[UploadResult]
