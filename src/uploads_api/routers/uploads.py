from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from typing import Callable
import logging

from database.image_store import ImageStore
from uploads_api.adapters.pdf_converter import PdfConverterClient
from uploads_api.config.settings import Settings
from uploads_api.dependencies import get_app_settings, get_converter_factory, get_image_store
from uploads_api.errors import get_request_id
from uploads_api.schemas import ErrorResponse, UploadResponse
from uploads_api.services import UploadService

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_FORM_SCHEMA = {
    "requestBody": {
        "required": True,
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "required": ["userId", "file"],
                    "properties": {
                        "userId": {"type": "string", "description": "Identifier of the uploading user"},
                        "file": {
                            "type": "string",
                            "format": "binary",
                            "description": "Image (jpeg, png, gif, webp) or PDF",
                        },
                    },
                }
            }
        },
    }
}


@router.post(
    "/upload-image",
    status_code=status.HTTP_201_CREATED,
    response_model=UploadResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_415_UNSUPPORTED_MEDIA_TYPE: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    openapi_extra=UPLOAD_FORM_SCHEMA,
)
async def upload_image(
    request: Request,
    store: ImageStore = Depends(get_image_store),
    converter_factory: Callable[[], PdfConverterClient] = Depends(get_converter_factory),
    settings: Settings = Depends(get_app_settings),
):
    """
    Upload an image or a PDF for a user.

    Images are stored as-is. PDFs are sent to the conversion service and one
    entry per rendered page is returned.

    Returns:
        JSONResponse: 201 with the list of stored files
    """
    req_id = get_request_id(request)
    logger.info(f"(Req ID: {req_id}) API route /api/upload-image hit. Method: {request.method}")

    service = UploadService(
        store=store,
        scratch_dir=settings.scratch_dir,
        converter_factory=converter_factory,
        include_tracebacks=settings.is_development,
    )
    results = await service.handle(request, req_id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=[result.to_response() for result in results],
    )
