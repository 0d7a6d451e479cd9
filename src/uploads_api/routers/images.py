from fastapi import APIRouter, Depends, Path, Request, Response, status
from fastapi.responses import StreamingResponse
import logging

from database.exceptions import StoreConnectionError, StoreError, StoredFileMissing
from database.image_store import ImageStore, is_valid_file_id, iter_chunks
from database.schemas import StoredFileRecord
from uploads_api.config.settings import Settings
from uploads_api.dependencies import get_app_settings, get_image_store, get_owner_id
from uploads_api.errors import (
    InvalidFileIdError,
    OwnershipMismatchError,
    StoredFileNotFoundError,
    UploadsApiError,
    get_request_id,
)
from uploads_api.schemas import ErrorResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()

FILE_ID_DESCRIPTION = "Store id of the file (24-character hex ObjectId)"


def _store_failure(message: str, exc: Exception) -> UploadsApiError:
    if isinstance(exc, StoreConnectionError):
        message = "Database connection error."
    return UploadsApiError(message, extra={"error": str(exc)})


def _cache_headers(record: StoredFileRecord, settings: Settings) -> dict:
    return {
        "Content-Length": str(record.length),
        "Cache-Control": f"public, max-age={settings.image_cache_max_age}, immutable",
    }


def _lookup_image(store: ImageStore, file_id: str, req_id: str) -> StoredFileRecord:
    if not is_valid_file_id(file_id):
        logger.warning(f"(Req ID: {req_id}) Invalid or missing fileId: {file_id}")
        raise InvalidFileIdError("Invalid or missing fileId.")
    try:
        store.connect()
        record = store.find_file(file_id)
    except StoreError as e:
        logger.error(f"(Req ID: {req_id}) Error looking up image {file_id}: {e}")
        raise _store_failure("Error serving image.", e) from e
    if record is None:
        logger.info(f"(Req ID: {req_id}) Image not found: {file_id}")
        raise StoredFileNotFoundError("Image not found.")
    return record


@router.get(
    "/images/{file_id}",
    response_class=StreamingResponse,
    responses={
        status.HTTP_200_OK: {"description": "The stored bytes", "content": {"application/octet-stream": {}}},
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
def get_image(
    request: Request,
    file_id: str = Path(..., description=FILE_ID_DESCRIPTION),
    store: ImageStore = Depends(get_image_store),
    settings: Settings = Depends(get_app_settings),
):
    """
    Stream a stored image.

    The body is sent in store-chunk-sized blocks; the whole file is never
    held in memory.
    """
    req_id = get_request_id(request)
    record = _lookup_image(store, file_id, req_id)
    try:
        download_stream = store.open_download_stream(file_id)
    except StoredFileMissing as e:
        raise StoredFileNotFoundError("Image not found.") from e
    except StoreError as e:
        logger.error(f"(Req ID: {req_id}) Error opening image stream {file_id}: {e}")
        raise _store_failure("Error serving image.", e) from e

    logger.info(f"(Req ID: {req_id}) Serving image {file_id} ({record.content_type}, {record.length} bytes)")
    return StreamingResponse(
        iter_chunks(download_stream),
        media_type=record.content_type,
        headers=_cache_headers(record, settings),
    )


@router.head("/images/{file_id}", include_in_schema=False)
def head_image(
    request: Request,
    file_id: str = Path(..., description=FILE_ID_DESCRIPTION),
    store: ImageStore = Depends(get_image_store),
    settings: Settings = Depends(get_app_settings),
):
    """Headers of `GET /images/{fileId}` without the body."""
    req_id = get_request_id(request)
    record = _lookup_image(store, file_id, req_id)
    headers = _cache_headers(record, settings)
    headers["Content-Type"] = record.content_type
    return Response(status_code=status.HTTP_200_OK, headers=headers)


@router.delete(
    "/images/{file_id}",
    response_model=MessageResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
        status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
def delete_image(
    request: Request,
    file_id: str = Path(..., description=FILE_ID_DESCRIPTION),
    owner_id: str = Depends(get_owner_id),
    store: ImageStore = Depends(get_image_store),
) -> MessageResponse:
    """
    Delete a stored image on behalf of its owner.

    Args:
        file_id: Store id of the image
        owner_id: Identity of the caller, resolved from `userId` or an ID token

    Returns:
        MessageResponse: Deletion confirmation
    """
    req_id = get_request_id(request)
    if not is_valid_file_id(file_id):
        logger.warning(f"(Req ID: {req_id}) Invalid fileId for delete: {file_id}")
        raise InvalidFileIdError("Invalid fileId.")

    try:
        store.connect()
        record = store.find_file(file_id)
        if record is None:
            logger.info(f"(Req ID: {req_id}) File not found for delete: {file_id}")
            raise StoredFileNotFoundError("File not found.")

        if record.owner_id != owner_id:
            logger.warning(
                f"(Req ID: {req_id}) User {owner_id} attempted to delete file {file_id} owned by {record.owner_id}"
            )
            raise OwnershipMismatchError("Unauthorized: You do not have permission to delete this file.")

        store.delete(file_id)
    except StoredFileMissing as e:
        raise StoredFileNotFoundError("File not found.") from e
    except StoreError as e:
        logger.error(f"(Req ID: {req_id}) Error deleting image {file_id}: {e}")
        raise _store_failure("Error deleting image.", e) from e

    logger.info(f"(Req ID: {req_id}) File {file_id} deleted by owner {owner_id}")
    return MessageResponse(message="File deleted successfully.")
