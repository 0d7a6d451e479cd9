"""
Error types and FastAPI handlers for the Uploads API.

Every business error is an ``UploadsApiError`` carrying its HTTP status code;
the handlers below turn them (and anything unexpected) into JSON bodies with
a ``message`` field.
"""

import logging
import secrets
from typing import Any, Dict, Optional

import pydantic
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class UploadsApiError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_key: Optional[str] = None

    def __init__(self, message: str, *, error_key: Optional[str] = None,
                 status_code: Optional[int] = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if error_key is not None:
            self.error_key = error_key
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.message}
        if self.error_key:
            payload["errorKey"] = self.error_key
        payload.update(self.extra)
        return payload


class MissingUserIdError(UploadsApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_key = "MISSING_USER_ID"


class NoFileUploadedError(UploadsApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_key = "NO_FILE_UPLOADED"


class UnsupportedFileTypeError(UploadsApiError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    error_key = "UNSUPPORTED_FILE_TYPE"


class InvalidFileIdError(UploadsApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class StoredFileNotFoundError(UploadsApiError):
    status_code = status.HTTP_404_NOT_FOUND


class MissingOwnerError(UploadsApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class OwnershipMismatchError(UploadsApiError):
    status_code = status.HTTP_403_FORBIDDEN


class ConverterNotConfiguredError(UploadsApiError):
    error_key = "CONVERTER_URL_MISSING"


class PdfConversionError(UploadsApiError):
    pass


class ImageStoreError(UploadsApiError):
    pass


class DatabaseConnectionError(UploadsApiError):
    pass


class FormParsingError(UploadsApiError):
    pass


def new_request_id() -> str:
    return secrets.token_hex(4)


def get_request_id(request: Request) -> str:
    """Return the correlation id assigned to this request, creating one if needed."""
    req_id = getattr(request.state, "req_id", None)
    if not req_id:
        req_id = new_request_id()
        request.state.req_id = req_id
    return req_id


async def assign_request_id(request: Request, call_next):
    """Attach a short correlation id to the request and echo it in the response."""
    req_id = get_request_id(request)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = req_id
    return response


async def handle_uploads_api_error(request: Request, exc: UploadsApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Request validation failed.",
            "errors": [
                {
                    "msg": error["msg"],
                    "loc": [str(part) for part in error.get("loc", ())],
                }
                for error in errors
            ],
        },
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as e:
        req_id = get_request_id(request)
        logger.exception(f"Unhandled error (Req ID: {req_id}) on {request.method} {request.url.path}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error", "reqId": req_id},
        )
