"""
Upload handling: scratch copies, content-type routing and cleanup.

Images are streamed into the GridFS bucket; PDFs are forwarded to the
conversion service, which stores the rendered pages itself and reports
them back. Every scratch file written for a request is removed before the
request finishes, whatever the outcome.
"""

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Dict, List, Optional

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from database.exceptions import StoreError
from uploads_api.adapters.pdf_converter import PdfConverterClient
from uploads_api.errors import (
    DatabaseConnectionError,
    FormParsingError,
    ImageStoreError,
    MissingUserIdError,
    NoFileUploadedError,
    UnsupportedFileTypeError,
    UploadsApiError,
)
from uploads_api.schemas import (
    SUPPORTED_IMAGE_TYPES,
    SUPPORTED_PDF_TYPE,
    UploadResult,
)
from uploads_api.utils.files import remove_files, safe_filename

logger = logging.getLogger(__name__)

USER_ID_FIELD = "userId"
FILE_FIELD = "file"
SCRATCH_COPY_CHUNK_SIZE = 1024 * 1024
UNKNOWN_FILENAME = "unknown_file"


@dataclass
class ScratchFile:
    """An uploaded file part copied to local disk."""
    path: str
    original_filename: Optional[str]
    content_type: Optional[str]
    size: int


@dataclass
class ParsedForm:
    fields: Dict[str, List[str]]
    files: Dict[str, ScratchFile]

    def first_field(self, name: str) -> Optional[str]:
        values = self.fields.get(name) or []
        return values[0] if values else None


def _now_millis() -> int:
    return int(time.time() * 1000)


def _copy_to_path(source: BinaryIO, path: str) -> int:
    """Copy a readable binary stream to ``path``; returns the number of bytes written."""
    size = 0
    with open(path, "wb") as out:
        while True:
            chunk = source.read(SCRATCH_COPY_CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)
            size += len(chunk)
    return size


class UploadService:
    """Handles one `POST /api/upload-image` request."""

    def __init__(self, store, scratch_dir: str,
                 converter_factory: Callable[[], PdfConverterClient],
                 include_tracebacks: bool = False):
        self.store = store
        self.scratch_dir = scratch_dir
        self.converter_factory = converter_factory
        self.include_tracebacks = include_tracebacks

    async def handle(self, request: Request, req_id: str) -> List[UploadResult]:
        """Store or convert the uploaded file and describe what was stored.

        Raises:
            UploadsApiError: client errors keep their own status (400/415);
                every other failure surfaces as a 500 carrying ``reqId``.
        """
        scratch_paths: List[str] = []
        try:
            await self._connect_store(req_id)
            form = await self.parse_form(request, req_id, scratch_paths)

            user_id = form.first_field(USER_ID_FIELD)
            if not user_id:
                logger.warning(f"(Req ID: {req_id}) Missing userId. Fields: {list(form.fields)}")
                raise MissingUserIdError("Missing userId in form data.")

            upload = form.files.get(FILE_FIELD)
            if upload is None or not upload.path:
                logger.warning(f"(Req ID: {req_id}) No file uploaded in '{FILE_FIELD}' field or filepath missing.")
                raise NoFileUploadedError("No file uploaded or file path missing.")

            original_name = upload.original_filename or UNKNOWN_FILENAME
            file_type = upload.content_type
            logger.info(
                f"(Req ID: {req_id}) Processing file: {original_name}, Type: {file_type}, "
                f"Size: {upload.size} bytes, Temp path: {upload.path}"
            )

            if file_type == SUPPORTED_PDF_TYPE:
                results = await self._convert_pdf(upload, user_id, original_name, req_id)
            elif file_type in SUPPORTED_IMAGE_TYPES:
                results = [await self._store_image(upload, user_id, original_name, req_id)]
            else:
                logger.warning(
                    f"(Req ID: {req_id}) Unsupported file type: {file_type} for file {original_name}. "
                    "Only image files and PDFs are supported."
                )
                raise UnsupportedFileTypeError(
                    f"Unsupported file type: {file_type}. Please upload a supported image or PDF file."
                )

            logger.info(f"(Req ID: {req_id}) Successfully processed file(s). Results count: {len(results)}.")
            return results
        except Exception as e:
            api_error = self._to_api_error(e, req_id)
            if api_error is e:
                raise
            raise api_error from e
        finally:
            remove_files(scratch_paths, req_id)

    async def _connect_store(self, req_id: str) -> None:
        try:
            await run_in_threadpool(self.store.connect)
        except StoreError as e:
            logger.error(f"(Req ID: {req_id}) DB connection error: {e}")
            raise DatabaseConnectionError(str(e)) from e
        logger.info(f"(Req ID: {req_id}) DB connected, GridFS bucket obtained.")

    async def parse_form(self, request: Request, req_id: str,
                         scratch_paths: List[str]) -> ParsedForm:
        """Read the multipart body, copying every file part to the scratch directory.

        Paths are appended to ``scratch_paths`` before anything is written so the
        caller can clean up after a partial failure.
        """
        try:
            form = await request.form()
            fields: Dict[str, List[str]] = {}
            files: Dict[str, ScratchFile] = {}
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    files[key] = await self._write_scratch_copy(value, req_id, scratch_paths)
                else:
                    fields.setdefault(key, []).append(value)
        except Exception as e:
            logger.error(f"(Req ID: {req_id}) Form parsing error: {type(e).__name__}: {e}")
            raise FormParsingError(f"Failed to parse form data: {e}") from e

        logger.info(
            f"(Req ID: {req_id}) Form data parsed. Fields: {list(fields)}, File keys: {list(files)}"
        )
        return ParsedForm(fields=fields, files=files)

    async def _write_scratch_copy(self, upload: UploadFile, req_id: str,
                                  scratch_paths: List[str]) -> ScratchFile:
        original_name = upload.filename or UNKNOWN_FILENAME
        scratch_name = f"upload_{req_id}_{_now_millis()}_{len(scratch_paths)}_{safe_filename(original_name)}"
        path = os.path.join(self.scratch_dir, scratch_name)
        scratch_paths.append(path)

        try:
            await upload.seek(0)
            size = await run_in_threadpool(_copy_to_path, upload.file, path)
        except OSError as e:
            logger.error(f"(Req ID: {req_id}) Error writing file '{original_name}' to temp: {e}")
            raise FormParsingError(f"Failed to write temporary file {original_name}: {e}") from e
        finally:
            await upload.close()

        logger.info(f"(Req ID: {req_id}) File '{original_name}' saved to temp path '{path}'.")
        return ScratchFile(
            path=path,
            original_filename=upload.filename,
            content_type=upload.content_type,
            size=size,
        )

    async def _store_image(self, upload: ScratchFile, user_id: str,
                           original_name: str, req_id: str) -> UploadResult:
        image_filename = f"{user_id}_{_now_millis()}_{safe_filename(original_name)}"
        metadata = {
            "originalName": original_name,
            "userId": user_id,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
            "sourceContentType": upload.content_type,
            "explicitContentType": upload.content_type,
            "contentType": upload.content_type,
            "reqIdParent": req_id,
        }
        logger.info(
            f"(Req ID: {req_id}) Supported image file type ({upload.content_type}) detected. "
            f"Uploading to GridFS as '{image_filename}'."
        )
        try:
            file_id = await run_in_threadpool(
                self.store.upload_from_path, upload.path, image_filename, metadata
            )
        except StoreError as e:
            logger.error(f"(Req ID: {req_id}) Error during image upload for '{original_name}': {e}")
            raise ImageStoreError(f"Failed during image processing for '{original_name}': {e}") from e

        return UploadResult(
            original_name=original_name,
            file_id=str(file_id),
            filename=image_filename,
            content_type=upload.content_type,
        )

    async def _convert_pdf(self, upload: ScratchFile, user_id: str,
                           original_name: str, req_id: str) -> List[UploadResult]:
        converter = self.converter_factory()
        logger.info(f"(Req ID: {req_id}) PDF file detected. Sending '{original_name}' to {converter.convert_url}")
        return await run_in_threadpool(converter.convert, upload.path, user_id, original_name, req_id)

    def _to_api_error(self, exc: Exception, req_id: str) -> UploadsApiError:
        """Client errors pass through; everything else becomes a 500 tagged with the request id."""
        if isinstance(exc, UploadsApiError) and exc.status_code < 500:
            return exc

        logger.error(f"(Req ID: {req_id}) Upload failed. Name: {type(exc).__name__}, Message: {exc}")
        if self.include_tracebacks:
            logger.error(f"(Req ID: {req_id}) Full error stack:", exc_info=exc)

        if isinstance(exc, UploadsApiError) and exc.error_key:
            exc.extra.setdefault("reqId", req_id)
            return exc
        return UploadsApiError(
            f"Server Error: {getattr(exc, 'message', None) or exc}",
            error_key=type(exc).__name__,
            extra={"reqId": req_id},
        )
