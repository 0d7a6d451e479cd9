"""HTTP client for the external PDF-to-images conversion service."""
import json
import logging
from typing import Any, List, Optional

import requests

from uploads_api.errors import ConverterNotConfiguredError, PdfConversionError
from uploads_api.schemas import (
    CONVERTED_PAGE_CONTENT_TYPE,
    SUPPORTED_PDF_TYPE,
    UploadResult,
)
from uploads_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

CONVERT_PATH = "/api/convert-pdf-to-images"
ERROR_BODY_PREVIEW_CHARS = 200


class PdfConverterClient:
    """Forwards PDFs to the conversion service and relays its per-page results."""

    def __init__(self, base_url: str, timeout: float = 120.0,
                 session: Optional[requests.Session] = None):
        """Initialize the client.

        Args:
            base_url: Conversion service base URL, without trailing slash
            timeout: Request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def convert_url(self) -> str:
        return f"{self.base_url}{CONVERT_PATH}"

    @log_execution_time(logger_name=__name__)
    def convert(self, pdf_path: str, user_id: str, original_name: str,
                req_id: str = "-") -> List[UploadResult]:
        """Send a PDF for conversion and return one result per converted page.

        Raises:
            PdfConversionError: the service was unreachable, answered with an
                error status, or returned an unexpected body.
        """
        logger.info(f"(Req ID: {req_id}) Sending PDF '{original_name}' for conversion. Target: {self.convert_url}")
        try:
            payload = self._post_pdf(pdf_path, user_id, original_name, req_id)
            results = self._parse_converted_files(payload, original_name)
        except requests.ConnectionError as e:
            message = (
                f"Failed PDF processing for '{original_name}'. The server could not connect to the "
                f"conversion service at {self.convert_url}. Please ensure the conversion service is "
                f"running, accessible, and the URL is correct. Original error: {e}"
            )
            logger.error(f"(Req ID: {req_id}) {message}")
            raise PdfConversionError(message) from e
        except (requests.RequestException, OSError, ValueError) as e:
            message = (
                f"Failed PDF processing for '{original_name}'. Error during communication with "
                f"or processing by the conversion service: {e}"
            )
            logger.error(f"(Req ID: {req_id}) {message}")
            raise PdfConversionError(message) from e

        logger.info(f"(Req ID: {req_id}) PDF converted. {len(results)} page(s) processed for '{original_name}'.")
        return results

    def _post_pdf(self, pdf_path: str, user_id: str, original_name: str, req_id: str) -> Any:
        with open(pdf_path, "rb") as pdf_file:
            response = self.session.post(
                self.convert_url,
                files={"pdf_file": (original_name, pdf_file, SUPPORTED_PDF_TYPE)},
                data={"userId": user_id, "originalName": original_name},
                timeout=self.timeout,
            )

        body = response.text
        logger.info(
            f"(Req ID: {req_id}) Conversion response. Status: {response.status_code}. "
            f"Body preview: {body[:ERROR_BODY_PREVIEW_CHARS]}"
        )
        if not response.ok:
            raise ValueError(self._describe_failure(response.status_code, body, original_name))
        return json.loads(body)

    @staticmethod
    def _describe_failure(status_code: int, body: str, original_name: str) -> str:
        message = f"Conversion server failed to process PDF '{original_name}'. Status: {status_code}."
        try:
            parsed = json.loads(body)
        except ValueError:
            if len(body) < ERROR_BODY_PREVIEW_CHARS:
                message += f" Response: {body}"
            return message
        if isinstance(parsed, dict) and parsed.get("error"):
            return str(parsed["error"])
        return message

    @staticmethod
    def _parse_converted_files(payload: Any, original_name: str) -> List[UploadResult]:
        converted = payload.get("converted_files") if isinstance(payload, dict) else None
        if not isinstance(converted, list):
            raise ValueError(
                f"Conversion server (for PDF '{original_name}') did not return expected \"converted_files\" array."
            )
        results = []
        for index, entry in enumerate(converted):
            if not isinstance(entry, dict) or not entry.get("fileId"):
                raise ValueError(
                    f"Conversion server (for PDF '{original_name}') returned a malformed "
                    f"\"converted_files\" entry at index {index}: {entry!r}"
                )
            results.append(UploadResult(
                original_name=entry.get("originalName") or original_name,
                file_id=str(entry["fileId"]),
                filename=entry.get("filename") or "",
                content_type=CONVERTED_PAGE_CONTENT_TYPE,
                page_number=entry.get("pageNumber"),
            ))
        return results


def get_pdf_converter(settings) -> PdfConverterClient:
    """Build a converter client from settings."""
    if not settings.pdf_converter_url:
        logger.error("Configuration error: PDF_CONVERTER_URL is not set")
        raise ConverterNotConfiguredError(
            "Server configuration error: PDF conversion service URL not set."
        )
    return PdfConverterClient(settings.pdf_converter_url, timeout=settings.pdf_converter_timeout)
