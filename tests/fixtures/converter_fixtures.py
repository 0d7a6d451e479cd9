"""Stub for the PDF conversion service client."""
import os
from typing import Dict, List, Optional

from uploads_api.errors import PdfConversionError
from uploads_api.schemas import CONVERTED_PAGE_CONTENT_TYPE, UploadResult

TEST_CONVERTER_URL = "http://converter.test"


def make_pages(original_name: str, count: int) -> List[UploadResult]:
    stem = original_name.rsplit(".", 1)[0]
    return [
        UploadResult(
            original_name=original_name,
            file_id=f"{page:024x}",
            filename=f"{stem}_page_{page}.png",
            content_type=CONVERTED_PAGE_CONTENT_TYPE,
            page_number=page,
        )
        for page in range(1, count + 1)
    ]


class StubPdfConverter:
    """Records every conversion request; returns ``page_count`` pages or raises ``error``."""

    def __init__(self, page_count: int = 2, error: Optional[str] = None):
        self.page_count = page_count
        self.error = error
        self.calls: List[Dict] = []
        self.convert_url = f"{TEST_CONVERTER_URL}/api/convert-pdf-to-images"

    def convert(self, pdf_path: str, user_id: str, original_name: str,
                req_id: str = "-") -> List[UploadResult]:
        with open(pdf_path, "rb") as pdf_file:
            data = pdf_file.read()
        self.calls.append({
            "pdf_path": pdf_path,
            "path_existed": os.path.exists(pdf_path),
            "data": data,
            "user_id": user_id,
            "original_name": original_name,
            "req_id": req_id,
        })
        if self.error:
            raise PdfConversionError(f"Failed PDF processing for '{original_name}'. {self.error}")
        return make_pages(original_name, self.page_count)
