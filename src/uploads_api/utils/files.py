"""Helpers for naming and cleaning up files on local disk."""
import logging
import os
import re
from typing import Iterable

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


def safe_filename(name: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9_.-]`` with an underscore."""
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def remove_files(paths: Iterable[str], req_id: str) -> None:
    """Best-effort removal of scratch files; each failure is logged and skipped."""
    for path in paths:
        try:
            if os.path.exists(path):
                os.remove(path)
                logger.info(f"(Req ID: {req_id}) Temporary file deleted: {path}")
        except OSError as e:
            logger.error(f"(Req ID: {req_id}) Cleanup error deleting temp file {path}: {e}")
