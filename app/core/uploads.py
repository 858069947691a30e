from __future__ import annotations

import os
import re
from typing import Optional

ALLOWED_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt")
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MiB

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def validate_upload(
    filename: str, size: int, *, max_bytes: int = MAX_FILE_SIZE
) -> Optional[str]:
    """
    Returns None when the file is acceptable, otherwise a human-readable reason.
    Shared by the API and the dashboard client so both sides agree.
    """
    if file_extension(filename) not in ALLOWED_EXTENSIONS:
        return f"Invalid file type. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"
    if size > max_bytes:
        return f"File too large. Maximum size: {round(max_bytes / (1024 * 1024))}MB"
    return None


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS.sub("_", filename)


def guess_content_type(filename: str) -> str:
    return {
        ".pdf": "application/pdf",
        ".txt": "text/plain",
        ".doc": "application/msword",
        ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }.get(file_extension(filename), "application/octet-stream")
