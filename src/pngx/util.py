from __future__ import annotations

from pathlib import PurePath
from typing import Optional


_MIME_EXTENSIONS = {
    "application/pdf": "pdf",
    "application/zip": "zip",
    "application/json": "json",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.oasis.opendocument.text": "odt",
    "message/rfc822": "eml",
    "text/plain": "txt",
    "text/csv": "csv",
    "text/html": "html",
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/tiff": "tiff",
    "image/gif": "gif",
    "image/webp": "webp",
}


def guess_extension(content_type: Optional[str]) -> str:
    if not content_type:
        return "bin"
    ct = content_type.split(";")[0].strip().lower()
    return _MIME_EXTENSIONS.get(ct, "bin")


def file_extension(file_name: Optional[str]) -> Optional[str]:
    """Lower-cased extension of ``file_name`` without the dot, if it has one."""
    if not file_name:
        return None
    suffix = PurePath(file_name).suffix
    if not suffix or suffix == ".":
        return None
    return suffix[1:].lower()
