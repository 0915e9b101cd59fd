from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import IoFailure, UnsafeFilename
from .models import Document, DocumentVersion
from .util import file_extension, guess_extension

logger = logging.getLogger(__name__)

_SAFE = re.compile(r"[^a-zA-Z0-9._-]+")
_SAFE_EXT = re.compile(r"[^a-z0-9]+")

# archived renditions are always PDF/A
ARCHIVE_EXTENSION = "pdf"


def safe_filename(name: str, max_len: int = 120) -> str:
    cleaned = _SAFE.sub("_", name).strip("._-")
    if not cleaned:
        raise UnsafeFilename(f"nothing left of {name!r} after sanitization")
    return cleaned[:max_len]


def _extension(document: Document, version: DocumentVersion) -> str:
    if version is DocumentVersion.ARCHIVED:
        return ARCHIVE_EXTENSION
    ext = file_extension(document.original_file_name) or guess_extension(document.mime_type)
    return _SAFE_EXT.sub("", ext.lower()) or "bin"


def name_for(document: Document, version: DocumentVersion = DocumentVersion.ARCHIVED) -> str:
    """File name for a downloaded document: ``<id>_<title>.<ext>``.

    The ID prefix keeps names distinct within a batch even when titles collide.
    A title that sanitizes to nothing falls back to ``<id>.<ext>``.
    """
    ext = _extension(document, version)
    title = document.title or Path(document.original_file_name or "").stem
    try:
        stem = f"{document.id}_{safe_filename(title)}"
    except UnsafeFilename as e:
        logger.warning("document %s: %s; using its ID as file name", document.id, e)
        stem = str(document.id)
    return f"{stem}.{ext}"


class FilesystemExporter:
    """Writes downloaded documents into one target directory."""

    def __init__(self, out_dir: Path):
        self.out_dir = out_dir

    def target_for(
        self,
        document: Document,
        version: DocumentVersion,
        explicit_path: Optional[Path] = None,
    ) -> Path:
        if explicit_path is not None:
            return explicit_path
        return self.out_dir / name_for(document, version)

    def open_binary_for_write(self, path: Path) -> BinaryIO:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return path.open("wb")
        except OSError as e:
            raise IoFailure(f"failed to create file {path}: {e}") from e
