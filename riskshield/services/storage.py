"""Local filesystem storage for uploaded certificates.

Files are stored under ``UPLOAD_DIR/{company_id}/{document_id}.{ext}``; the
relative key is what ``coc_documents.file_url`` holds.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from riskshield.core.config import settings
from riskshield.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]")


def _root() -> Path:
    return Path(settings.upload_dir).resolve()


def _resolve(key: str) -> Path:
    path = (_root() / key).resolve()
    if _root() not in path.parents:
        raise NotFoundError("File", key)
    return path


def save(company_id: str, document_id: str, extension: str, contents: bytes) -> str:
    key = f"{company_id}/{document_id}.{extension}"
    path = _resolve(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(contents)
    logger.info("Stored %d bytes at %s", len(contents), key)
    return key


def read(key: str) -> bytes:
    path = _resolve(key)
    if not path.is_file():
        raise NotFoundError("File", key)
    return path.read_bytes()


def path_for(key: str) -> Path:
    path = _resolve(key)
    if not path.is_file():
        raise NotFoundError("File", key)
    return path


def safe_filename(name: str | None, fallback: str = "certificate") -> str:
    """Strip path components and header-breaking characters from a client file name."""
    base = Path(name or "").name
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base).strip(" .")
    return cleaned or fallback
