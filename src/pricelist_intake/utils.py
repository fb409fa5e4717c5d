"""Shared helpers — hashing, timestamps, file-date labels."""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from pathlib import Path

_FILE_DATE_RE = re.compile(r"(20\d{2})(\d{2})")


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return utcnow().isoformat()


def file_date_label(filename: str) -> str:
    """Label a price list by the ``YYYYMM`` run in its file name.

    ``"단가표_202403.xlsx"`` becomes ``"2024년 03월 단가표"``; names without
    such a run are returned verbatim.
    """
    match = _FILE_DATE_RE.search(filename)
    if not match:
        return filename
    return f"{match.group(1)}년 {match.group(2)}월 단가표"
