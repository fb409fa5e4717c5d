"""I/O helpers — check uploads, decode workbooks, read/write JSON artifacts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd
import structlog

from pricelist_intake.config import DEFAULT_CONFIG, ScanConfig
from pricelist_intake.errors import DecodeFailureError, FileTooLargeError, InvalidFileTypeError

logger = structlog.get_logger(__name__)

_EXCEL_ENGINES: dict[str, str] = {
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
    ".xls": "xlrd",
}

# ── Upload checks ────────────────────────────────────────────────


def check_upload(
    path: Path,
    *,
    content_type: str | None = None,
    config: ScanConfig = DEFAULT_CONFIG,
) -> None:
    """Reject files that are missing, not spreadsheets, or too large.

    A file passes the type check if *either* its content type or its
    extension is allow-listed.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    InvalidFileTypeError
        If neither the content type nor the extension is allowed.
    FileTooLargeError
        If the file is larger than ``config.max_upload_bytes``.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    type_ok = content_type in config.allowed_content_types
    suffix_ok = path.suffix.lower() in config.allowed_extensions
    if not (type_ok or suffix_ok):
        raise InvalidFileTypeError(path.name)

    size = path.stat().st_size
    if size > config.max_upload_bytes:
        raise FileTooLargeError(size, config.max_upload_bytes)


# ── Decoding ─────────────────────────────────────────────────────


def _frame_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    grid = df.astype(object).where(df.notna(), "")
    return cast(list[list[Any]], grid.values.tolist())


def read_workbook(path: Path) -> dict[str, list[list[Any]]]:
    """Decode every sheet of *path* into ``{sheet name: rows of raw cells}``.

    Blank cells become ``""``; text and numbers keep their spreadsheet types.
    Any failure of the underlying decoder surfaces as ``DecodeFailureError``.
    """
    path = Path(path)
    engine = _EXCEL_ENGINES.get(path.suffix.lower(), "openpyxl")
    read_excel = cast(Callable[..., dict[str, pd.DataFrame]], getattr(pd, "read_excel"))
    try:
        frames = read_excel(
            path,
            sheet_name=None,
            header=None,
            dtype=object,
            engine=engine,
            keep_default_na=False,
        )
    except Exception as exc:
        logger.error("workbook_read_failed", path=str(path), engine=engine, error=str(exc))
        raise DecodeFailureError(path.name) from exc

    workbook = {str(name): _frame_to_rows(df) for name, df in frames.items()}
    logger.debug("workbook_read", path=str(path), sheets=list(workbook))
    return workbook


# ── JSON artifacts ───────────────────────────────────────────────


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path


def read_json(path: Path) -> Any:
    """Load a JSON artifact written by :func:`write_json`.

    Raises ``ValueError`` if the file is not valid JSON.
    """
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Not a valid JSON file: {path}") from exc
