"""Workbook scanner — header detection and sticky-country row walk.

Pure functions of ``(workbook, config)``: nothing here touches the filesystem,
and malformed rows are skipped without being reported one by one.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache, partial
from itertools import accumulate, islice
from typing import Any

import structlog

from pricelist_intake.config import DEFAULT_CONFIG, ScanConfig
from pricelist_intake.errors import EmptyWorkbookError, NoValidItemsError, SheetTooLargeError
from pricelist_intake.models import PriceItem, ScanReport, Workbook
from pricelist_intake.normalize import normalize_country, parse_price, sanitize_text

logger = structlog.get_logger(__name__)

Row = Sequence[Any]


# ── Header detection ─────────────────────────────────────────────


class LabelKind(Enum):
    """Column labels recognised in a header row."""

    NAME = "name"
    PRICE = "price"

    def labels(self, config: ScanConfig) -> tuple[str, ...]:
        if self is LabelKind.NAME:
            return config.name_labels
        return config.price_labels


@lru_cache(maxsize=32)
def _label_pattern(labels: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("|".join(re.escape(label) for label in labels))


def find_label_column(
    row: Row, kind: LabelKind, config: ScanConfig = DEFAULT_CONFIG
) -> int | None:
    """Return the index of the first text cell containing a *kind* label."""
    pattern = _label_pattern(kind.labels(config))
    for idx, cell in enumerate(row):
        if isinstance(cell, str) and pattern.search(cell):
            return idx
    return None


@dataclass(frozen=True)
class HeaderColumns:
    """Column positions taken from one valid header row."""

    row: int
    name: int
    price: int
    country: int


def detect_headers(
    rows: Sequence[Row], config: ScanConfig = DEFAULT_CONFIG
) -> Iterator[HeaderColumns]:
    """Yield every valid header row, top to bottom.

    A row naming the product column but no price column is not a header.
    """
    for idx, row in enumerate(rows):
        name_col = find_label_column(row, LabelKind.NAME, config)
        if name_col is None:
            continue
        price_col = find_label_column(row, LabelKind.PRICE, config)
        if price_col is None:
            logger.debug("incomplete_header_skipped", row=idx)
            continue
        yield HeaderColumns(
            row=idx, name=name_col, price=price_col, country=config.country_column
        )


# ── Row walk ─────────────────────────────────────────────────────


def _cell(row: Row, idx: int) -> Any:
    return row[idx] if 0 <= idx < len(row) else None


def _carry_country(current: str, row: Row, *, column: int, config: ScanConfig) -> str:
    raw = _cell(row, column)
    if isinstance(raw, str):
        country = normalize_country(raw, config.country_codes)
        if country:
            return country
    return current


def _row_item(row: Row, country: str, header: HeaderColumns, sheet: str) -> PriceItem | None:
    name = sanitize_text(_cell(row, header.name))
    if not name or not country:
        return None
    price = parse_price(_cell(row, header.price))
    if price is None:
        return None
    return PriceItem(country=country, name=name, price=price, price_group=sheet)


def walk_rows(
    rows: Sequence[Row], header: HeaderColumns, sheet: str, config: ScanConfig = DEFAULT_CONFIG
) -> list[PriceItem]:
    """Collect items from every row below *header* to the end of the sheet.

    The current country is folded forward row by row and only replaced by a
    non-empty normalised country cell; later header rows do not clear it.
    """
    body = rows[header.row + 1:]
    step = partial(_carry_country, column=header.country, config=config)
    countries = islice(accumulate(body, step, initial=""), 1, None)
    items: list[PriceItem] = []
    for row, country in zip(body, countries):
        item = _row_item(row, country, header, sheet)
        if item is not None:
            items.append(item)
    return items


# ── Sheets / workbook ────────────────────────────────────────────


def scan_sheet(
    name: str, rows: Sequence[Row], config: ScanConfig = DEFAULT_CONFIG
) -> list[PriceItem]:
    """Scan one permitted sheet.  An empty result is not an error here."""
    if len(rows) > config.max_rows:
        logger.warning("sheet_too_large", sheet=name, rows=len(rows), limit=config.max_rows)
        raise SheetTooLargeError(name, len(rows))

    items: list[PriceItem] = []
    for header in detect_headers(rows, config):
        items.extend(walk_rows(rows, header, name, config))
    logger.debug("sheet_scanned", sheet=name, rows=len(rows), items=len(items))
    return items


def scan_workbook(workbook: Workbook, config: ScanConfig = DEFAULT_CONFIG) -> list[PriceItem]:
    """Turn a decoded workbook into a flat list of validated price items.

    Raises
    ------
    EmptyWorkbookError
        If *workbook* has no sheets.
    SheetTooLargeError
        If any permitted sheet has more than ``config.max_rows`` rows.
    NoValidItemsError
        If no permitted sheet produced a single valid row.
    """
    if not workbook:
        raise EmptyWorkbookError()

    collected: list[PriceItem] = []
    for name, rows in workbook.items():
        if name not in config.allowed_sheets:
            logger.debug("sheet_ignored", sheet=name)
            continue
        collected.extend(scan_sheet(name, rows, config))

    if not collected:
        raise NoValidItemsError()
    logger.info("workbook_scanned", sheets=len(workbook), items=len(collected))
    return collected


def build_scan_report(
    workbook: Workbook, items: Sequence[PriceItem], config: ScanConfig = DEFAULT_CONFIG
) -> ScanReport:
    """Summarise a finished scan without any per-row detail."""
    scanned = [name for name in workbook if name in config.allowed_sheets]
    ignored = [name for name in workbook if name not in config.allowed_sheets]
    by_group = Counter(item.price_group for item in items)
    return ScanReport(
        sheets_total=len(workbook),
        sheets_scanned=scanned,
        sheets_ignored=ignored,
        items_out=len(items),
        items_by_group=dict(by_group),
    )
