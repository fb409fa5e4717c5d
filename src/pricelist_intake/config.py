"""Static scan configuration — sheet allow-list, labels, country table, limits."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta
from types import MappingProxyType

# ── Price list layout ────────────────────────────────────────────

ALLOWED_SHEETS: tuple[str, ...] = ("(1)", "(2)", "(3)", "(4)")

# Guards clients with little memory against runaway sheets.
MAX_ROWS_SAFE = 20000

# Column B holds the country label; it is never detected.
COUNTRY_COLUMN = 1

NAME_LABELS: tuple[str, ...] = ("품명", "제품명")
PRICE_LABELS: tuple[str, ...] = ("단가", "가격")

COUNTRY_CODES: Mapping[str, str] = MappingProxyType(
    {
        "브라질": "BR",
        "콜롬비아": "CO",
        "에티오피아": "ET",
        "과테말라": "GT",
        "인도네시아": "ID",
        "인도": "IN",
        "케냐": "KE",
        "엘살바도르": "SV",
        "온두라스": "HN",
        "자메이카": "JM",
        "탄자니아": "TN",
        "디카페인": "[디카페인]",
        "베트남": "VN",
        "코스타리카": "CR",
        "니카라과": "NI",
        "멕시코": "MX",
        "페루": "PE",
        "파푸아뉴기니": "PG",
        "예멘": "YE",
        "르완다": "RW",
        "우간다": "UG",
        "파나마": "PA",
        "하와이": "US",
    }
)

# ── Upload limits ────────────────────────────────────────────────

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xls")
# Mobile file pickers often report spreadsheets as octet-stream.
ALLOWED_CONTENT_TYPES: tuple[str, ...] = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "application/octet-stream",
)

SNAPSHOT_TTL = timedelta(days=31)


@dataclass(frozen=True)
class ScanConfig:
    """Everything the scanner and upload guard need to know about the layout."""

    allowed_sheets: tuple[str, ...] = ALLOWED_SHEETS
    max_rows: int = MAX_ROWS_SAFE
    country_column: int = COUNTRY_COLUMN
    name_labels: tuple[str, ...] = NAME_LABELS
    price_labels: tuple[str, ...] = PRICE_LABELS
    country_codes: Mapping[str, str] = field(default_factory=lambda: COUNTRY_CODES)
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    allowed_extensions: tuple[str, ...] = ALLOWED_EXTENSIONS
    allowed_content_types: tuple[str, ...] = ALLOWED_CONTENT_TYPES

    def __post_init__(self) -> None:
        if self.max_rows < 1:
            raise ValueError("max_rows must be >= 1")
        if self.country_column < 0:
            raise ValueError("country_column must be >= 0")
        if not self.name_labels or not self.price_labels:
            raise ValueError("name_labels and price_labels must not be empty")

    def with_country_aliases(self, aliases: Mapping[str, str]) -> ScanConfig:
        """Return a copy whose country table also maps *aliases* (``{name: code}``)."""
        if not aliases:
            return self
        merged = {**self.country_codes, **aliases}
        return replace(self, country_codes=MappingProxyType(merged))


DEFAULT_CONFIG = ScanConfig()
