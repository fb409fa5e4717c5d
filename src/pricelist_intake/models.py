"""Data models used across the package."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from numbers import Integral, Real
from typing import Any

from pricelist_intake.config import SNAPSHOT_TTL

# Sheet name -> rows -> raw cell values, as produced by the workbook decoder.
Workbook = Mapping[str, Sequence[Sequence[Any]]]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_non_empty_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    if not value:
        raise ValueError(f"{field_name} must not be empty")
    return value


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _json_number(value: float) -> int | float:
    return int(value) if value.is_integer() else value


@dataclass(frozen=True)
class PriceItem:
    """One purchasable product at one price-list version."""

    country: str
    name: str
    price: float
    price_group: str

    def __post_init__(self) -> None:
        _to_non_empty_str(self.country, "country")
        _to_non_empty_str(self.name, "name")
        _to_non_empty_str(self.price_group, "price_group")
        if isinstance(self.price, bool) or not isinstance(self.price, Real):
            raise TypeError("price must be a number")
        price = float(self.price)
        if not math.isfinite(price) or price <= 0:
            raise ValueError("price must be a finite number > 0")
        object.__setattr__(self, "price", price)

    def to_dict(self) -> dict[str, Any]:
        return {
            "country": self.country,
            "name": self.name,
            "price": _json_number(self.price),
            "priceGroup": self.price_group,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PriceItem:
        return cls(
            country=data["country"],
            name=data["name"],
            price=data["price"],
            price_group=data["priceGroup"],
        )


@dataclass
class PriceListSnapshot:
    """The unit handed to the rest of the application after an upload.

    Serialized as ``{"savedAt": <epoch ms>, "itemsAll": [...], "fileDate": ...}``.
    """

    items: list[PriceItem]
    file_date: str
    saved_at: datetime

    def __post_init__(self) -> None:
        self.items = list(self.items)
        for item in self.items:
            if not isinstance(item, PriceItem):
                raise TypeError("items must be PriceItem instances")
        if not isinstance(self.file_date, str):
            raise TypeError("file_date must be a string")
        if self.saved_at.tzinfo is None:
            raise ValueError("saved_at must be timezone-aware")

    def is_stale(self, now: datetime, ttl: timedelta = SNAPSHOT_TTL) -> bool:
        return now - self.saved_at >= ttl

    def to_dict(self) -> dict[str, Any]:
        return {
            "savedAt": int(self.saved_at.timestamp() * 1000),
            "itemsAll": [item.to_dict() for item in self.items],
            "fileDate": self.file_date,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PriceListSnapshot:
        saved_at_ms = data["savedAt"]
        if isinstance(saved_at_ms, bool) or not isinstance(saved_at_ms, Real):
            raise TypeError("savedAt must be epoch milliseconds")
        return cls(
            items=[PriceItem.from_dict(raw) for raw in data.get("itemsAll") or []],
            file_date=data.get("fileDate") or "",
            saved_at=datetime.fromtimestamp(saved_at_ms / 1000, tz=timezone.utc),
        )


@dataclass
class ScanReport:
    """Aggregate summary of one scan.

    Contract invariant: ``items_out == sum(items_by_group.values())``.
    """

    sheets_total: int = 0
    sheets_scanned: list[str] = field(default_factory=list)
    sheets_ignored: list[str] = field(default_factory=list)
    items_out: int = 0
    items_by_group: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.sheets_total = _to_non_negative_int(self.sheets_total, "sheets_total")
        self.sheets_scanned = _to_string_list(self.sheets_scanned, "sheets_scanned")
        self.sheets_ignored = _to_string_list(self.sheets_ignored, "sheets_ignored")
        self.items_out = _to_non_negative_int(self.items_out, "items_out")
        self.items_by_group = {
            _to_non_empty_str(group, "items_by_group"): _to_non_negative_int(
                count, "items_by_group"
            )
            for group, count in self.items_by_group.items()
        }
        if len(self.sheets_scanned) + len(self.sheets_ignored) != self.sheets_total:
            raise ValueError("sheets_total must equal scanned + ignored sheets")
        if sum(self.items_by_group.values()) != self.items_out:
            raise ValueError("items_out must equal the sum of items_by_group")

    def to_dict(self) -> dict[str, Any]:
        return {
            "sheets_total": self.sheets_total,
            "sheets_scanned": list(self.sheets_scanned),
            "sheets_ignored": list(self.sheets_ignored),
            "items_out": self.items_out,
            "items_by_group": dict(self.items_by_group),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "pricelist-intake"
    version: str = ""
    input_path: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    items_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: str | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.items_out = _to_non_negative_int(self.items_out, "items_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "input_path": self.input_path,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "items_out": self.items_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
