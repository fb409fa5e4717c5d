"""Artifact persistence — price-list snapshot and scan report."""

from __future__ import annotations

from pathlib import Path

from pricelist_intake.io import read_json, write_json
from pricelist_intake.models import PriceListSnapshot, ScanReport

SNAPSHOT_FILENAME = "price_list.json"
SCAN_REPORT_FILENAME = "scan_report.json"


def write_snapshot(out_dir: Path, snapshot: PriceListSnapshot) -> Path:
    """Write ``price_list.json`` into *out_dir* and return the path."""
    return write_json(out_dir / SNAPSHOT_FILENAME, snapshot.to_dict())


def read_snapshot(path: Path) -> PriceListSnapshot:
    """Load a snapshot written by :func:`write_snapshot`.

    Raises ``ValueError`` or ``TypeError`` if the file does not hold a valid
    snapshot.
    """
    data = read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Not a price-list snapshot: {path}")
    try:
        return PriceListSnapshot.from_dict(data)
    except KeyError as exc:
        raise ValueError(f"Snapshot {path} is missing field {exc}") from exc
    except (OverflowError, OSError) as exc:
        raise ValueError(f"Snapshot {path} has an invalid savedAt") from exc


def write_scan_report(out_dir: Path, report: ScanReport) -> Path:
    """Write ``scan_report.json`` into *out_dir* and return the path."""
    return write_json(out_dir / SCAN_REPORT_FILENAME, report.to_dict())
