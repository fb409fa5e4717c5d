"""CLI integration smoke tests for pricelist-intake."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from openpyxl import Workbook
from typer.testing import CliRunner

import pricelist_intake.cli as cli_mod
from pricelist_intake.cli import app

runner = CliRunner()

HEADER = ["No", "나라", "품명", "단가"]


def _write_xlsx(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    wb.save(path)
    return path


def _price_list(tmp_path: Path, name: str = "단가표_202403.xlsx") -> Path:
    return _write_xlsx(
        tmp_path / name,
        {
            "(1)": [
                ["2024년 3월 단가표"],
                HEADER,
                [1, "브라질", "산토스", 12000],
                [2, None, "세하도", "13,000원"],
                [3, "케 냐", "AA", "₩20000"],
            ],
            "(2)": [HEADER, [1, "에티오피아", "예가체프 G2", 15000]],
            "메모": [HEADER, [1, "브라질", "무시됨", 1]],
        },
    )


def _read(out_dir: Path, name: str) -> dict:
    return json.loads((out_dir / name).read_text(encoding="utf-8"))


def test_scan_success_writes_price_list_report_and_manifest(tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 0, result.output
    snapshot = _read(out_dir, "price_list.json")
    assert snapshot["fileDate"] == "2024년 03월 단가표"
    assert isinstance(snapshot["savedAt"], int)
    assert snapshot["itemsAll"] == [
        {"country": "BR", "name": "산토스", "price": 12000, "priceGroup": "(1)"},
        {"country": "BR", "name": "세하도", "price": 13000, "priceGroup": "(1)"},
        {"country": "KE", "name": "AA", "price": 20000, "priceGroup": "(1)"},
        {"country": "ET", "name": "예가체프 G2", "price": 15000, "priceGroup": "(2)"},
    ]
    report = _read(out_dir, "scan_report.json")
    assert report["sheets_ignored"] == ["메모"]
    assert report["items_by_group"] == {"(1)": 3, "(2)": 1}
    manifest = _read(out_dir, "run_manifest.json")
    assert manifest["status"] == "success"
    assert manifest["items_out"] == 4
    assert len(manifest["sha256"]) == 64


def test_scan_prints_summary_when_not_quiet(tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(tmp_path / "out")]
    )

    assert result.exit_code == 0, result.output
    assert "Scan Complete" in result.output
    assert "Ignored sheets" in result.output


def test_scan_without_valid_items_fails_with_manifest(tmp_path: Path) -> None:
    input_file = _write_xlsx(
        tmp_path / "empty.xlsx", {"Sheet1": [HEADER, [1, "브라질", "산토스", 12000]]}
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    manifest = _read(out_dir, "run_manifest.json")
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == "no_valid_items"
    assert not (out_dir / "price_list.json").exists()


def test_scan_sheet_option_overrides_allow_list(tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "scan", "--input", str(input_file), "--out-dir", str(out_dir),
            "--sheet", "메모", "--quiet",
        ],
    )

    assert result.exit_code == 0, result.output
    items = _read(out_dir, "price_list.json")["itemsAll"]
    assert items == [{"country": "BR", "name": "무시됨", "price": 1, "priceGroup": "메모"}]


def test_scan_max_rows_guard_fails_scan(tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "scan", "--input", str(input_file), "--out-dir", str(out_dir),
            "--max-rows", "3", "--quiet",
        ],
    )

    assert result.exit_code == 2
    manifest = _read(out_dir, "run_manifest.json")
    assert manifest["error_code"] == "sheet_too_large"
    assert "5행" in manifest["error_message"]


def test_scan_country_map_and_profile_add_aliases(tmp_path: Path) -> None:
    input_file = _write_xlsx(
        tmp_path / "prices.xlsx",
        {
            "(1)": [
                HEADER,
                [1, "에디오피아", "구지", 17000],
                [2, "수마트라", "만델링", 14000],
            ]
        },
    )
    profile = tmp_path / "countries.txt"
    profile.write_text("# aliases\nET=에디오피아\n\n", encoding="utf-8")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "scan", "--input", str(input_file), "--out-dir", str(out_dir),
            "--profile", str(profile), "--country-map", "ID=수 마 트 라", "--quiet",
        ],
    )

    assert result.exit_code == 0, result.output
    items = _read(out_dir, "price_list.json")["itemsAll"]
    assert [i["country"] for i in items] == ["ET", "ID"]
    assert _read(out_dir, "price_list.json")["fileDate"] == "prices.xlsx"


def test_scan_bad_country_map_writes_failed_manifest(tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "scan", "--input", str(input_file), "--out-dir", str(out_dir),
            "--country-map", "브라질", "--quiet",
        ],
    )

    assert result.exit_code == 2
    manifest = _read(out_dir, "run_manifest.json")
    assert manifest["error_code"] == "bad_option"
    assert "CODE=NAME" in manifest["error_message"]


def test_scan_rejects_non_spreadsheet_upload(tmp_path: Path) -> None:
    input_file = tmp_path / "prices.csv"
    input_file.write_text("a,b\n", encoding="utf-8")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert _read(out_dir, "run_manifest.json")["error_code"] == "invalid_file_type"


def test_scan_reports_decode_failure(tmp_path: Path) -> None:
    input_file = tmp_path / "broken.xlsx"
    input_file.write_bytes(b"not a workbook")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    assert _read(out_dir, "run_manifest.json")["error_code"] == "decode_failure"


def test_scan_unexpected_error_exits_1(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"

    def _boom(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_mod, "scan_workbook", _boom)

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 1
    manifest = _read(out_dir, "run_manifest.json")
    assert manifest["error_code"] == "internal_error"
    assert "boom" in manifest["error_message"]


def test_show_reports_fresh_and_stale_snapshots(tmp_path: Path) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"
    runner.invoke(app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"])
    snapshot_file = out_dir / "price_list.json"
    saved_at_ms = _read(out_dir, "price_list.json")["savedAt"]
    saved_at_s = saved_at_ms // 1000

    saved_at = datetime.fromtimestamp(saved_at_s, tz=timezone.utc)
    fresh = (saved_at + timedelta(days=1)).isoformat()
    stale = (saved_at + timedelta(days=40)).isoformat()

    fresh_result = runner.invoke(app, ["show", "--snapshot", str(snapshot_file), "--now", fresh])
    stale_result = runner.invoke(app, ["show", "--snapshot", str(snapshot_file), "--now", stale])

    assert fresh_result.exit_code == 0, fresh_result.output
    assert "FRESH" in fresh_result.output
    assert "2024년 03월 단가표" in fresh_result.output
    assert stale_result.exit_code == 3
    assert "STALE" in stale_result.output


def test_show_rejects_malformed_snapshot(tmp_path: Path) -> None:
    snapshot_file = tmp_path / "price_list.json"
    snapshot_file.write_text('{"savedAt": 0, "itemsAll": [{"name": "x"}]}', encoding="utf-8")

    result = runner.invoke(app, ["show", "--snapshot", str(snapshot_file)])

    assert result.exit_code == 2
    assert "Cannot load snapshot" in result.output


@pytest.mark.parametrize("saved_at", ["1e300", "-1e300"])
def test_show_rejects_out_of_range_saved_at(tmp_path: Path, saved_at: str) -> None:
    snapshot_file = tmp_path / "price_list.json"
    snapshot_file.write_text(
        f'{{"savedAt": {saved_at}, "itemsAll": [], "fileDate": "x"}}', encoding="utf-8"
    )

    result = runner.invoke(app, ["show", "--snapshot", str(snapshot_file)])

    assert result.exit_code == 2
    assert "Cannot load snapshot" in result.output


def test_scan_output_write_error_writes_failed_manifest(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    input_file = _price_list(tmp_path)
    out_dir = tmp_path / "out"

    def _deny(*_args: object, **_kwargs: object) -> Path:
        raise PermissionError("read-only output directory")

    monkeypatch.setattr(cli_mod, "write_snapshot", _deny)

    result = runner.invoke(
        app, ["scan", "--input", str(input_file), "--out-dir", str(out_dir), "--quiet"]
    )

    assert result.exit_code == 2
    manifest = _read(out_dir, "run_manifest.json")
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == "io_error"
    assert "read-only" in manifest["error_message"]


def test_version_flag_prints_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "pricelist-intake v" in result.output
