"""CLI entry point for pricelist-intake."""

from __future__ import annotations

import logging
import sys
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from pricelist_intake import __version__
from pricelist_intake.artifacts import read_snapshot, write_scan_report, write_snapshot
from pricelist_intake.config import DEFAULT_CONFIG, ScanConfig
from pricelist_intake.errors import PriceListError
from pricelist_intake.io import check_upload, read_workbook, write_json
from pricelist_intake.models import PriceItem, PriceListSnapshot, RunManifest
from pricelist_intake.normalize import normalize_country
from pricelist_intake.scanner import build_scan_report, scan_workbook
from pricelist_intake.utils import file_date_label, sha256_file, utcnow

app = typer.Typer(
    name="plist",
    help="pricelist-intake — Turn spreadsheet price lists into validated price items.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


def _configure_logging(verbose: bool) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"pricelist-intake v{__version__}")
        raise typer.Exit()


def _parse_country_map(raw: Sequence[str] | None, *, quiet: bool = False) -> dict[str, str]:
    """Parse ``--country-map CODE=NAME`` pairs into ``{name: code}``."""
    if not raw:
        return {}
    aliases: dict[str, str] = {}
    for item in raw:
        if "=" not in item:
            raise ValueError(f"Invalid --country-map value: {item!r}  (expected CODE=NAME)")
        code, name = item.split("=", 1)
        code = code.strip()
        # Keys must look like what normalize_country produces before the lookup.
        name_norm = normalize_country(name, {})
        if not code or not name_norm:
            raise ValueError("--country-map entries must have non-empty code and name (CODE=NAME)")
        if name_norm in aliases and not quiet:
            console.print(f"[yellow]![/yellow] Overriding country code for {name_norm!r}")
        aliases[name_norm] = code
    return aliases


def _load_profile_map(profile: Path | None) -> list[str]:
    """Return list of ``CODE=NAME`` strings from a profile file."""
    if not profile:
        return []
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like BR=브라질)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc

    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(stripped)
    return lines


def _build_config(
    sheets: list[str] | None, max_rows: int | None, aliases: dict[str, str]
) -> ScanConfig:
    config = DEFAULT_CONFIG
    if sheets:
        config = replace(config, allowed_sheets=tuple(sheets))
    if max_rows is not None:
        config = replace(config, max_rows=max_rows)
    return config.with_country_aliases(aliases)


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    items_out: int = 0,
    status: str = "success",
    error_code: str | None = None,
    error_message: str = "",
) -> Path:
    sha256 = ""
    try:
        sha256 = sha256_file(input_file)
    except OSError:
        pass

    manifest = RunManifest(
        version=__version__,
        input_path=str(input_file.resolve()),
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        items_out=items_out,
        sha256=sha256,
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _fail(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    message: str,
    error_code: str,
    exit_code: int = 2,
) -> typer.Exit:
    manifest_path = _write_manifest(
        out_dir,
        input_file,
        created_at,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    _err(message)
    console.print(f"  Manifest -> {manifest_path}")
    return typer.Exit(code=exit_code)


def _summary_table(items: Sequence[PriceItem], title: str) -> RichTable:
    tbl = RichTable(title=title, show_lines=False)
    tbl.add_column("Group", style="bold")
    tbl.add_column("Country")
    tbl.add_column("Items", justify="right")
    counts = Counter((item.price_group, item.country) for item in items)
    for (group, country), count in counts.items():
        tbl.add_row(group, country, str(count))
    return tbl


def _parse_now(raw: str | None) -> datetime:
    if not raw:
        return utcnow()
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise typer.BadParameter(f"Not an ISO-8601 timestamp: {raw!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """pricelist-intake CLI."""


# ── scan command ─────────────────────────────────────────────────


@app.command()
def scan(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to the .xlsx/.xls price list.",
        exists=True, readable=True, dir_okay=False,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for price list + scan report + manifest.",
    ),
    sheets: list[str] | None = typer.Option(
        None, "--sheet", "-s",
        help="Price-group sheet to scan (repeatable). Defaults to (1) (2) (3) (4).",
    ),
    max_rows: int | None = typer.Option(
        None, "--max-rows",
        help="Row ceiling per sheet; larger sheets fail the scan.",
        min=1,
    ),
    country_map: list[str] | None = typer.Option(
        None, "--country-map", "-c",
        help="Extra country alias: CODE=NAME. E.g. --country-map ET=에디오피아",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file containing country aliases (CODE=NAME lines).",
    ),
    content_type: str | None = typer.Option(
        None, "--content-type",
        help="MIME type reported by the uploader, if any.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Emit debug logs to stderr.",
    ),
) -> None:
    """Read a price-list workbook and write the validated price items."""
    _configure_logging(verbose)
    echo = _printer(quiet)
    started = utcnow()
    created_at = started.isoformat()
    out_dir.mkdir(parents=True, exist_ok=True)
    try:
        aliases = _parse_country_map(
            _load_profile_map(profile) + (country_map or []), quiet=quiet
        )
    except ValueError as exc:
        raise _fail(out_dir, input_file, created_at, message=str(exc), error_code="bad_option")
    config = _build_config(sheets, max_rows, aliases)

    if not quiet:
        console.print(Panel(
            f"[bold]pricelist-intake[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir}",
            title="Scan Start", border_style="blue",
        ))
        console.print(f"  Sheets: {' '.join(config.allowed_sheets)}")
        if profile:
            console.print(f"  Using profile: {profile}")
        if aliases:
            console.print(f"  Country aliases: {aliases}")

    try:
        # ── Check + decode ───────────────────────────────────────
        echo("[blue]>[/blue] Reading workbook …")
        check_upload(input_file, content_type=content_type, config=config)
        workbook = read_workbook(input_file)
        echo(f"  {len(workbook)} sheets: {', '.join(workbook) or '-'}")

        # ── Scan ─────────────────────────────────────────────────
        echo("[blue]>[/blue] Scanning price groups …")
        items = scan_workbook(workbook, config)

        # ── Artifacts ────────────────────────────────────────────
        report = build_scan_report(workbook, items, config)
        snapshot = PriceListSnapshot(
            items=items, file_date=file_date_label(input_file.name), saved_at=started
        )
        snapshot_path = write_snapshot(out_dir, snapshot)
        echo(f"  Price list -> {snapshot_path}")
        report_path = write_scan_report(out_dir, report)
        echo(f"  Report     -> {report_path}")
        manifest_path = _write_manifest(out_dir, input_file, created_at, items_out=len(items))
        echo(f"  Manifest   -> {manifest_path}")
    except PriceListError as exc:
        raise _fail(out_dir, input_file, created_at, message=exc.message, error_code=exc.code)
    except OSError as exc:
        raise _fail(out_dir, input_file, created_at, message=str(exc), error_code="io_error")
    except Exception as exc:
        raise _fail(
            out_dir,
            input_file,
            created_at,
            message=f"Unexpected internal error: {exc}",
            error_code="internal_error",
            exit_code=1,
        )

    if not quiet:
        if report.sheets_ignored:
            console.print(
                f"  [yellow]![/yellow] Ignored sheets: {', '.join(report.sheets_ignored)}"
            )
        console.print(_summary_table(items, snapshot.file_date))
        console.print(Panel(
            f"[green]Done[/green] — {len(items)} items -> {snapshot_path}",
            title="Scan Complete", border_style="green",
        ))


# ── show command ─────────────────────────────────────────────────


@app.command()
def show(
    snapshot_file: Path = typer.Option(
        ..., "--snapshot",
        help="Path to a price_list.json written by `plist scan`.",
        exists=True, readable=True, dir_okay=False,
    ),
    now: str | None = typer.Option(
        None, "--now",
        help="Evaluate staleness at this ISO-8601 time instead of the current time.",
    ),
) -> None:
    """Summarise a saved price list and report whether it is stale.

    Exit 0 = fresh, exit 3 = stale, exit 2 = unreadable snapshot.
    """
    at = _parse_now(now)
    try:
        snapshot = read_snapshot(snapshot_file)
    except (ValueError, TypeError, OSError) as exc:
        _err(f"Cannot load snapshot {snapshot_file}: {exc}")
        raise typer.Exit(code=2)

    stale = snapshot.is_stale(at)
    status = "[red]STALE[/red]" if stale else "[green]FRESH[/green]"
    console.print(Panel(
        f"{snapshot.file_date or snapshot_file.name}\n"
        f"Saved:  {snapshot.saved_at.isoformat()}\n"
        f"Items:  {len(snapshot.items)}\n"
        f"Status: {status}",
        title="Price List", border_style="cyan",
    ))
    console.print(_summary_table(snapshot.items, "Items by group"))
    if stale:
        raise typer.Exit(code=3)
