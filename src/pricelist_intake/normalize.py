"""Cell cleanup — canonical text, country codes, and currency parsing."""

from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Mapping
from typing import Any

import pandas as pd

from pricelist_intake.config import COUNTRY_CODES

_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")
_CR_TAB_RE = re.compile(r"[\r\t]")
_WHITESPACE_RE = re.compile(r"\s+")
_CURRENCY_NOISE_RE = re.compile(r"[\s,원₩]")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


# ── Text ─────────────────────────────────────────────────────────


def cell_text(value: Any) -> str:
    """Render a raw cell value as the text the spreadsheet showed."""
    if _is_missing(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def sanitize_text(raw: Any) -> str:
    """Return *raw* as clean single-line text.

    Removes zero-width characters, composes to NFC, turns NBSP/CR/TAB into
    spaces, collapses whitespace runs and trims.  Never raises, and applying
    it twice gives the same result as applying it once.
    """
    s = cell_text(raw)
    s = _ZERO_WIDTH_RE.sub("", s)
    s = unicodedata.normalize("NFC", s)
    s = s.replace("\u00a0", " ")
    s = _CR_TAB_RE.sub(" ", s)
    s = _WHITESPACE_RE.sub(" ", s)
    return s.strip()


# ── Country ──────────────────────────────────────────────────────


def normalize_country(raw: Any, country_codes: Mapping[str, str] = COUNTRY_CODES) -> str:
    """Map a country cell to its canonical code.

    Letter-spaced names (``"브 라 질"``) are rejoined first.  Names missing
    from *country_codes* come back sanitized but otherwise unchanged.
    """
    s = sanitize_text(raw)
    tokens = s.split()
    if len(tokens) > 1 and all(len(t) == 1 for t in tokens):
        s = "".join(tokens)
    return country_codes.get(s, s)


# ── Price ────────────────────────────────────────────────────────


def parse_price(raw: Any) -> float | None:
    """Parse a currency cell such as ``"12,000원"`` or ``"₩12000"``.

    Returns ``None`` unless the value is a finite number greater than zero.
    """
    token = _CURRENCY_NOISE_RE.sub("", cell_text(raw))
    if not token:
        return None
    value = pd.to_numeric(token, errors="coerce")
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price
