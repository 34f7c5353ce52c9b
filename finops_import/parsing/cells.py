from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

"""Cell coercion helpers shared by every row parser.

A cell value is whatever the tabular decoder produced: text, a number, a
date/datetime, or nothing (None / NaN / whitespace). These helpers never raise
on bad input; they return ``""`` / ``None`` and let the row validators decide
which message to report.

Date rule
---------
1. ISO ``YYYY-MM-DD`` text.
2. The ordered fallback patterns in ``DATE_FALLBACK_FORMATS``; the first that
   parses wins. Month/day and day/month are both tried, so ``03/04/2024``
   silently resolves as March 4th. Such ambiguous matches are logged at WARN
   so an import can be audited afterwards.
3. A numeric cell is a spreadsheet serial date (1900 date system).
4. Anything else is invalid.
"""

__all__ = [
    "DATE_FALLBACK_FORMATS",
    "SERIAL_DATE_EPOCH",
    "DateMatch",
    "is_blank",
    "is_blank_row",
    "cell",
    "cell_text",
    "cell_number",
    "match_date",
    "parse_date",
    "serial_to_iso",
]

logger = logging.getLogger(__name__)

ISO_DATE_FORMAT = "%Y-%m-%d"

# (label, strptime pattern): 評価順が意味を持つ
DATE_FALLBACK_FORMATS: list[tuple[str, str]] = [
    ("MM/DD/YYYY", "%m/%d/%Y"),
    ("DD/MM/YYYY", "%d/%m/%Y"),
    ("YYYY/MM/DD", "%Y/%m/%d"),
]

# Day 0 of the 1900 date system once the phantom 1900-02-29 is accounted for.
SERIAL_DATE_EPOCH = date(1899, 12, 30)
_PHANTOM_LEAP_SERIAL = 60

_THOUSANDS_RE = re.compile(r"[,\s]")


@dataclass(frozen=True)
class DateMatch:
    """Result of the date rule: ISO value plus the pattern that produced it."""
    iso: str
    source_format: str
    ambiguous: bool = False


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def is_blank_row(row: list[Any] | None) -> bool:
    """True when the row is absent or every cell is empty."""
    if not row:
        return True
    return all(is_blank(v) for v in row)


def cell(row: list[Any], index: int) -> Any:
    """Positional cell access; short rows yield None for missing cells."""
    if index < len(row):
        return row[index]
    return None


def cell_text(value: Any) -> str:
    """Trimmed text form of a cell ("" for blanks)."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def cell_number(value: Any) -> float | None:
    """Finite float from a numeric or numeric-looking text cell, else None."""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _THOUSANDS_RE.sub("", str(value))
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _strptime(text: str, pattern: str) -> date | None:
    try:
        return datetime.strptime(text, pattern).date()
    except ValueError:
        return None


def serial_to_iso(serial: float, epoch: date = SERIAL_DATE_EPOCH) -> str | None:
    """Convert a spreadsheet serial day number to ``YYYY-MM-DD``.

    The fractional (time of day) part is dropped. Serials before the phantom
    leap day are shifted by one so that serial 1 is 1900-01-01.
    """
    if not math.isfinite(serial):
        return None
    days = int(math.floor(serial))
    if days <= 0 or days == _PHANTOM_LEAP_SERIAL:
        return None
    if days < _PHANTOM_LEAP_SERIAL:
        days += 1
    try:
        return (epoch + timedelta(days=days)).isoformat()
    except OverflowError:
        return None


def match_date(value: Any, epoch: date = SERIAL_DATE_EPOCH) -> DateMatch | None:
    """Apply the shared date rule and report which pattern matched."""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return DateMatch(value.date().isoformat(), "datetime")
    if isinstance(value, date):
        return DateMatch(value.isoformat(), "date")
    if isinstance(value, str):
        text = value.strip()
        parsed = _strptime(text, ISO_DATE_FORMAT)
        if parsed is not None:
            return DateMatch(parsed.isoformat(), "YYYY-MM-DD")
        for label, pattern in DATE_FALLBACK_FORMATS:
            parsed = _strptime(text, pattern)
            if parsed is None:
                continue
            ambiguous = False
            if pattern == "%m/%d/%Y":
                swapped = _strptime(text, "%d/%m/%Y")
                ambiguous = swapped is not None and swapped != parsed
            if ambiguous:
                logger.warning(
                    "ambiguous date %r read as %s (%s); day/month order would give %s",
                    text, parsed.isoformat(), label, swapped.isoformat(),
                )
            else:
                logger.debug("date %r matched fallback format %s", text, label)
            return DateMatch(parsed.isoformat(), label, ambiguous)
        return None
    if isinstance(value, (int, float)):
        iso = serial_to_iso(float(value), epoch)
        if iso is None:
            return None
        logger.debug("date %r read as serial date %s", value, iso)
        return DateMatch(iso, "serial")
    return None


def parse_date(value: Any, epoch: date = SERIAL_DATE_EPOCH) -> str | None:
    """``YYYY-MM-DD`` for a valid date cell, else None."""
    matched = match_date(value, epoch)
    return matched.iso if matched else None
