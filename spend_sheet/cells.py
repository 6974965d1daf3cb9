from __future__ import annotations

import math
import re
from datetime import date, datetime, time

LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
TOTAL_MARKER = "total"
GRAND_TOTAL_MARKER = "grand total"


def to_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip().replace("\x00", "")


def cell_at(row, index: int) -> str:
    """Trimmed text of ``row[index]``; ragged rows read as empty past their end."""
    if row is None or index >= len(row):
        return ""
    return to_text(row[index]).strip()


def parse_amount(value) -> float:
    """Parse spreadsheet cell text the way a browser's ``parseFloat`` would.

    Thousands separators are stripped first, then the leading numeric prefix
    is read. Blanks and non-numeric noise become ``0.0``.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    match = LEADING_NUMBER_RE.match(to_text(value).replace(",", ""))
    if not match:
        return 0.0
    number = float(match.group(1))
    if not math.isfinite(number) or number == 0:
        return 0.0
    return number


def contains_total(label: str) -> bool:
    return TOTAL_MARKER in label.lower()


def is_summary_label(label: str) -> bool:
    """True for the ``Total`` / ``Grand Total`` rows that end a month column."""
    lowered = label.strip().lower()
    return lowered == TOTAL_MARKER or GRAND_TOTAL_MARKER in lowered
