"""Month label parsing and month-range detection.

The month column of a spending sheet is a run of labels such as ``Jan 2024``
followed immediately by a ``Total`` / ``Grand Total`` summary row. The
detector walks that run top to bottom and stops at the first empty or
summary cell; nothing below the stop is ever considered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Sequence

from spend_sheet.cells import cell_at, is_summary_label, to_text
from spend_sheet.errors import NoValidMonths
from spend_sheet.logging_setup import get_logger

logger = get_logger("spend_sheet.months")

MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
MONTH_INDEX = {name.lower(): idx for idx, name in enumerate(MONTH_ABBREVIATIONS)}
MONTH_PREFIX_RE = re.compile(r"^(" + "|".join(MONTH_ABBREVIATIONS) + ")", re.IGNORECASE)
YEAR_RE = re.compile(r"^\d+")
MAX_EXPECTED_MONTHS = 36


@dataclass(frozen=True)
class DetectedMonth:
    row_index: int
    label: str


@dataclass(frozen=True)
class MonthRange:
    months: list[DetectedMonth]
    warnings: list[str] = field(default_factory=list)

    @property
    def first_row(self) -> int:
        return self.months[0].row_index

    @property
    def last_row(self) -> int:
        return self.months[-1].row_index

    @property
    def labels(self) -> list[str]:
        return [month.label for month in self.months]


def looks_like_month(label: str) -> bool:
    return bool(MONTH_PREFIX_RE.match(label.strip()))


def month_index(name: str) -> int | None:
    match = MONTH_PREFIX_RE.match(name.strip())
    if not match:
        return None
    return MONTH_INDEX[match.group(1).lower()]


def parse_month_label(label: str, *, today: date | None = None) -> tuple[int, int]:
    """Return the ``(year, month_index)`` sort key for a month label.

    ``"Mar 2024"`` -> ``(2024, 2)``. A missing year falls back to ``today``'s
    year; two-digit years are read as 20xx. Unknown month names sort as
    January.
    """
    parts = label.strip().split()
    if not parts:
        raise ValueError("Empty month label")
    index = month_index(parts[0])
    year = None
    if len(parts) > 1:
        year_match = YEAR_RE.match(parts[1])
        if year_match:
            year = int(year_match.group(0))
            if year < 100:
                year += 2000
    if year is None:
        year = (today or date.today()).year
    return year, index if index is not None else 0


def _first_cell(row) -> str:
    if isinstance(row, (list, tuple)):
        return cell_at(row, 0)
    return to_text(row).strip()


def detect_month_range(
    cells: Sequence,
    *,
    start_row: int,
    max_expected_months: int = MAX_EXPECTED_MONTHS,
) -> MonthRange:
    """Scan a single-column range for the leading run of month labels.

    ``cells`` holds one entry per sheet row starting at absolute row
    ``start_row``; entries may be bare values or one-cell rows as returned by
    the Sheets API.
    """
    months: list[DetectedMonth] = []
    for offset, row in enumerate(cells):
        value = _first_cell(row)
        if not value or is_summary_label(value):
            break
        if looks_like_month(value):
            months.append(DetectedMonth(row_index=start_row + offset, label=value))

    if not months:
        raise NoValidMonths()

    warnings: list[str] = []
    if len(months) > max_expected_months:
        message = f"Detected {len(months)} months - unusually high (expected at most {max_expected_months})"
        logger.warning(message)
        warnings.append(message)

    return MonthRange(months=months, warnings=warnings)
