"""Sheet-to-model transformation.

Input is the raw grid fetched from the spending tab: row 0 carries the group
headers (merged cells arrive as blanks after the first column of the span),
row 1 the subcategory headers, and every following row one month of data in
sheet order. Output is the normalized model served to dashboards.

Sign convention: spending is entered as negative numbers. Strictly positive
cells are credits or refunds and never count as spending; zero cells are
kept so charts get an explicit zero for that month.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Sequence

from spend_sheet.cells import cell_at, contains_total, parse_amount
from spend_sheet.errors import InsufficientData
from spend_sheet.logging_setup import get_logger
from spend_sheet.months import parse_month_label

logger = get_logger("spend_sheet.transform")

INCOME_GROUP = "Income"
HEADER_ROWS = 2
RECORD_KEYS = ("month", "income")
TOTAL_COLUMN_RE = re.compile(r"\b(grand\s+total|subtotal|sub-total|total)\b", re.IGNORECASE)


@dataclass(frozen=True)
class ColumnRef:
    index: int
    group: str
    subcategory: str


@dataclass(frozen=True)
class SpendingEntry:
    month: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"month": self.month, "value": self.value}


@dataclass(frozen=True)
class MonthRecord:
    month: str
    income: float
    subcategories: dict[str, float]
    groups: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {"month": self.month, "income": self.income}
        record.update(self.subcategories)
        record.update(self.groups)
        return record


@dataclass(frozen=True)
class SpendingModel:
    months: list[MonthRecord]
    group_map: dict[str, list[str]]
    category_data: dict[str, dict[str, list[SpendingEntry]]]

    @property
    def month_labels(self) -> list[str]:
        return [record.month for record in self.months]

    def to_dict(self) -> dict[str, Any]:
        return {
            "months": [record.to_dict() for record in self.months],
            "groupMap": {group: list(subs) for group, subs in self.group_map.items()},
            "categoryData": {
                group: {sub: [entry.to_dict() for entry in series] for sub, series in subs.items()}
                for group, subs in self.category_data.items()
            },
        }


@dataclass(frozen=True)
class _DataRow:
    position: int
    label: str
    sort_key: tuple[int, int]
    cells: Sequence


def is_spending_group(group: str) -> bool:
    return bool(group) and group != INCOME_GROUP and not contains_total(group)


def resolve_columns(group_headers: Sequence, subcategory_headers: Sequence) -> list[ColumnRef]:
    """Resolve every spending column to its ``(group, subcategory)`` pair.

    One left-to-right pass carries the last non-empty group label forward so
    merged group cells cover every column under them. Columns without a
    subcategory (totals, spacers) are skipped but never reset the carried
    group. Income and total groups resolve but are not spending columns.
    """
    group_headers = group_headers or []
    subcategory_headers = subcategory_headers or []
    width = max(len(group_headers), len(subcategory_headers))

    columns: list[ColumnRef] = []
    current_group = ""
    for index in range(1, width):
        group_cell = cell_at(group_headers, index)
        if group_cell:
            current_group = group_cell
        subcategory = cell_at(subcategory_headers, index)
        if not subcategory or TOTAL_COLUMN_RE.search(subcategory):
            continue
        if not is_spending_group(current_group):
            continue
        columns.append(ColumnRef(index=index, group=current_group, subcategory=subcategory))
    _warn_on_key_collisions(columns)
    return columns


def _warn_on_key_collisions(columns: Sequence[ColumnRef]) -> None:
    # Month records are flat, so these names would overwrite each other
    groups = {column.group for column in columns}
    reported: set[str] = set()
    for column in columns:
        name = column.subcategory
        if name in reported:
            continue
        if name in RECORD_KEYS:
            logger.warning("Subcategory %r in group %r collides with the %r month field", name, column.group, name)
            reported.add(name)
        elif name in groups:
            logger.warning("Subcategory %r in group %r has the same name as a group; month totals will collide", name, column.group)
            reported.add(name)


def build_group_map(columns: Sequence[ColumnRef]) -> dict[str, list[str]]:
    group_map: dict[str, list[str]] = {}
    for column in columns:
        subcategories = group_map.setdefault(column.group, [])
        if column.subcategory not in subcategories:
            subcategories.append(column.subcategory)
    return group_map


def parse_income_column(cells: Sequence) -> dict[int, float]:
    """Map each fetched income cell to a non-negative amount by its position.

    The income range is fetched with the same row bounds as the data rows, so
    position ``i`` lines up with data row ``i`` before sorting.
    """
    income: dict[int, float] = {}
    for position, row in enumerate(cells or []):
        if isinstance(row, (list, tuple)):
            raw = row[0] if row else ""
        else:
            raw = row
        income[position] = abs(parse_amount(raw))
    return income


def _sorted_data_rows(rows: Sequence[Sequence], today: date | None) -> list[_DataRow]:
    data_rows: list[_DataRow] = []
    for position, row in enumerate(rows[HEADER_ROWS:]):
        label = cell_at(row, 0)
        if not label or contains_total(label):
            continue
        data_rows.append(
            _DataRow(
                position=position,
                label=label,
                sort_key=parse_month_label(label, today=today),
                cells=row or [],
            )
        )
    # sorted() is stable, so duplicate month keys keep sheet order
    return sorted(data_rows, key=lambda item: item.sort_key)


def fill_gaps(values_by_month: Mapping[int, float], labels: Sequence[str]) -> list[SpendingEntry]:
    """One entry per month in ``labels`` order, zero where nothing was recorded."""
    return [
        SpendingEntry(month=label, value=values_by_month.get(position, 0.0))
        for position, label in enumerate(labels)
    ]


def transform_sheet(
    rows: Sequence[Sequence],
    income_by_row: Mapping[int, float] | None = None,
    *,
    today: date | None = None,
) -> SpendingModel:
    """Build the spending model from a raw grid and its income column.

    ``income_by_row`` is keyed by the original data-row index (0 = the first
    row after the two header rows). ``today`` only matters for month labels
    without a year.
    """
    if rows is None or len(rows) < HEADER_ROWS:
        found = 0 if rows is None else len(rows)
        raise InsufficientData(f"Expected {HEADER_ROWS} header rows, got {found} rows")

    income_by_row = income_by_row or {}
    columns = resolve_columns(rows[0], rows[1])
    group_map = build_group_map(columns)
    logger.debug("Resolved %d spending columns across %d groups", len(columns), len(group_map))

    data_rows = _sorted_data_rows(rows, today)
    labels = [data_row.label for data_row in data_rows]
    subcategory_names = [column.subcategory for column in columns]

    series_values: dict[tuple[str, str], dict[int, float]] = {}
    records: list[MonthRecord] = []
    for position, data_row in enumerate(data_rows):
        subcategory_totals = dict.fromkeys(subcategory_names, 0.0)
        group_totals = dict.fromkeys(group_map, 0.0)
        for column in columns:
            amount = parse_amount(cell_at(data_row.cells, column.index))
            if amount > 0:
                continue
            spent = abs(amount)
            values = series_values.setdefault((column.group, column.subcategory), {})
            values[position] = values.get(position, 0.0) + spent
            subcategory_totals[column.subcategory] += spent
            group_totals[column.group] += spent
        records.append(
            MonthRecord(
                month=data_row.label,
                income=float(income_by_row.get(data_row.position) or 0.0),
                subcategories=subcategory_totals,
                groups=group_totals,
            )
        )

    category_data = {
        group: {sub: fill_gaps(series_values.get((group, sub), {}), labels) for sub in subcategories}
        for group, subcategories in group_map.items()
    }
    return SpendingModel(months=records, group_map=group_map, category_data=category_data)
