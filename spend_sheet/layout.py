"""Physical layout of the spending tab.

The defaults describe the sheet the dashboard was built against: headers on
rows 13-14, month labels in column M starting at row 15, spending columns
through BL and the monthly income total in AU.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

from openpyxl.utils import column_index_from_string

from spend_sheet.errors import LayoutError


@dataclass(frozen=True)
class SheetLayout:
    sheet_name: str = "Categories By Month"
    group_header_row: int = 13
    subcategory_header_row: int = 14
    first_data_row: int = 15
    scan_limit_row: int = 50
    month_column: str = "M"
    last_column: str = "BL"
    income_column: str = "AU"
    max_expected_months: int = 36

    def __post_init__(self) -> None:
        for name in ("month_column", "last_column", "income_column"):
            value = getattr(self, name)
            try:
                column_index_from_string(str(value).upper())
            except ValueError as exc:
                raise LayoutError(f"{name} is not a column letter: {value!r}") from exc
            object.__setattr__(self, name, str(value).upper())
        if self.subcategory_header_row != self.group_header_row + 1:
            raise LayoutError("subcategory_header_row must directly follow group_header_row")
        if self.first_data_row != self.subcategory_header_row + 1:
            raise LayoutError("first_data_row must directly follow subcategory_header_row")
        if self.scan_limit_row < self.first_data_row:
            raise LayoutError("scan_limit_row must not precede first_data_row")
        if self.column_index(self.last_column) <= self.column_index(self.month_column):
            raise LayoutError("last_column must be to the right of month_column")

    @staticmethod
    def column_index(letter: str) -> int:
        return column_index_from_string(letter)

    def qualify(self, cell_range: str) -> str:
        return f"{self.sheet_name}!{cell_range}"

    def month_scan_range(self) -> str:
        return self.qualify(f"{self.month_column}{self.first_data_row}:{self.month_column}{self.scan_limit_row}")

    def grid_range(self, last_row: int) -> str:
        return self.qualify(f"{self.month_column}{self.group_header_row}:{self.last_column}{last_row}")

    def income_range(self, first_row: int, last_row: int) -> str:
        return self.qualify(f"{self.income_column}{first_row}:{self.income_column}{last_row}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def split_a1_range(a1_range: str) -> tuple[str | None, str]:
    """Split ``"Tab Name!A1:B2"`` into ``("Tab Name", "A1:B2")``."""
    if "!" not in a1_range:
        return None, a1_range
    sheet, _, cells = a1_range.rpartition("!")
    sheet = sheet.strip()
    if len(sheet) >= 2 and sheet[0] == sheet[-1] == "'":
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, cells


def layout_from_dict(payload: dict[str, Any]) -> SheetLayout:
    if not isinstance(payload, dict):
        raise LayoutError("Layout root must be a JSON object.")
    known = {item.name for item in fields(SheetLayout)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise LayoutError(f"Unknown layout keys: {', '.join(unknown)}")
    for item in fields(SheetLayout):
        if item.name in payload and item.type == "int":
            value = payload[item.name]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise LayoutError(f"{item.name} must be a positive integer, got {value!r}")
    return replace(SheetLayout(), **payload)


def load_layout(path: Path) -> SheetLayout:
    if not path.exists():
        raise LayoutError(f"Layout file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise LayoutError(f"Could not read layout: {exc}") from exc
    return layout_from_dict(payload)
