"""Request pipeline: detect the month rows, fetch grid and income, transform.

HTTP handlers and CLI commands call ``fetch_spending_data`` and nothing else,
so the transformation has a single implementation behind every transport.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date

from spend_sheet.errors import InsufficientData
from spend_sheet.layout import SheetLayout
from spend_sheet.logging_setup import get_logger
from spend_sheet.months import MonthRange, detect_month_range
from spend_sheet.sources import SheetSource
from spend_sheet.transform import HEADER_ROWS, SpendingModel, parse_income_column, transform_sheet

logger = get_logger("spend_sheet.service")


def detect_months(source: SheetSource, layout: SheetLayout) -> MonthRange:
    cells = source.get_values(layout.month_scan_range())
    month_range = detect_month_range(
        cells,
        start_row=layout.first_data_row,
        max_expected_months=layout.max_expected_months,
    )
    logger.info(
        "Detected %d months from row %d to %d (first %s, last %s)",
        len(month_range.months),
        month_range.first_row,
        month_range.last_row,
        month_range.months[0].label,
        month_range.months[-1].label,
    )
    return month_range


def fetch_grid(source: SheetSource, layout: SheetLayout, month_range: MonthRange) -> tuple[list[list[str]], list[list[str]]]:
    """Fetch the header+data grid and the income column concurrently."""
    grid_range = layout.grid_range(month_range.last_row)
    income_range = layout.income_range(month_range.first_row, month_range.last_row)
    with ThreadPoolExecutor(max_workers=2) as pool:
        grid_future = pool.submit(source.get_values, grid_range)
        income_future = pool.submit(source.get_values, income_range)
        rows = grid_future.result()
        income_cells = income_future.result()
    logger.debug("Fetched %d grid rows from %s and %d income cells from %s", len(rows), grid_range, len(income_cells), income_range)
    return rows, income_cells


def select_month_rows(
    rows: list[list[str]],
    income_cells: list[list[str]],
    layout: SheetLayout,
    month_range: MonthRange,
) -> tuple[list[list[str]], dict[int, float]]:
    """Keep the header rows plus only the data rows the detector accepted as months.

    Grid data row ``i`` is sheet row ``first_data_row + i``; income cell ``p`` is
    sheet row ``first_row + p``. The returned income is keyed by position in the
    kept rows.
    """
    detected = {month.row_index for month in month_range.months}
    income = parse_income_column(income_cells)
    kept: list[list[str]] = []
    income_by_row: dict[int, float] = {}
    for position, row in enumerate(rows[HEADER_ROWS:]):
        row_index = layout.first_data_row + position
        if row_index not in detected:
            continue
        income_by_row[len(kept)] = income.get(row_index - month_range.first_row, 0.0)
        kept.append(row)
    skipped = len(rows[HEADER_ROWS:]) - len(kept)
    if skipped:
        logger.debug("Dropped %d non-month rows between the headers and row %d", skipped, month_range.last_row)
    return list(rows[:HEADER_ROWS]) + kept, income_by_row


def fetch_spending_data(
    source: SheetSource,
    layout: SheetLayout | None = None,
    *,
    today: date | None = None,
) -> SpendingModel:
    layout = layout or SheetLayout()
    month_range = detect_months(source, layout)
    rows, income_cells = fetch_grid(source, layout, month_range)
    if not rows:
        raise InsufficientData()

    rows, income_by_row = select_month_rows(rows, income_cells, layout, month_range)
    model = transform_sheet(rows, income_by_row, today=today)
    logger.info(
        "Built spending model: %d months, %d groups",
        len(model.months),
        len(model.group_map),
    )
    return model
