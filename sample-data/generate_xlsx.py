#!/usr/bin/env python3
"""
Generates sample-data/spending_sample.xlsx, a small copy of the monthly
spending tab the dashboard reads.

Run from the repo root:
    python sample-data/generate_xlsx.py

What the sheet contains:
  Sheet "Categories By Month"
    - Group headers on row 13, merged across their subcategory columns
    - Subcategory headers on row 14, starting one column right of M
    - A "Home Total" column inside the Home group (never spending)
    - A "Total Expenses" group (never spending)
    - Month labels in column M from row 15, with May listed before April
    - Spending entered as negatives, one refund entered as a positive
    - Income group with the monthly total in column AU
    - A "Grand Total" row closing the month column
  Sheet "Notes"
    - Free text, ignored
"""

from __future__ import annotations

from pathlib import Path

import openpyxl

OUTPUT = Path(__file__).parent / "spending_sample.xlsx"
SHEET_NAME = "Categories By Month"

# (column, group, subcategory); group is None where the merged header continues
HEADERS = [
    ("N", "Home", "Rent"),
    ("O", None, "Utilities"),
    ("P", None, "Home Total"),
    ("Q", "Food", "Groceries"),
    ("R", None, "Dining Out"),
    ("S", "Transport", "Fuel"),
    ("T", None, "Transit"),
    ("U", "Total Expenses", "All"),
    ("AU", "Income", "Salary"),
    ("AV", "Investing", "Brokerage"),
]

# month label -> {column: value}
MONTHS = [
    ("Jan 2024", {"N": -1200, "O": -150.5, "P": -1350.5, "Q": -410, "R": -95, "S": -60, "U": -1915.5, "AU": 4200, "AV": -300}),
    ("Feb 2024", {"N": -1200, "O": -180, "P": -1380, "Q": -385.25, "R": 25, "T": -42, "U": -1807.25, "AU": 4200}),
    ("Mar 2024", {"N": -1200, "O": -120, "P": -1320, "Q": -402, "R": -130, "S": -75, "U": -1927, "AU": 4350, "AV": -300}),
    ("May 2024", {"N": -1200, "O": -90, "P": -1290, "Q": -390, "S": -80, "T": -38, "U": -1798, "AU": 4350}),
    ("Apr 2024", {"N": -1200, "O": -110, "P": -1310, "Q": -0, "R": -210, "S": -70, "U": -1590, "AU": 4350}),
]

HEADER_ROW = 13
FIRST_DATA_ROW = 15


def build_workbook(months=None) -> openpyxl.Workbook:
    """Return the sample workbook; ``months`` overrides the default data rows."""
    months = MONTHS if months is None else months
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_NAME

    ws["A1"] = "Household spending"
    ws["A2"] = "Amounts are negative for money out"

    for column, group, subcategory in HEADERS:
        if group:
            ws[f"{column}{HEADER_ROW}"] = group
        ws[f"{column}{HEADER_ROW + 1}"] = subcategory

    row = FIRST_DATA_ROW
    for label, values in months:
        ws[f"M{row}"] = label
        for column, value in values.items():
            ws[f"{column}{row}"] = value
        row += 1
    ws[f"M{row}"] = "Grand Total"
    ws[f"N{row}"] = sum(values.get("N", 0) for _, values in months)

    # Merge AFTER writing so the anchor cell keeps the group label
    ws.merge_cells(f"N{HEADER_ROW}:P{HEADER_ROW}")
    ws.merge_cells(f"Q{HEADER_ROW}:R{HEADER_ROW}")
    ws.merge_cells(f"S{HEADER_ROW}:T{HEADER_ROW}")

    notes = wb.create_sheet("Notes")
    notes.append(["Refunds are entered as positive numbers."])
    return wb


def write_sample(path: Path = OUTPUT, months=None) -> Path:
    build_workbook(months).save(path)
    return path


if __name__ == "__main__":
    print(f"Created: {write_sample()}")
