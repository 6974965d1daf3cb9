"""Derived views over a spending model, built with pandas.

These mirror the figures a dashboard shows next to the raw series: totals per
group, the monthly spending line with spike months flagged, and the income
versus expenses split.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from spend_sheet import __version__ as TOOL_VERSION
from spend_sheet.contracts import build_contract
from spend_sheet.transform import SpendingModel

SPIKE_MULTIPLIER = 1.4
SAVINGS_LABEL = "Savings"


def months_frame(model: SpendingModel) -> pd.DataFrame:
    """One row per month: ``income``, each subcategory, then each group."""
    records = [record.to_dict() for record in model.months]
    if not records:
        return pd.DataFrame(columns=["income"]).rename_axis("month")
    return pd.DataFrame.from_records(records).set_index("month")


def group_frame(model: SpendingModel) -> pd.DataFrame:
    data = {group: [record.groups.get(group, 0.0) for record in model.months] for group in model.group_map}
    return pd.DataFrame(data, index=pd.Index(model.month_labels, name="month"), columns=list(model.group_map), dtype=float)


def group_totals(model: SpendingModel) -> dict[str, float]:
    totals = group_frame(model).sum(axis=0).sort_values(ascending=False, kind="stable")
    return {str(group): float(value) for group, value in totals.items()}


def monthly_totals(model: SpendingModel, *, spike_multiplier: float = SPIKE_MULTIPLIER) -> list[dict[str, Any]]:
    totals = group_frame(model).sum(axis=1)
    median = float(totals.median()) if len(totals) else 0.0
    return [
        {
            "month": str(month),
            "total": float(total),
            "spike": median > 0 and float(total) > spike_multiplier * median,
        }
        for month, total in totals.items()
    ]


def income_vs_expenses(model: SpendingModel) -> dict[str, Any]:
    """Split total income into spending groups and savings.

    Savings is reported as-is, negative in a deficit. The slice breakdown only
    switches to the income view when income exceeds expenses; otherwise it is
    the plain group breakdown.
    """
    totals = group_totals(model)
    total_income = float(sum(record.income for record in model.months))
    total_expenses = float(sum(totals.values()))
    savings = total_income - total_expenses

    slices = [{"name": group, "value": value} for group, value in totals.items()]
    if total_income > total_expenses:
        mode = "vs_income"
        slices.append({"name": SAVINGS_LABEL, "value": savings})
        for item in slices:
            item["percent_of_income"] = round(item["value"] / total_income * 100, 2)
    else:
        mode = "breakdown"
        for item in slices:
            item["percent_of_expenses"] = round(item["value"] / total_expenses * 100, 2) if total_expenses else 0.0

    return {
        "mode": mode,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "savings": savings,
        "slices": slices,
    }


def build_summary(model: SpendingModel) -> dict[str, Any]:
    contract = build_contract("spend_sheet.summary")
    monthly = monthly_totals(model)
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "month_count": len(model.months),
        "first_month": model.month_labels[0] if model.months else None,
        "last_month": model.month_labels[-1] if model.months else None,
        "group_totals": group_totals(model),
        "monthly_totals": monthly,
        "spike_months": [item["month"] for item in monthly if item["spike"]],
        "income_vs_expenses": income_vs_expenses(model),
    }


def export_months(model: SpendingModel, output_path: Path) -> Path:
    frame = months_frame(model)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = output_path.suffix.lower()
    if suffix == ".csv":
        frame.to_csv(output_path)
    elif suffix == ".xlsx":
        frame.to_excel(output_path, sheet_name="Months", engine="openpyxl")
    else:
        raise ValueError(f"Unsupported export type '{suffix or '[missing extension]'}'. Supported: .csv, .xlsx")
    return output_path
