"""Shared versioned contracts for machine-readable spend-sheet outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

CONTRACT_VERSIONS = {
    "spend_sheet.spending_data": "1.0.0",
    "spend_sheet.months": "1.0.0",
    "spend_sheet.summary": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    command: str,
    source: str,
    status: str = "ok",
    output_path: str | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "spend-sheet",
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "source": source,
        "output_file": output_path,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
