from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from spend_sheet import __version__ as TOOL_VERSION
from spend_sheet.config import Settings, load_env_file, settings_from_env
from spend_sheet.contracts import build_contract, build_run_summary
from spend_sheet.errors import (
    InsufficientData,
    NoValidMonths,
    SpendSheetError,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from spend_sheet.layout import SheetLayout, load_layout
from spend_sheet.logging_setup import configure_logging
from spend_sheet.months import MonthRange
from spend_sheet.service import detect_months, fetch_spending_data
from spend_sheet.sources import CsvSource, GoogleSheetsSource, SheetSource, WorkbookSource
from spend_sheet.summary import build_summary, export_months

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_NO_DATA = 2
EXIT_UPSTREAM_FAILED = 3
EXIT_RATE_LIMITED = 4

DEFAULT_LAYOUT_PATH = "spend-sheet-layout.json"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class SpendSheetArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, payload: str) -> None:
    ensure_parent(path)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload) + "\n")


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (NoValidMonths, InsufficientData)):
        return EXIT_NO_DATA
    if isinstance(exc, UpstreamRateLimited):
        return EXIT_RATE_LIMITED
    if isinstance(exc, UpstreamUnavailable):
        return EXIT_UPSTREAM_FAILED
    return EXIT_COMMAND_ERROR


def resolve_settings(args: argparse.Namespace) -> Settings:
    settings = settings_from_env()
    if getattr(args, "layout", None):
        settings = replace(settings, layout=load_layout(Path(args.layout)))
    if getattr(args, "sheet_id", None):
        settings = replace(settings, sheet_id=args.sheet_id)
    if getattr(args, "api_key", None):
        settings = replace(settings, api_key=args.api_key)
    if getattr(args, "credentials", None):
        settings = replace(settings, credentials=args.credentials)
    return settings


def build_source(args: argparse.Namespace, settings: Settings) -> SheetSource:
    if args.workbook and args.csv:
        raise CliError("Use either --workbook or --csv, not both.", EXIT_COMMAND_ERROR)
    if args.workbook:
        path = Path(args.workbook)
        if not path.exists():
            raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
        return WorkbookSource(path)
    if args.csv:
        path = Path(args.csv)
        if not path.exists():
            raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
        return CsvSource(path)
    if not settings.sheet_id:
        raise CliError("No source given. Use --workbook, --csv, or --sheet-id / SHEET_ID.", EXIT_COMMAND_ERROR)
    return GoogleSheetsSource(
        settings.sheet_id,
        api_key=settings.api_key,
        access_token=settings.access_token,
        credentials=settings.credentials,
    )


def source_label(args: argparse.Namespace, settings: Settings) -> str:
    if args.workbook:
        return str(args.workbook)
    if args.csv:
        return str(args.csv)
    return f"google-sheets:{settings.sheet_id}"


def render_months_text(month_range: MonthRange) -> str:
    lines = [
        "spend-sheet detect",
        f"Months: {len(month_range.months)}",
        f"Rows: {month_range.first_row}-{month_range.last_row}",
    ]
    lines.extend(f"- row {month.row_index}: {month.label}" for month in month_range.months)
    if month_range.warnings:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in month_range.warnings)
    return "\n".join(lines) + "\n"


def render_summary_text(summary: dict[str, Any]) -> str:
    split = summary["income_vs_expenses"]
    lines = [
        "spend-sheet summary",
        f"Months: {summary['month_count']} ({summary['first_month'] or '-'} to {summary['last_month'] or '-'})",
        f"Total income: {split['total_income']:,.2f}",
        f"Total expenses: {split['total_expenses']:,.2f}",
        f"Savings: {split['savings']:,.2f}",
    ]
    if summary["group_totals"]:
        lines.append("Groups:")
        lines.extend(f"- {group}: {value:,.2f}" for group, value in summary["group_totals"].items())
    if summary["spike_months"]:
        lines.append("Spike months: " + ", ".join(summary["spike_months"]))
    return "\n".join(lines) + "\n"


def add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workbook", help="Read from a local .xlsx/.xlsm export")
    parser.add_argument("--csv", help="Read from a CSV export of the spending tab")
    parser.add_argument("--sheet-id", dest="sheet_id", help="Google spreadsheet id (defaults to SHEET_ID)")
    parser.add_argument("--api-key", dest="api_key", help="Google API key (defaults to GOOGLE_API_KEY)")
    parser.add_argument("--credentials", help="Service account JSON or key file path (defaults to GOOGLE_CREDENTIALS)")
    parser.add_argument("--layout", help="Layout JSON file (defaults to SPEND_SHEET_LAYOUT or the built-in layout)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="More human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = SpendSheetArgumentParser(prog="spend-sheet", description="Normalize a monthly spending spreadsheet into time series.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Build the spending model and print it as JSON.")
    add_source_arguments(fetch)
    fetch.add_argument("--output", help="Write the JSON model to this path instead of stdout")

    detect = subparsers.add_parser("detect", help="Show which sheet rows hold monthly data.")
    add_source_arguments(detect)
    detect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    summary = subparsers.add_parser("summary", help="Totals, spike months and income vs expenses.")
    add_source_arguments(summary)
    summary.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    export = subparsers.add_parser("export", help="Write the months table to .csv or .xlsx.")
    add_source_arguments(export)
    export.add_argument("output", help="Output path (.csv or .xlsx)")

    serve = subparsers.add_parser("serve", help="Serve the spending model over HTTP.")
    add_source_arguments(serve)
    serve.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Port (defaults to PORT or 3001)")

    config = subparsers.add_parser("config", help="Generate layout configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter layout file.")
    config_init.add_argument("--path", default=DEFAULT_LAYOUT_PATH, help="Layout output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_fetch(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    model = fetch_spending_data(build_source(args, settings), settings.layout)
    payload = model.to_dict()
    if args.output:
        output_path = Path(args.output)
        write_json(output_path, payload)
        emit_human(f"Months: {len(model.months)}  Groups: {len(model.group_map)}", quiet=args.quiet)
        emit_human(f"Model written: {output_path}", quiet=args.quiet)
    else:
        print(json_dumps(payload))
    return EXIT_SUCCESS


def run_detect(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    month_range = detect_months(build_source(args, settings), settings.layout)
    if args.json:
        contract = build_contract("spend_sheet.months")
        payload = {
            "contract": contract,
            "schema_version": contract["version"],
            "tool_version": TOOL_VERSION,
            "months": [{"rowIndex": month.row_index, "monthName": month.label} for month in month_range.months],
            "first_row": month_range.first_row,
            "last_row": month_range.last_row,
            "run_summary": build_run_summary(
                command="detect",
                source=source_label(args, settings),
                metrics={"month_count": len(month_range.months)},
                warnings=month_range.warnings,
            ),
        }
        print(json_dumps(payload))
    else:
        emit_human(render_months_text(month_range).rstrip(), quiet=args.quiet)
    return EXIT_SUCCESS


def run_summary(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    model = fetch_spending_data(build_source(args, settings), settings.layout)
    summary = build_summary(model)
    if args.json:
        summary["run_summary"] = build_run_summary(
            command="summary",
            source=source_label(args, settings),
            metrics={"month_count": summary["month_count"], "group_count": len(model.group_map)},
        )
        print(json_dumps(summary))
    else:
        print(render_summary_text(summary).rstrip())
    return EXIT_SUCCESS


def run_export(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    output_path = Path(args.output)
    if output_path.exists():
        raise CliError(f"Refusing to overwrite existing output: {output_path}", EXIT_COMMAND_ERROR)
    if output_path.suffix.lower() not in {".csv", ".xlsx"}:
        raise CliError("Export path must end in .csv or .xlsx", EXIT_COMMAND_ERROR)
    model = fetch_spending_data(build_source(args, settings), settings.layout)
    export_months(model, output_path)
    emit_human(f"Months table written: {output_path}", quiet=args.quiet)
    return EXIT_SUCCESS


def run_serve(args: argparse.Namespace) -> int:
    from spend_sheet.server import create_app

    settings = resolve_settings(args)
    if args.port is not None:
        settings = replace(settings, port=args.port)
    source_factory = None
    if args.workbook or args.csv:
        build_source(args, settings)
        source_factory = lambda: build_source(args, settings)  # noqa: E731
    elif not settings.sheet_id:
        raise CliError("No source given. Use --workbook, --csv, or --sheet-id / SHEET_ID.", EXIT_COMMAND_ERROR)
    app = create_app(settings, source_factory)
    emit_human(f"Serving spending data on http://{args.host}:{settings.port}", quiet=args.quiet)
    app.run(host=args.host, port=settings.port)
    return EXIT_SUCCESS


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_json(config_path, SheetLayout().to_dict())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


COMMANDS = {
    "fetch": run_fetch,
    "detect": run_detect,
    "summary": run_summary,
    "export": run_export,
    "serve": run_serve,
}


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "version":
            return run_version()
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        handler = COMMANDS.get(args.command)
        if handler is None:
            raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
        load_env_file()
        if args.verbose:
            configure_logging("DEBUG")
        elif args.quiet:
            configure_logging("WARNING")
        else:
            configure_logging()
        return handler(args)
    except (CliError, SpendSheetError) as exc:
        eprint(str(exc))
        return classify_exception(exc)
    except ValueError as exc:
        eprint(str(exc))
        return EXIT_COMMAND_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
