"""Spreadsheet sources.

Every source answers ``get_values("Tab!A1:B2")`` with a list of rows of cell
text, shaped like a Sheets API ``values.get`` response: trailing empty cells
and trailing empty rows are dropped, blank rows in the middle come back as
``[]``.
"""

from __future__ import annotations

import csv
import io
import json
import zipfile
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import chardet
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2.service_account import Credentials
from openpyxl import load_workbook
from openpyxl.utils.cell import range_boundaries
from openpyxl.utils.exceptions import InvalidFileException

from spend_sheet.cells import to_text
from spend_sheet.errors import UpstreamRateLimited, UpstreamUnavailable
from spend_sheet.layout import split_a1_range
from spend_sheet.logging_setup import get_logger

logger = get_logger("spend_sheet.sources")

SHEETS_API_ROOT = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
DEFAULT_TIMEOUT = 60
WORKBOOK_FORMATS = {".xlsx", ".xlsm"}


class SheetSource(Protocol):
    def get_values(self, a1_range: str) -> list[list[str]]: ...


def trim_values(rows: list[list]) -> list[list[str]]:
    trimmed: list[list[str]] = []
    for row in rows:
        cells = [to_text(value) for value in row]
        while cells and cells[-1] == "":
            cells.pop()
        trimmed.append(cells)
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


def _bounds(cell_range: str) -> tuple[int, int, int, int]:
    try:
        min_col, min_row, max_col, max_row = range_boundaries(cell_range)
    except (TypeError, ValueError) as exc:
        raise UpstreamUnavailable(f"Invalid cell range: {cell_range}") from exc
    if None in (min_col, min_row, max_col, max_row):
        raise UpstreamUnavailable(f"Cell range must be fully bounded: {cell_range}")
    return min_col, min_row, max_col, max_row


def load_service_account_info(credentials: str) -> dict:
    """Parse ``GOOGLE_CREDENTIALS``: inline service-account JSON or a path to the key file."""
    text = credentials.strip()
    if not text.startswith("{"):
        try:
            text = Path(text).expanduser().read_text(encoding="utf-8")
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not read service account file: {exc}") from exc
    try:
        info = json.loads(text)
    except ValueError as exc:
        raise UpstreamUnavailable("Service account credentials are not valid JSON") from exc
    if not isinstance(info, dict):
        raise UpstreamUnavailable("Service account credentials must be a JSON object")
    return info


def service_account_session(credentials: str) -> AuthorizedSession:
    info = load_service_account_info(credentials)
    try:
        creds = Credentials.from_service_account_info(info, scopes=[SHEETS_READONLY_SCOPE])
    except (KeyError, ValueError) as exc:
        raise UpstreamUnavailable(f"Invalid service account credentials: {exc}") from exc
    return AuthorizedSession(creds)


class GoogleSheetsSource:
    """Read ranges through the Sheets API v4 ``values.get`` endpoint.

    Private sheets need a service account: pass its JSON (or key file path) as
    ``credentials`` and requests go through an ``AuthorizedSession`` scoped to
    read-only Sheets access. Public sheets can use ``api_key`` instead.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        *,
        api_key: str | None = None,
        access_token: str | None = None,
        credentials: str | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not spreadsheet_id:
            raise UpstreamUnavailable("No spreadsheet id configured (set SHEET_ID)")
        self.spreadsheet_id = spreadsheet_id
        self.api_key = api_key
        self.access_token = access_token
        if session is None:
            session = service_account_session(credentials) if credentials else requests.Session()
        self.session = session
        self.timeout = timeout

    def values_url(self, a1_range: str) -> str:
        return f"{SHEETS_API_ROOT}/{quote(self.spreadsheet_id, safe='')}/values/{quote(a1_range, safe='')}"

    def get_values(self, a1_range: str) -> list[list[str]]:
        params = {"majorDimension": "ROWS", "valueRenderOption": "FORMATTED_VALUE"}
        if self.api_key:
            params["key"] = self.api_key
        headers = {"Authorization": f"Bearer {self.access_token}"} if self.access_token else {}
        try:
            response = self.session.get(
                self.values_url(a1_range),
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"Could not reach Google Sheets: {exc}") from exc
        except GoogleAuthError as exc:
            raise UpstreamUnavailable(f"Google authentication failed: {exc}") from exc

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            logger.warning("Google Sheets rate limited %s (retry after %s)", a1_range, retry_after)
            raise UpstreamRateLimited(retry_after=retry_after)
        try:
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as exc:
            raise UpstreamUnavailable(f"Google Sheets returned HTTP {response.status_code} for {a1_range}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable(f"Google Sheets returned invalid JSON for {a1_range}") from exc
        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Unexpected Google Sheets payload for {a1_range}")
        return trim_values(payload.get("values") or [])


class WorkbookSource:
    """Read ranges from a local ``.xlsx``/``.xlsm`` export using cached cell values."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        if self.path.suffix.lower() not in WORKBOOK_FORMATS:
            raise UpstreamUnavailable(
                f"Unsupported workbook type '{self.path.suffix or '[missing extension]'}'. "
                f"Supported: {', '.join(sorted(WORKBOOK_FORMATS))}"
            )
        try:
            self.workbook = load_workbook(self.path, data_only=True)
        except (OSError, KeyError, InvalidFileException, zipfile.BadZipFile) as exc:
            raise UpstreamUnavailable(f"Could not read workbook: {exc}") from exc

    def get_values(self, a1_range: str) -> list[list[str]]:
        sheet_name, cell_range = split_a1_range(a1_range)
        if sheet_name is None:
            sheet = self.workbook.active
        elif sheet_name in self.workbook.sheetnames:
            sheet = self.workbook[sheet_name]
        else:
            raise UpstreamUnavailable(f"Sheet not found: {sheet_name}")
        min_col, min_row, max_col, max_row = _bounds(cell_range)
        if min_row > sheet.max_row:
            return []
        rows = sheet.iter_rows(
            min_row=min_row,
            max_row=min(max_row, sheet.max_row),
            min_col=min_col,
            max_col=max_col,
            values_only=True,
        )
        return trim_values([list(row) for row in rows])


def decode_csv_bytes(raw: bytes) -> str:
    detected = chardet.detect(raw).get("encoding") or "utf-8"
    for encoding in ("utf-8-sig", detected, "latin-1"):
        try:
            return raw.decode(encoding).replace("\x00", "")
        except (LookupError, UnicodeDecodeError):
            continue
    return raw.decode("cp1252", errors="replace")


class CsvSource:
    """Read ranges from a CSV export of the spending tab; row 1 is the first line."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not read CSV: {exc}") from exc
        self.grid = list(csv.reader(io.StringIO(decode_csv_bytes(raw))))

    def get_values(self, a1_range: str) -> list[list[str]]:
        _, cell_range = split_a1_range(a1_range)
        min_col, min_row, max_col, max_row = _bounds(cell_range)
        window = self.grid[min_row - 1 : max_row]
        return trim_values([row[min_col - 1 : max_col] for row in window])
