from __future__ import annotations

import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from spend_sheet.config import Settings
from spend_sheet.errors import InsufficientData, NoValidMonths, UpstreamRateLimited, UpstreamUnavailable
from spend_sheet.layout import SheetLayout, split_a1_range
from spend_sheet.server import create_app

LAYOUT = SheetLayout(
    sheet_name="Budget",
    group_header_row=1,
    subcategory_header_row=2,
    first_data_row=3,
    scan_limit_row=10,
    month_column="A",
    last_column="C",
    income_column="C",
)

SHEET = {
    "A3:A10": [["Jan 2024"], ["Feb 2024"], ["Grand Total"]],
    "A1:C4": [["", "Food", "Income"], ["", "Groceries", "Salary"], ["Jan 2024", "-100", "1,000"], ["Feb 2024", "-0", "1,200"]],
    "C3:C4": [["1,000"], ["1,200"]],
}


class StaticSource:
    def get_values(self, a1_range):
        _, cells = split_a1_range(a1_range)
        return SHEET[cells]


class FailingSource:
    def __init__(self, exc):
        self.exc = exc

    def get_values(self, a1_range):
        raise self.exc


def make_client(source, api_alias=None):
    settings = Settings(sheet_id="sheet-1", api_key=None, access_token=None, layout=LAYOUT, api_alias=api_alias)
    app = create_app(settings, source_factory=lambda: source)
    app.testing = True
    return app.test_client()


class SpendingDataEndpointTests(unittest.TestCase):
    def test_returns_model_json(self):
        response = make_client(StaticSource()).get("/api/spending-data")
        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(list(payload), ["months", "groupMap", "categoryData"])
        self.assertEqual(
            payload["months"],
            [
                {"month": "Jan 2024", "income": 1000.0, "Groceries": 100.0, "Food": 100.0},
                {"month": "Feb 2024", "income": 1200.0, "Groceries": 0.0, "Food": 0.0},
            ],
        )
        self.assertEqual(payload["groupMap"], {"Food": ["Groceries"]})
        self.assertEqual(
            payload["categoryData"]["Food"]["Groceries"],
            [{"month": "Jan 2024", "value": 100.0}, {"month": "Feb 2024", "value": 0.0}],
        )

    def test_cors_headers(self):
        response = make_client(StaticSource()).get("/api/spending-data")
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")
        self.assertEqual(response.headers["Access-Control-Allow-Methods"], "GET")

    def test_non_get_is_405(self):
        client = make_client(StaticSource())
        for method in (client.post, client.put, client.delete):
            with self.subTest(method=method.__name__):
                response = method("/api/spending-data")
                self.assertEqual(response.status_code, 405)
                self.assertEqual(response.get_json(), {"error": "Method not allowed"})
                self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_head_is_answered_like_get(self):
        response = make_client(StaticSource()).head("/api/spending-data")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, b"")
        self.assertEqual(response.headers["Access-Control-Allow-Origin"], "*")

    def test_no_valid_months_is_404(self):
        response = make_client(FailingSource(NoValidMonths())).get("/api/spending-data")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"error": "No valid month data found"})

    def test_insufficient_data_is_404(self):
        response = make_client(FailingSource(InsufficientData())).get("/api/spending-data")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"error": "No data found"})

    def test_rate_limit_is_429_with_retry_after(self):
        response = make_client(FailingSource(UpstreamRateLimited(retry_after="30"))).get("/api/spending-data")
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.get_json(), {"error": "Rate limit exceeded", "retryAfter": "30"})

    def test_other_failures_are_opaque_500(self):
        for exc in (UpstreamUnavailable("Google Sheets returned HTTP 403"), RuntimeError("secret detail")):
            with self.subTest(exc=type(exc).__name__):
                with self.assertLogs("spend_sheet.server", level="ERROR"):
                    response = make_client(FailingSource(exc)).get("/api/spending-data")
                self.assertEqual(response.status_code, 500)
                self.assertEqual(response.get_json(), {"error": "Failed to fetch spending data"})

    def test_alias_route_serves_same_payload(self):
        client = make_client(StaticSource(), api_alias="/spending-data")
        primary = client.get("/api/spending-data").get_json()
        alias = client.get("/spending-data")
        self.assertEqual(alias.status_code, 200)
        self.assertEqual(alias.get_json(), primary)

    def test_alias_is_absent_by_default(self):
        self.assertEqual(make_client(StaticSource()).get("/spending-data").status_code, 404)

    def test_healthz(self):
        response = make_client(FailingSource(RuntimeError("unused"))).get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
