from __future__ import annotations

import json
import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from spend_sheet import logging_setup
from spend_sheet.config import DEFAULT_PORT, load_env_file, settings_from_env
from spend_sheet.errors import LayoutError
from spend_sheet.layout import SheetLayout, layout_from_dict, load_layout, split_a1_range


class SheetLayoutTests(unittest.TestCase):
    def test_default_ranges(self):
        layout = SheetLayout()
        self.assertEqual(layout.month_scan_range(), "Categories By Month!M15:M50")
        self.assertEqual(layout.grid_range(27), "Categories By Month!M13:BL27")
        self.assertEqual(layout.income_range(15, 27), "Categories By Month!AU15:AU27")

    def test_column_letters_are_normalized(self):
        layout = SheetLayout(month_column="b", last_column="z", income_column="y")
        self.assertEqual((layout.month_column, layout.last_column, layout.income_column), ("B", "Z", "Y"))

    def test_invalid_layouts_are_rejected(self):
        bad = [
            {"month_column": "1A"},
            {"subcategory_header_row": 20},
            {"first_data_row": 17},
            {"scan_limit_row": 10},
            {"month_column": "C", "last_column": "B"},
        ]
        for overrides in bad:
            with self.subTest(overrides=overrides):
                with self.assertRaises(LayoutError):
                    SheetLayout(**overrides)

    def test_layout_from_dict_overrides_defaults(self):
        layout = layout_from_dict({"sheet_name": "Budget", "group_header_row": 3, "subcategory_header_row": 4, "first_data_row": 5})
        self.assertEqual(layout.sheet_name, "Budget")
        self.assertEqual(layout.month_scan_range(), "Budget!M5:M50")
        self.assertEqual(layout.income_column, "AU")

    def test_layout_from_dict_rejects_unknown_keys_and_bad_ints(self):
        with self.assertRaises(LayoutError):
            layout_from_dict({"sheet": "Budget"})
        with self.assertRaises(LayoutError):
            layout_from_dict({"scan_limit_row": "50"})
        with self.assertRaises(LayoutError):
            layout_from_dict({"max_expected_months": True})
        with self.assertRaises(LayoutError):
            layout_from_dict(["not", "an", "object"])

    def test_load_layout_round_trips_generated_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "layout.json"
            path.write_text(json.dumps(SheetLayout().to_dict()), encoding="utf-8")
            self.assertEqual(load_layout(path), SheetLayout())

    def test_load_layout_errors(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with self.assertRaises(LayoutError):
                load_layout(Path(tmpdir) / "missing.json")
            broken = Path(tmpdir) / "broken.json"
            broken.write_text("{not json", encoding="utf-8")
            with self.assertRaises(LayoutError):
                load_layout(broken)

    def test_split_a1_range(self):
        self.assertEqual(split_a1_range("Categories By Month!M15:M50"), ("Categories By Month", "M15:M50"))
        self.assertEqual(split_a1_range("'Bob''s Tab'!A1:B2"), ("Bob's Tab", "A1:B2"))
        self.assertEqual(split_a1_range("A1:B2"), (None, "A1:B2"))


class SettingsTests(unittest.TestCase):
    def test_defaults_from_empty_environment(self):
        settings = settings_from_env({})
        self.assertIsNone(settings.sheet_id)
        self.assertIsNone(settings.api_key)
        self.assertEqual(settings.port, DEFAULT_PORT)
        self.assertIsNone(settings.api_alias)
        self.assertIsNone(settings.credentials)
        self.assertEqual(settings.layout, SheetLayout())

    def test_reads_environment(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            layout_path = Path(tmpdir) / "layout.json"
            layout_path.write_text(json.dumps({"sheet_name": "Budget"}), encoding="utf-8")
            settings = settings_from_env(
                {
                    "SHEET_ID": "abc123",
                    "GOOGLE_API_KEY": "key",
                    "GOOGLE_ACCESS_TOKEN": "token",
                    "PORT": "8080",
                    "SPEND_SHEET_API_ALIAS": "spending-data",
                    "SPEND_SHEET_LAYOUT": str(layout_path),
                    "GOOGLE_CREDENTIALS": "/secrets/service-account.json",
                }
            )
        self.assertEqual(settings.sheet_id, "abc123")
        self.assertEqual(settings.api_key, "key")
        self.assertEqual(settings.access_token, "token")
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.api_alias, "/spending-data")
        self.assertEqual(settings.layout.sheet_name, "Budget")
        self.assertEqual(settings.credentials, "/secrets/service-account.json")

    def test_non_numeric_port_falls_back(self):
        self.assertEqual(settings_from_env({"PORT": "http"}).port, DEFAULT_PORT)

    def test_env_file_does_not_override_existing_values(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = Path(tmpdir) / ".env"
            env_path.write_text("SHEET_ID=from-file\nSPEND_SHEET_TEST_ONLY=loaded\n", encoding="utf-8")
            with mock.patch.dict("os.environ", {"SHEET_ID": "from-env"}, clear=False):
                load_env_file(env_path)
                self.assertEqual(os.environ["SHEET_ID"], "from-env")
                self.assertEqual(os.environ["SPEND_SHEET_TEST_ONLY"], "loaded")


class LoggingSetupTests(unittest.TestCase):
    def test_level_parsing(self):
        self.assertEqual(logging_setup._parse_level("debug"), logging.DEBUG)
        self.assertEqual(logging_setup._parse_level(30), logging.WARNING)
        with mock.patch.dict("os.environ", {"SPEND_SHEET_LOG_LEVEL": "error"}):
            self.assertEqual(logging_setup._parse_level(None), logging.ERROR)
            self.assertEqual(logging_setup._parse_level("bogus"), logging.ERROR)
        with mock.patch.dict("os.environ", {"SPEND_SHEET_LOG_LEVEL": "bogus"}):
            self.assertEqual(logging_setup._parse_level(None), logging.INFO)

    def test_get_logger_is_namespaced(self):
        self.assertEqual(logging_setup.get_logger("spend_sheet.tests").name, "spend_sheet.tests")


if __name__ == "__main__":
    unittest.main()
