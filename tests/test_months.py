from __future__ import annotations

import sys
import unittest
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from spend_sheet.errors import NoValidMonths
from spend_sheet.months import detect_month_range, looks_like_month, month_index, parse_month_label


class DetectMonthRangeTests(unittest.TestCase):
    def test_stops_at_grand_total_and_reports_absolute_rows(self):
        cells = [["Jan 2024"], ["Feb 2024"], ["Mar 2024"], ["Grand Total"], ["Apr 2024"]]
        result = detect_month_range(cells, start_row=15)
        self.assertEqual([month.row_index for month in result.months], [15, 16, 17])
        self.assertEqual(result.labels, ["Jan 2024", "Feb 2024", "Mar 2024"])
        self.assertEqual(result.first_row, 15)
        self.assertEqual(result.last_row, 17)
        self.assertEqual(result.warnings, [])

    def test_stops_at_first_empty_cell(self):
        cells = [["Jan 2024"], [], ["Feb 2024"]]
        result = detect_month_range(cells, start_row=15)
        self.assertEqual(result.labels, ["Jan 2024"])

    def test_stops_at_plain_total(self):
        result = detect_month_range(["Jan 2024", "  total  ", "Feb 2024"], start_row=1)
        self.assertEqual(result.labels, ["Jan 2024"])

    def test_skips_non_month_cells_without_stopping(self):
        cells = [["Jan 2024"], ["Notes"], ["feb 2024"], ["Grand Total"]]
        result = detect_month_range(cells, start_row=15)
        self.assertEqual([(m.row_index, m.label) for m in result.months], [(15, "Jan 2024"), (17, "feb 2024")])

    def test_labels_are_trimmed(self):
        result = detect_month_range([["  Mar 2024 "]], start_row=20)
        self.assertEqual(result.labels, ["Mar 2024"])

    def test_no_months_raises(self):
        with self.assertRaises(NoValidMonths):
            detect_month_range([["Notes"], ["Budget"], ["Total"]], start_row=15)
        with self.assertRaises(NoValidMonths):
            detect_month_range([], start_row=15)

    def test_empty_first_cell_raises_even_if_months_follow(self):
        with self.assertRaises(NoValidMonths):
            detect_month_range([[""], ["Jan 2024"]], start_row=15)

    def test_unusually_long_run_warns_but_succeeds(self):
        labels = [f"{name} {2021 + i // 12}" for i, name in enumerate(["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"] * 4)]
        cells = [[label] for label in labels[:40]]
        with self.assertLogs("spend_sheet.months", level="WARNING"):
            result = detect_month_range(cells, start_row=15)
        self.assertEqual(len(result.months), 40)
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("40 months", result.warnings[0])

    def test_exactly_the_limit_does_not_warn(self):
        cells = [["Jan 2024"]] * 36
        result = detect_month_range(cells, start_row=15)
        self.assertEqual(result.warnings, [])


class MonthLabelTests(unittest.TestCase):
    def test_prefix_match_is_case_insensitive(self):
        self.assertTrue(looks_like_month("JANUARY 2024"))
        self.assertTrue(looks_like_month("sept"))
        self.assertFalse(looks_like_month("Total"))
        self.assertFalse(looks_like_month("2024 Jan"))

    def test_month_index(self):
        self.assertEqual(month_index("Jan"), 0)
        self.assertEqual(month_index("december"), 11)
        self.assertIsNone(month_index("Smarch"))

    def test_parse_label_with_year(self):
        self.assertEqual(parse_month_label("Mar 2024"), (2024, 2))
        self.assertEqual(parse_month_label("December 2023"), (2023, 11))

    def test_two_digit_year_is_twenty_first_century(self):
        self.assertEqual(parse_month_label("Feb 24"), (2024, 1))

    def test_missing_year_uses_today(self):
        self.assertEqual(parse_month_label("Jul", today=date(2025, 3, 1)), (2025, 6))

    def test_unknown_month_sorts_as_january(self):
        self.assertEqual(parse_month_label("Smarch 2024"), (2024, 0))

    def test_empty_label_is_rejected(self):
        with self.assertRaises(ValueError):
            parse_month_label("   ")


if __name__ == "__main__":
    unittest.main()
