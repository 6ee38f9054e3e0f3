from datetime import date, datetime

from django.test import SimpleTestCase

from certwatch.core.dates import (
    days_between,
    end_of_month,
    format_date,
    format_month_day,
    parse_date,
    start_of_week,
)


class ParseDateTest(SimpleTestCase):

    def test_date_and_datetime(self):
        self.assertEqual(parse_date(date(2024, 2, 6)), date(2024, 2, 6))
        self.assertEqual(parse_date(datetime(2024, 2, 6, 23, 59)), date(2024, 2, 6))

    def test_text_formats(self):
        for text in ["2/6/2024", "02/06/2024", "2/6/24", "2024-02-06", "Feb 06, 2024", " 2/6/2024 "]:
            with self.subTest(text=text):
                self.assertEqual(parse_date(text), date(2024, 2, 6))

    def test_spreadsheet_serial(self):
        self.assertEqual(parse_date(45292), date(2024, 1, 1))
        self.assertEqual(parse_date(45328.0), date(2024, 2, 6))

    def test_empty_and_invalid_values(self):
        for value in [None, "", "   ", "tomorrow", True, object(), float("nan"), float("-inf")]:
            with self.subTest(value=value):
                self.assertIsNone(parse_date(value))


class DateHelpersTest(SimpleTestCase):

    def test_days_between_is_signed(self):
        self.assertEqual(days_between(date(2024, 1, 1), date(2024, 2, 21)), 51)
        self.assertEqual(days_between(date(2024, 2, 21), date(2024, 1, 1)), -51)

    def test_end_of_month(self):
        self.assertEqual(end_of_month(date(2024, 2, 6)), date(2024, 2, 29))
        self.assertEqual(end_of_month(date(2023, 2, 6)), date(2023, 2, 28))
        self.assertEqual(end_of_month(date(2024, 12, 31)), date(2024, 12, 31))

    def test_start_of_week(self):
        # 2024-02-23 is a Friday
        self.assertEqual(start_of_week(date(2024, 2, 23)), date(2024, 2, 19))
        self.assertEqual(start_of_week(date(2024, 2, 19)), date(2024, 2, 19))

    def test_format_date(self):
        self.assertEqual(format_date(date(2024, 2, 6)), "02/06/2024")
        self.assertEqual(format_date(None), "N/A")
        self.assertEqual(format_month_day(date(2024, 2, 6)), "2/6")
