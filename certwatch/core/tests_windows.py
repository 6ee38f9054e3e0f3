"""
Tests for visit window computation, status classification and display order.
"""

from datetime import date, datetime

from django.test import SimpleTestCase

from certwatch.constants import (
    STATUS_ACTION_NEEDED,
    STATUS_COMPLETE,
    STATUS_OVERDUE,
    STATUS_UPCOMING,
)
from certwatch.core.exceptions import InvalidReferenceDate, InvalidWindowDefinition
from certwatch.core.windows import (
    Window,
    WindowDefinition,
    classify_status,
    compute_window,
    sort_for_display,
)


class ComputeWindowTest(SimpleTestCase):
    """Window bounds are reference date plus inclusive day offsets."""

    def test_first_visit_window(self):
        window = compute_window(date(2024, 2, 6), 5, 14)
        self.assertEqual(window.start, date(2024, 2, 11))
        self.assertEqual(window.end, date(2024, 2, 20))

    def test_window_crosses_month_end_in_leap_year(self):
        window = compute_window(date(2024, 2, 6), 15, 28)
        self.assertEqual(window.start, date(2024, 2, 21))
        self.assertEqual(window.end, date(2024, 3, 5))

    def test_reference_date_formats(self):
        """Strings, datetimes and spreadsheet serials all resolve to the same window."""
        expected = Window(date(2024, 2, 11), date(2024, 2, 20))
        for reference in ["2/6/2024", "2024-02-06", datetime(2024, 2, 6, 15, 45), 45328]:
            with self.subTest(reference=reference):
                self.assertEqual(compute_window(reference, 5, 14), expected)

    def test_unparseable_reference_date(self):
        for reference in [None, "", "not a date", "13/45/2024", float("nan"), float("inf")]:
            with self.subTest(reference=reference):
                with self.assertRaises(InvalidReferenceDate):
                    compute_window(reference, 5, 14)

    def test_offsets_past_calendar_end(self):
        with self.assertRaises(InvalidReferenceDate) as cm:
            compute_window(date(9999, 12, 30), 5, 14)
        self.assertIsInstance(cm.exception.__cause__, OverflowError)

    def test_start_after_end_rejected(self):
        with self.assertRaises(InvalidWindowDefinition):
            compute_window(date(2024, 2, 6), 14, 5)

    def test_single_day_window(self):
        window = compute_window(date(2024, 2, 6), 7, 7)
        self.assertEqual(window.start, window.end)
        self.assertTrue(window.contains(date(2024, 2, 13)))

    def test_display_range(self):
        window = compute_window(date(2024, 2, 6), 5, 14)
        self.assertEqual(window.display_range(), "(2/11 - 2/20)")


class WindowDefinitionTest(SimpleTestCase):

    def test_invalid_definition_rejected(self):
        with self.assertRaises(InvalidWindowDefinition) as cm:
            WindowDefinition("HUV1", 14, 5)
        self.assertEqual(cm.exception.name, "HUV1")
        self.assertIn("HUV1", str(cm.exception))

    def test_window_for(self):
        definition = WindowDefinition("HUV2", 15, 28)
        self.assertEqual(
            definition.window_for("2/6/2024"),
            Window(date(2024, 2, 21), date(2024, 3, 5)),
        )


class ClassifyStatusTest(SimpleTestCase):
    """Status boundaries around the window 2/11/2024 - 2/20/2024."""

    def setUp(self):
        self.window = compute_window(date(2024, 2, 6), 5, 14)

    def test_before_window_is_upcoming(self):
        self.assertEqual(classify_status(date(2024, 2, 10), self.window, False), STATUS_UPCOMING)

    def test_window_bounds_are_inclusive(self):
        self.assertEqual(classify_status(date(2024, 2, 11), self.window, False), STATUS_ACTION_NEEDED)
        self.assertEqual(classify_status(date(2024, 2, 20), self.window, False), STATUS_ACTION_NEEDED)

    def test_after_window_is_overdue(self):
        self.assertEqual(classify_status(date(2024, 2, 21), self.window, False), STATUS_OVERDUE)

    def test_complete_overrides_everything(self):
        for today in [date(2024, 2, 1), date(2024, 2, 15), date(2024, 3, 30)]:
            with self.subTest(today=today):
                self.assertEqual(classify_status(today, self.window, True), STATUS_COMPLETE)


class SortForDisplayTest(SimpleTestCase):

    def test_most_urgent_first(self):
        statuses = [STATUS_UPCOMING, STATUS_OVERDUE, STATUS_ACTION_NEEDED]
        self.assertEqual(
            sort_for_display(statuses),
            [STATUS_OVERDUE, STATUS_ACTION_NEEDED, STATUS_UPCOMING],
        )

    def test_complete_sorts_before_upcoming(self):
        self.assertEqual(
            sort_for_display([STATUS_UPCOMING, STATUS_COMPLETE]),
            [STATUS_COMPLETE, STATUS_UPCOMING],
        )

    def test_sort_is_stable(self):
        items = [
            ("Ann", STATUS_UPCOMING),
            ("Bob", STATUS_OVERDUE),
            ("Cal", STATUS_UPCOMING),
            ("Dee", STATUS_OVERDUE),
        ]
        ordered = sort_for_display(items, status_of=lambda item: item[1])
        self.assertEqual([name for name, _ in ordered], ["Bob", "Dee", "Ann", "Cal"])

    def test_sort_is_idempotent(self):
        statuses = [STATUS_COMPLETE, STATUS_UPCOMING, STATUS_OVERDUE, STATUS_ACTION_NEEDED]
        once = sort_for_display(statuses)
        self.assertEqual(sort_for_display(once), once)

    def test_empty_input(self):
        self.assertEqual(sort_for_display([]), [])
