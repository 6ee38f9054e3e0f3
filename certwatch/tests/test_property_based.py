"""
Property-based testing with Hypothesis for certwatch window classification.

Hypothesis generates reference dates, offsets and batch dates across the
calendar to check the invariants staff rely on when reading a report:

- A computed window never ends before it starts
- A completed window is always COMPLETE, whatever today is
- As today moves forward an incomplete window only ever moves
  UPCOMING -> ACTION_NEEDED -> OVERDUE
- Display sorting is a stable, idempotent permutation

Run with: pytest certwatch/tests/test_property_based.py -v --hypothesis-show-statistics
"""

from collections import Counter
from datetime import date, timedelta

from hypothesis import example, given, strategies as st

from certwatch.constants import (
    DISPLAY_PRIORITY,
    STATUS_ACTION_NEEDED,
    STATUS_COMPLETE,
    STATUS_OVERDUE,
    STATUS_PROGRESSION,
    STATUS_UPCOMING,
)
from certwatch.core.config import normalize_recipients
from certwatch.core.windows import classify_status, compute_window, sort_for_display

reference_dates = st.dates(min_value=date(1990, 1, 1), max_value=date(2100, 12, 31))
offsets = st.integers(min_value=0, max_value=400)
statuses = st.sampled_from([STATUS_COMPLETE, STATUS_ACTION_NEEDED, STATUS_OVERDUE, STATUS_UPCOMING])


# =============================================================================
# Window Computation
# =============================================================================


class TestWindowProperties:
    """Property-based tests for compute_window."""

    @given(reference_dates, offsets, offsets)
    @example(date(2024, 2, 6), 5, 14)
    @example(date(2023, 12, 31), 15, 28)
    def test_window_start_never_after_end(self, reference, a, b):
        start_offset, end_offset = min(a, b), max(a, b)
        window = compute_window(reference, start_offset, end_offset)

        assert window.start <= window.end
        assert (window.end - window.start).days == end_offset - start_offset
        assert window.start == reference + timedelta(days=start_offset)

    @given(reference_dates, offsets, offsets)
    def test_window_contains_its_bounds(self, reference, a, b):
        window = compute_window(reference, min(a, b), max(a, b))

        assert window.contains(window.start)
        assert window.contains(window.end)
        assert not window.contains(window.start - timedelta(days=1))
        assert not window.contains(window.end + timedelta(days=1))


# =============================================================================
# Status Classification
# =============================================================================


class TestClassificationProperties:
    """Property-based tests for classify_status."""

    @given(reference_dates, offsets, offsets, reference_dates)
    def test_complete_overrides_dates(self, reference, a, b, today):
        window = compute_window(reference, min(a, b), max(a, b))
        assert classify_status(today, window, True) == STATUS_COMPLETE

    @given(reference_dates, offsets, offsets, reference_dates, st.integers(min_value=1, max_value=500))
    def test_status_only_moves_forward(self, reference, a, b, today, step):
        window = compute_window(reference, min(a, b), max(a, b))

        earlier = classify_status(today, window, False)
        later = classify_status(today + timedelta(days=step), window, False)

        assert STATUS_PROGRESSION[earlier] <= STATUS_PROGRESSION[later]

    @given(reference_dates, offsets, offsets, reference_dates)
    def test_action_needed_iff_inside_window(self, reference, a, b, today):
        window = compute_window(reference, min(a, b), max(a, b))
        status = classify_status(today, window, False)

        assert (status == STATUS_ACTION_NEEDED) == window.contains(today)


# =============================================================================
# Display Ordering
# =============================================================================


class TestSortProperties:
    """Property-based tests for sort_for_display."""

    @given(st.lists(statuses, max_size=50))
    def test_sort_is_permutation(self, items):
        ordered = sort_for_display(items)
        assert Counter(ordered) == Counter(items)

    @given(st.lists(statuses, max_size=50))
    def test_sort_orders_by_priority(self, items):
        ordered = sort_for_display(items)
        priorities = [DISPLAY_PRIORITY[status] for status in ordered]
        assert priorities == sorted(priorities)
        assert sort_for_display(ordered) == ordered

    @given(st.lists(st.tuples(st.integers(), statuses), max_size=30))
    def test_sort_is_stable(self, items):
        ordered = sort_for_display(items, status_of=lambda item: item[1])
        for status in set(status for _, status in items):
            assert [item for item in ordered if item[1] == status] == [
                item for item in items if item[1] == status
            ]


# =============================================================================
# Recipient Normalization
# =============================================================================


class TestRecipientProperties:

    @given(
        st.lists(
            st.from_regex(r"[a-zA-Z][a-zA-Z0-9]{0,10}@example\.com", fullmatch=True),
            max_size=20,
        )
    )
    def test_no_case_insensitive_duplicates(self, addresses):
        cleaned = normalize_recipients(addresses)
        lowered = [address.casefold() for address in cleaned]

        assert len(lowered) == len(set(lowered))
        assert set(lowered) == set(address.casefold() for address in addresses)
