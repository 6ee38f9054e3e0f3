"""
Visit and certification window classification.

A window is a closed date interval measured in days from a reference date
(admission / start of care). Each window gets one of four statuses relative
to "today":

1. COMPLETE      - the tracked activity is flagged as done
2. OVERDUE       - today is past the window end
3. ACTION_NEEDED - today falls inside the window (bounds inclusive)
4. UPCOMING      - the window has not opened yet

Checks run in that order, so completion overrides lateness and lateness
overrides an open window. Everything here is a pure function of its inputs.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from certwatch.constants import (
    DISPLAY_PRIORITY,
    STATUS_ACTION_NEEDED,
    STATUS_COMPLETE,
    STATUS_OVERDUE,
    STATUS_UPCOMING,
)
from certwatch.core.dates import format_month_day, parse_date
from certwatch.core.exceptions import InvalidReferenceDate, InvalidWindowDefinition

T = TypeVar("T")


@dataclass(frozen=True)
class WindowDefinition:
    """Named pair of inclusive day offsets from the reference date."""

    name: str
    start_offset: int
    end_offset: int

    def __post_init__(self):
        if self.start_offset > self.end_offset:
            raise InvalidWindowDefinition(
                self.name, self.start_offset, self.end_offset
            )

    def window_for(self, reference_date: Any) -> "Window":
        return compute_window(reference_date, self.start_offset, self.end_offset)


@dataclass(frozen=True)
class Window:
    start: date
    end: date  # inclusive

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def display_range(self) -> str:
        """Window formatted the way staff see it in reports, e.g. (2/11 - 2/20)."""
        return f"({format_month_day(self.start)} - {format_month_day(self.end)})"


def compute_window(reference_date: Any, start_offset: int, end_offset: int) -> Window:
    """
    Compute the window ``[reference + start_offset, reference + end_offset]``.

    Args:
        reference_date: admission date as a date, datetime, serial number or
            string; any time of day is dropped
        start_offset: days from the reference date to the first day
        end_offset: days from the reference date to the last day

    Returns:
        Window with calendar-correct bounds

    Raises:
        InvalidReferenceDate: if the reference date cannot be parsed
        InvalidWindowDefinition: if start_offset > end_offset
    """
    if start_offset > end_offset:
        raise InvalidWindowDefinition("<adhoc>", start_offset, end_offset)

    anchor = parse_date(reference_date)
    if anchor is None:
        raise InvalidReferenceDate(f"unparseable reference date {reference_date!r}")

    try:
        return Window(
            start=anchor + timedelta(days=start_offset),
            end=anchor + timedelta(days=end_offset),
        )
    except OverflowError as e:
        raise InvalidReferenceDate(
            f"window offsets move {anchor.isoformat()} outside the calendar"
        ) from e


def classify_status(today: date, window: Window, is_complete: bool) -> str:
    """
    Classify a window relative to today.

    Args:
        today: the batch's reference "now", date only
        window: the window to classify
        is_complete: externally tracked completion flag

    Returns:
        One of STATUS_COMPLETE, STATUS_OVERDUE, STATUS_ACTION_NEEDED,
        STATUS_UPCOMING
    """
    if is_complete:
        return STATUS_COMPLETE
    if today > window.end:
        return STATUS_OVERDUE
    if window.start <= today <= window.end:
        return STATUS_ACTION_NEEDED
    return STATUS_UPCOMING


def rank_for_display(status: str) -> int:
    """Sort priority for human review (lower sorts first)."""
    return DISPLAY_PRIORITY[status]


def sort_for_display(
    items: Iterable[T], status_of: Optional[Callable[[T], str]] = None
) -> List[T]:
    """
    Order items most-urgent first.

    The sort is stable: items with equal priority keep their input order.

    Args:
        items: statuses, or objects carrying a status
        status_of: extracts the status from an item (defaults to the item)
    """
    if status_of is None:
        status_of = lambda item: item  # noqa: E731
    return sorted(items, key=lambda item: rank_for_display(status_of(item)))
