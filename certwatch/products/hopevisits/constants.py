"""
HOPE Update Visit (HUV) constants.

Hospice patients get two HOPE Update Visits, each due inside a fixed range of
days after the start of care:

1. HUV1 - days 5 through 14
2. HUV2 - days 15 through 28

Both bounds are inclusive. Deployments may override the offsets with the
HOPE_VISIT_WINDOWS setting, a mapping of window name to (start, end).
"""

from django.conf import settings

from certwatch.core.windows import WindowDefinition

# Window name -> (start_offset, end_offset) in days after start of care
HOPE_VISIT_WINDOWS = {
    "HUV1": (5, 14),
    "HUV2": (15, 28),
}

# Spreadsheet fields read by the report
FIELD_PATIENT_NAME = "patient_name"
FIELD_START_OF_CARE = "start_of_care"

REPORT_NAME = "hope_visits"


def completion_field(window_name: str) -> str:
    """Name of the flag column marking a window's visit as done, e.g. huv1_complete."""
    return f"{window_name.lower()}_complete"


def get_hope_visit_windows():
    """
    Get the configured HUV window definitions, in display order.

    Raises:
        InvalidWindowDefinition: if an override has start after end
    """
    windows = getattr(settings, "HOPE_VISIT_WINDOWS", HOPE_VISIT_WINDOWS)
    return [
        WindowDefinition(name, int(start), int(end))
        for name, (start, end) in windows.items()
    ]
