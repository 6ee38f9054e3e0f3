"""
certwatch Constants and Configuration Values.

Centralized location for status codes, display labels and the date offsets
used by the visit and certification workflows.
"""

from datetime import date

# =============================================================================
# Window Status
# =============================================================================

STATUS_COMPLETE = "COMPLETE"
STATUS_ACTION_NEEDED = "ACTION_NEEDED"
STATUS_OVERDUE = "OVERDUE"
STATUS_UPCOMING = "UPCOMING"

# Labels used in report emails
STATUS_LABELS = {
    STATUS_COMPLETE: "✅ Complete",
    STATUS_OVERDUE: "❌ OVERDUE",
    STATUS_ACTION_NEEDED: "❗ ACTION NEEDED",
    STATUS_UPCOMING: "\U0001f5d3️ Upcoming",
}

# Display order for human review: most urgent first
DISPLAY_PRIORITY = {
    STATUS_OVERDUE: 0,
    STATUS_ACTION_NEEDED: 1,
    STATUS_COMPLETE: 2,
    STATUS_UPCOMING: 3,
}

# Order a single incomplete window moves through as time passes
STATUS_PROGRESSION = {
    STATUS_UPCOMING: 0,
    STATUS_ACTION_NEEDED: 1,
    STATUS_OVERDUE: 2,
}


# =============================================================================
# Date Handling
# =============================================================================

# Spreadsheet serial dates count days from this epoch
SPREADSHEET_EPOCH = date(1899, 12, 30)

# Accepted text formats for dates typed into spreadsheet cells
DATE_INPUT_FORMATS = [
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
]

# Values treated as a checked box in flag columns
TRUTHY_FLAG_VALUES = {"true", "yes", "y", "1", "x", "done", "complete"}


# =============================================================================
# Email Delivery
# =============================================================================

EMAIL_RETRY_MAX_RETRIES = 3
EMAIL_RETRY_BASE_DELAY = 1.0  # seconds, doubled on every retry

# Legend shown under report tables, in display order
STATUS_DESCRIPTIONS = [
    (STATUS_ACTION_NEEDED, "Visit window is currently active."),
    (STATUS_OVERDUE, "Visit window has passed and is not marked complete."),
    (STATUS_COMPLETE, "Visit is marked as complete."),
    (STATUS_UPCOMING, "Visit window is in the future."),
]
