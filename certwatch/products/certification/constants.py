"""
Hospice certification constants.

A hospice benefit is split into certification periods counted from the
admission date. Which paperwork a recertification needs depends on the period
the patient is in:

1. Initial (0-90 days)          - 90 day cert, attending cert, patient history
2. Second Period (91-180 days)  - second 90 day cert, progress note
3. Subsequent (180+ days)       - 60 day cert, progress note
"""

# =============================================================================
# Report Profiles
# =============================================================================

REPORT_CERTIFICATION = "certification"
REPORT_STAFF_REMINDERS = "staff_reminders"


# =============================================================================
# Documents
# =============================================================================

DOCUMENT_60DAY = "60DAY"
DOCUMENT_90DAY1 = "90DAY1"
DOCUMENT_90DAY2 = "90DAY2"
DOCUMENT_ATTEND_CERT = "ATTEND_CERT"
DOCUMENT_PROGRESS_NOTE = "PROGRESS_NOTE"
DOCUMENT_PATIENT_HISTORY = "PATIENT_HISTORY"


# =============================================================================
# Certification Periods
# =============================================================================

# (last day of period or None for open-ended, period name, required documents)
CERT_PERIODS = [
    (90, "Initial (0-90 days)", (DOCUMENT_90DAY1, DOCUMENT_ATTEND_CERT, DOCUMENT_PATIENT_HISTORY)),
    (180, "Second Period (91-180 days)", (DOCUMENT_90DAY2, DOCUMENT_PROGRESS_NOTE)),
    (None, "Subsequent (180+ days)", (DOCUMENT_60DAY, DOCUMENT_PROGRESS_NOTE)),
]


# =============================================================================
# Weekly Summary Urgency
# =============================================================================

URGENCY_THIS_WEEK = "THIS_WEEK"
URGENCY_SOON = "SOON"
URGENCY_UPCOMING = "UPCOMING"

URGENCY_CHOICES = [
    (URGENCY_THIS_WEEK, "This Week!"),
    (URGENCY_SOON, "Soon"),
    (URGENCY_UPCOMING, "Upcoming"),
]

URGENCY_LABELS = dict(URGENCY_CHOICES)

URGENCY_COLORS = {
    URGENCY_THIS_WEEK: "#dc3545",
    URGENCY_SOON: "#ffc107",
    URGENCY_UPCOMING: "#28a745",
}

# Days until the notify date
URGENCY_THIS_WEEK_DAYS = 7
URGENCY_SOON_DAYS = 14


# =============================================================================
# Spreadsheet Fields
# =============================================================================

FIELD_ADMISSION_DATE = "admission_date"
FIELD_NOTIFY_DATE = "notify_date"
FIELD_CDATE_1 = "cdate_1"
FIELD_CDATE_2 = "cdate_2"
FIELD_MR_NUMBER = "mr_number"
FIELD_PATIENT_NAME = "patient_name"
FIELD_CURRENT_PERIOD = "current_period"
FIELD_NOTIFY_STAFF = "notify_staff"

# Staff are flagged this many days before a certification period ends
STAFF_REMINDER_LEAD_DAYS = 15

STAFF_REMINDER_SUBJECT = "[CTI Notification System]"
STAFF_DIGEST_SUBJECT = "[CTI Notification System] Weekly Summary"
