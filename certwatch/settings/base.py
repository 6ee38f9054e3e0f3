"""
Django base settings for certwatch.

Shared settings common to development, test and production. Report profiles
are read from the environment (or a .env file) with python-decouple.
"""

from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    # Django core
    "django.contrib.contenttypes",
    # certwatch application
    "certwatch.apps.CertwatchConfig",
]

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {},
    },
]

# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = "en-us"
# Batch dates ("today") are taken in the agency's local time zone
TIME_ZONE = config("TIME_ZONE", default="America/New_York")
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# LOGGING (Audit Trail with Retention Policy)
# =============================================================================

from certwatch.logging_config import get_logging_config  # noqa: E402

# - Daily rotation with retention per log type
# - PHI scrubbing on all handlers (HIPAA compliance)
# - Structured logging with report / run_date / row_number context
LOGGING = get_logging_config(
    base_dir=BASE_DIR,
    environment="production",  # Overridden in dev.py and test.py
    log_level="INFO",
)

# =============================================================================
# EMAIL
# =============================================================================

DEFAULT_FROM_EMAIL = config("DEFAULT_FROM_EMAIL", default="notifications@localhost")

# Delivery retry (exponential backoff, base_delay doubles per attempt)
CERTWATCH_EMAIL_RETRY = {
    "max_retries": config("CERTWATCH_EMAIL_MAX_RETRIES", default=3, cast=int),
    "base_delay": config("CERTWATCH_EMAIL_RETRY_DELAY", default=1.0, cast=float),
}

# =============================================================================
# REPORT PROFILES
# =============================================================================

# Column values are 0-based spreadsheet column indices (A=0, B=1, ...)
CERTWATCH_ORGANIZATION_NAME = config(
    "CERTWATCH_ORGANIZATION_NAME", default="Parrish Health Systems of Ohio"
)

CERTWATCH_REPORTS = {
    "hope_visits": {
        "source": config("CERTWATCH_HOPE_VISITS_SOURCE", default=""),
        "sheet_name": config("CERTWATCH_HOPE_VISITS_SHEET", default="Sheet1"),
        "recipients": config("CERTWATCH_HOPE_VISITS_RECIPIENTS", default="", cast=Csv()),
        "columns": {
            "patient_name": 0,  # A
            "start_of_care": 1,  # B
            "huv1_complete": 2,  # C
            "huv2_complete": 3,  # D
        },
        "organization_name": CERTWATCH_ORGANIZATION_NAME,
    },
    "certification": {
        "source": config("CERTWATCH_CERTIFICATION_SOURCE", default=""),
        "sheet_name": config("CERTWATCH_CERTIFICATION_SHEET", default=""),
        "recipients": config("CERTWATCH_CERTIFICATION_RECIPIENTS", default="", cast=Csv()),
        "columns": {
            "admission_date": 1,  # B
            "notify_date": 5,  # F
            "cdate_1": 6,  # G
            "cdate_2": 7,  # H
            "mr_number": 10,  # K
            "patient_name": 11,  # L
        },
        "document_templates": {
            "60DAY": "60day.html",
            "90DAY1": "90day1.html",
            "90DAY2": "90day2.html",
            "ATTEND_CERT": "attend_cert.html",
            "PROGRESS_NOTE": "progress_note.html",
            "PATIENT_HISTORY": "patient_history.html",
        },
        "template_dir": config("CERTWATCH_DOCUMENT_TEMPLATE_DIR", default=""),
        "output_dir": config("CERTWATCH_DOCUMENT_OUTPUT_DIR", default=""),
        "doctor_name": config("CERTWATCH_DOCTOR_NAME", default="Dr. Thomas Smallwood"),
        "organization_name": CERTWATCH_ORGANIZATION_NAME,
    },
    "staff_reminders": {
        "source": config("CERTWATCH_STAFF_REMINDERS_SOURCE", default=""),
        "sheet_name": config("CERTWATCH_STAFF_REMINDERS_SHEET", default=""),
        "recipients": config("CERTWATCH_STAFF_REMINDERS_RECIPIENTS", default="", cast=Csv()),
        "columns": {
            "patient_name": 0,  # A
            "current_period": 2,  # C
            "notify_date": 5,  # F
            "notify_staff": 9,  # J
        },
        "send_individually": True,
    },
}

# HUV window offsets in days after start of care (inclusive). Validated at
# startup by CertwatchConfig.ready().
HOPE_VISIT_WINDOWS = {
    "HUV1": (5, 14),
    "HUV2": (15, 28),
}

# =============================================================================
# CELERY SETTINGS
# =============================================================================

REDIS_URL = config("REDIS_URL", default="redis://localhost:6379")

CELERY_BROKER_URL = config("CELERY_BROKER_URL", default=f"{REDIS_URL}/0")
CELERY_RESULT_BACKEND = config("CELERY_RESULT_BACKEND", default=f"{REDIS_URL}/0")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes
CELERY_TASK_SOFT_TIME_LIMIT = 25 * 60  # 25 minutes

CELERY_BEAT_SCHEDULE = {
    "daily-hope-visit-report": {
        "task": "certwatch.tasks.send_hope_visit_report",
        "schedule": crontab(hour=8, minute=0),
    },
    "daily-certification-check": {
        "task": "certwatch.tasks.check_certification_notifications",
        "schedule": crontab(hour=9, minute=0),
    },
    "weekly-certification-summary": {
        "task": "certwatch.tasks.send_certification_summary",
        "schedule": crontab(day_of_week="monday", hour=8, minute=0),
    },
    "daily-staff-reminders": {
        "task": "certwatch.tasks.send_staff_reminders",
        "schedule": crontab(hour=9, minute=30),
    },
    "weekly-staff-digest": {
        "task": "certwatch.tasks.send_staff_weekly_digest",
        "schedule": crontab(day_of_week="friday", hour=9, minute=30),
    },
}
