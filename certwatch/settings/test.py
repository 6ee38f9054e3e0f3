"""
Test settings for certwatch.
Fast, isolated runs: in-memory database, locmem email, eager Celery and
fixed report profiles that do not depend on the environment.
"""
from .base import *  # noqa: F403, F405

SECRET_KEY = "test-secret-key-not-for-production-use-only"  # pragma: allowlist secret

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Fast email backend for tests (django.core.mail.outbox)
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
DEFAULT_FROM_EMAIL = "certwatch@example.com"

# No sleeping between delivery retries
CERTWATCH_EMAIL_RETRY = {"max_retries": 2, "base_delay": 0}

# Run Celery tasks inline
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

TIME_ZONE = "UTC"
CELERY_TIMEZONE = TIME_ZONE

CERTWATCH_REPORTS = {
    "hope_visits": {
        "recipients": ["huv@example.com"],
        "columns": {
            "patient_name": 0,
            "start_of_care": 1,
            "huv1_complete": 2,
            "huv2_complete": 3,
        },
    },
    "certification": {
        "recipients": ["intake@example.com", "nursing@example.com"],
        "columns": {
            "admission_date": 1,
            "notify_date": 5,
            "cdate_1": 6,
            "cdate_2": 7,
            "mr_number": 10,
            "patient_name": 11,
        },
        "doctor_name": "Dr. Test Physician",
        "organization_name": "Test Hospice",
    },
    "staff_reminders": {
        "recipients": ["a@example.com", "B@example.com", "b@example.com"],
        "columns": {
            "patient_name": 0,
            "current_period": 2,
            "notify_date": 5,
            "notify_staff": 9,
        },
        "send_individually": True,
    },
}

# Quiet logging during tests; certwatch loggers still propagate so
# assertLogs / caplog can capture them
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["null"],
            "level": "CRITICAL",
        },
    },
}

DEBUG = False
