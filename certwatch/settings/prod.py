"""
Production settings for certwatch.

Inherits from base settings and enforces secure production defaults.
"""

from .base import *  # noqa: F403, F405

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config("SECRET_KEY")  # Required in production, no default

DEBUG = False  # Always False in production

# =============================================================================
# EMAIL CONFIGURATION (Production)
# =============================================================================

EMAIL_BACKEND = config(
    "EMAIL_BACKEND", default="django.core.mail.backends.smtp.EmailBackend"
)
EMAIL_HOST = config("EMAIL_HOST", default="localhost")
EMAIL_PORT = config("EMAIL_PORT", default=587, cast=int)
EMAIL_HOST_USER = config("EMAIL_HOST_USER", default="")
EMAIL_HOST_PASSWORD = config("EMAIL_HOST_PASSWORD", default="")
EMAIL_USE_TLS = config("EMAIL_USE_TLS", default=True, cast=bool)
EMAIL_TIMEOUT = config("EMAIL_TIMEOUT", default=30, cast=int)

# =============================================================================
# ERROR TRACKING (Sentry)
# =============================================================================

SENTRY_DSN = config("SENTRY_DSN", default=None)

if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.django import DjangoIntegration

    from certwatch.logging_filters import scrub_dict

    def filter_phi_from_errors(event, hint):
        """
        Remove potential PHI from error reports before sending to Sentry.

        Exception messages can quote spreadsheet cells (names, MR numbers,
        dates), so they are scrubbed along with breadcrumbs and extras.
        """
        if "exception" in event:
            for exc in event["exception"].get("values", []):
                if "value" in exc:
                    exc["value"] = scrub_dict({"value": str(exc["value"])})["value"]

        if "breadcrumbs" in event:
            event["breadcrumbs"] = scrub_dict(event["breadcrumbs"])

        if "extra" in event:
            event["extra"] = scrub_dict(event["extra"])

        if "user" in event and "email" in event["user"]:
            event["user"]["email"] = "[REDACTED]"

        return event

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
            CeleryIntegration(),
        ],
        environment=config("ENVIRONMENT", default="production"),
        traces_sample_rate=0.1,
        # HIPAA Compliance: Scrub PHI before sending
        before_send=filter_phi_from_errors,
        # Never send PII
        send_default_pii=False,
        release=config("SENTRY_RELEASE", default=None),
        server_name=config("SERVER_NAME", default=None),
    )
else:
    # Sentry not configured - errors will only appear in logs
    pass
