"""
Development settings for certwatch.

Inherits from base settings; emails print to the console.
"""

from .base import *  # noqa: F403

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config(  # noqa: F405
    "SECRET_KEY", default="django-insecure-dev-key-change-in-production"
)

DEBUG = config("DEBUG", default=True, cast=bool)  # noqa: F405

# =============================================================================
# EMAIL CONFIGURATION (Development)
# =============================================================================

EMAIL_BACKEND = config(  # noqa: F405
    "EMAIL_BACKEND", default="django.core.mail.backends.console.EmailBackend"
)

# =============================================================================
# LOGGING (Development)
# =============================================================================

# - Enables DEBUG level logging
# - Uses SelectivePHIScrubberFilter (email addresses stay visible)
# - Includes debug.log file with verbose output
LOGGING = get_logging_config(  # noqa: F405
    base_dir=BASE_DIR,  # noqa: F405
    environment="development",
    log_level="DEBUG",
)
