"""
Centralized logging configuration for certwatch.

Builds the Django LOGGING dict used by every settings module:
- Console output plus a daily rotating application log
- Separate error log with longer retention
- PHI scrubbing on every handler (selective in development)
- Structured key=value formatting with batch context
  (see certwatch.logging_utils)
"""

from pathlib import Path
from typing import Any, Dict, Union

# Days of rotated log files to keep
LOG_RETENTION_DAYS = {
    "app": 30,
    "error": 90,
    "debug": 7,
}


def get_logging_config(
    base_dir: Union[str, Path],
    environment: str = "production",
    log_level: str = "INFO",
) -> Dict[str, Any]:
    """
    Build a logging configuration.

    Args:
        base_dir: project root; log files go to ``<base_dir>/logs``
        environment: "production", "development" or "test"
        log_level: level for certwatch loggers

    Returns:
        dict suitable for Django's LOGGING setting
    """
    log_dir = Path(base_dir) / "logs"
    is_development = environment == "development"

    scrubber = (
        "certwatch.logging_filters.SelectivePHIScrubberFilter"
        if is_development
        else "certwatch.logging_filters.PHIScrubberFilter"
    )

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "structured",
            "filters": ["phi_scrubber"],
        },
    }
    certwatch_handlers = ["console"]

    if environment != "test":
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["app_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "filename": str(log_dir / "certwatch.log"),
            "when": "midnight",
            "backupCount": LOG_RETENTION_DAYS["app"],
            "formatter": "structured",
            "filters": ["phi_scrubber"],
            "encoding": "utf-8",
        }
        handlers["error_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "filename": str(log_dir / "errors.log"),
            "when": "midnight",
            "backupCount": LOG_RETENTION_DAYS["error"],
            "formatter": "structured",
            "filters": ["phi_scrubber"],
            "level": "WARNING",
            "encoding": "utf-8",
        }
        certwatch_handlers += ["app_file", "error_file"]

    if is_development:
        handlers["debug_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "filename": str(log_dir / "debug.log"),
            "when": "midnight",
            "backupCount": LOG_RETENTION_DAYS["debug"],
            "formatter": "verbose",
            "filters": ["phi_scrubber"],
            "level": "DEBUG",
            "encoding": "utf-8",
        }
        certwatch_handlers.append("debug_file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "phi_scrubber": {"()": scrubber},
        },
        "formatters": {
            "structured": {
                "()": "certwatch.logging_utils.StructuredLogFormatter",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "verbose": {
                "format": "{asctime} {levelname} {name} {module}:{lineno} {message}",
                "style": "{",
            },
        },
        "handlers": handlers,
        "loggers": {
            "certwatch": {
                "handlers": certwatch_handlers,
                "level": log_level,
                "propagate": False,
            },
            "celery": {
                "handlers": ["console"],
                "level": "INFO" if not is_development else "DEBUG",
            },
            "django": {
                "handlers": ["console"],
                "level": "WARNING",
            },
        },
    }
