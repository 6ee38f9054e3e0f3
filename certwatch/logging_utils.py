"""
Structured logging utilities for certwatch.

Provides context management and structured logging helpers so every log line
written during a batch run carries the report name, the batch date and, while
a row is being processed, its spreadsheet row number.

Usage:
    from certwatch.logging_utils import get_service_logger, add_log_context

    logger = get_service_logger('hope_visits')

    with add_log_context(report='hope_visits', run_date=today.isoformat()):
        logger.info("Building report")
"""

import logging
from contextvars import ContextVar
from typing import Any, Dict, Optional


# Per-task storage for log context
_log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})

# Fields rendered by StructuredLogFormatter, in output order
CONTEXT_FIELDS = [
    'report',
    'run_date',
    'row_number',
    'service_name',
    'task_name',
]


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically includes context in log records.

    Context set with set_log_context / add_log_context is merged into the
    ``extra`` of every record, so formatters and filters can read it.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        context = _log_context.get({})

        extra = kwargs.get('extra', {})
        extra.update(context)
        kwargs['extra'] = extra

        return msg, kwargs


def set_log_context(**kwargs: Any) -> None:
    """
    Set context for all subsequent log messages in this thread/async context.

    Usage:
        set_log_context(report='certification', run_date='2024-02-21')
    """
    current_context = _log_context.get({}).copy()
    current_context.update(kwargs)
    _log_context.set(current_context)


def clear_log_context() -> None:
    """Clear all log context for the current thread/async context."""
    _log_context.set({})


def get_log_context() -> Dict[str, Any]:
    """Get a copy of the current log context."""
    return _log_context.get({}).copy()


class add_log_context:
    """
    Context manager to temporarily add log context.

    Usage:
        with add_log_context(row_number=12):
            logger.info("Preparing documents")  # Includes row_number
        # Context is restored after the block
    """

    def __init__(self, **kwargs: Any):
        self.new_context = kwargs
        self.previous_context: Optional[Dict[str, Any]] = None

    def __enter__(self):
        self.previous_context = get_log_context()
        set_log_context(**self.new_context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_context is not None:
            _log_context.set(self.previous_context)
        else:
            clear_log_context()


class StructuredLogFormatter(logging.Formatter):
    """
    Log formatter that outputs structured (key=value) logs.

    Example output:
        2024-02-21 09:00:01 INFO report=certification run_date=2024-02-21 message="Processed 3 patient(s)"
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, self.datefmt)
        level = record.levelname
        parts = [f"{timestamp} {level}"]

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                value = getattr(record, field)
                # Quote strings with spaces
                if isinstance(value, str) and ' ' in value:
                    parts.append(f'{field}="{value}"')
                else:
                    parts.append(f'{field}={value}')

        msg = record.getMessage()
        if ' ' in msg or '=' in msg:
            parts.append(f'message="{msg}"')
        else:
            parts.append(f'message={msg}')

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)

        if record.exc_text:
            parts.append(f'\n{record.exc_text}')

        return ' '.join(parts)


class _NamedLoggerAdapter(ContextualLoggerAdapter):
    """Adds a fixed key (service_name / task_name) to every record."""

    def __init__(self, logger: logging.Logger, key: str, value: str):
        super().__init__(logger, {})
        self.key = key
        self.value = value

    def process(self, msg, kwargs):
        msg, kwargs = super().process(msg, kwargs)
        kwargs['extra'][self.key] = self.value
        return msg, kwargs


def get_service_logger(service_name: str) -> ContextualLoggerAdapter:
    """
    Get a logger for a report service with the service name included.

    Usage:
        logger = get_service_logger('certification')
        logger.info("Documents prepared")  # Includes service_name=certification
    """
    return _NamedLoggerAdapter(
        logging.getLogger(f"certwatch.services.{service_name}"), 'service_name', service_name
    )


def get_task_logger(task_name: str) -> ContextualLoggerAdapter:
    """Get a logger for a Celery task with the task name included."""
    return _NamedLoggerAdapter(
        logging.getLogger(f"certwatch.tasks.{task_name}"), 'task_name', task_name
    )
