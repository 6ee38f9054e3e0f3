"""
Celery tasks for certwatch.

Each task loads its report profile from settings, runs one batch against
today's date and returns a JSON-serializable summary. Delivery and source
errors propagate so the task is marked failed.
"""

from datetime import date
from typing import Any, Dict, Optional

from celery import shared_task

from certwatch.logging_utils import get_task_logger


def _parse_run_date(run_date: Optional[str]) -> Optional[date]:
    return date.fromisoformat(run_date) if run_date else None


@shared_task(name='certwatch.tasks.send_hope_visit_report')
def send_hope_visit_report(run_date: Optional[str] = None) -> Dict[str, Any]:
    """
    Daily HOPE Update Visit report.

    Args:
        run_date: ISO date to run as (defaults to today)
    """
    from certwatch.core.config import ReportConfig
    from certwatch.products.hopevisits.constants import REPORT_NAME
    from certwatch.products.hopevisits.services import run_hope_visit_report

    logger = get_task_logger('send_hope_visit_report')
    try:
        report = run_hope_visit_report(
            ReportConfig.from_settings(REPORT_NAME), today=_parse_run_date(run_date)
        )
    except Exception as e:
        logger.error(f"HOPE visit report failed: {e}")
        raise

    return {
        'run_date': report.run_date.isoformat(),
        'patients': len(report.patients),
        'skipped': len(report.skipped),
        'messages_sent': report.messages_sent,
        'status': 'success',
    }


def _certification_summary(run) -> Dict[str, Any]:
    return {
        'run_date': run.run_date.isoformat(),
        'patients': len(run.patients),
        'skipped': len(run.skipped),
        'documents': len(run.documents),
        'document_errors': len(run.document_errors),
        'messages_sent': run.messages_sent,
        'status': 'success',
    }


@shared_task(name='certwatch.tasks.check_certification_notifications')
def check_certification_notifications(run_date: Optional[str] = None) -> Dict[str, Any]:
    """Daily check for patients whose certification notify date is today."""
    from certwatch.core.config import ReportConfig
    from certwatch.products.certification import services
    from certwatch.products.certification.constants import REPORT_CERTIFICATION

    logger = get_task_logger('check_certification_notifications')
    try:
        run = services.check_certification_notifications(
            ReportConfig.from_settings(REPORT_CERTIFICATION), today=_parse_run_date(run_date)
        )
    except Exception as e:
        logger.error(f"Certification check failed: {e}")
        raise
    return _certification_summary(run)


@shared_task(name='certwatch.tasks.send_certification_summary')
def send_certification_summary(run_date: Optional[str] = None) -> Dict[str, Any]:
    """Weekly summary of certifications due before the end of the month."""
    from certwatch.core.config import ReportConfig
    from certwatch.products.certification import services
    from certwatch.products.certification.constants import REPORT_CERTIFICATION

    logger = get_task_logger('send_certification_summary')
    try:
        run = services.send_certification_summary(
            ReportConfig.from_settings(REPORT_CERTIFICATION), today=_parse_run_date(run_date)
        )
    except Exception as e:
        logger.error(f"Certification summary failed: {e}")
        raise
    return _certification_summary(run)


def _staff_summary(run) -> Dict[str, Any]:
    return {
        'run_date': run.run_date.isoformat(),
        'patients': len(run.reminders),
        'skipped': len(run.skipped),
        'messages_sent': run.messages_sent,
        'status': 'success',
    }


@shared_task(name='certwatch.tasks.send_staff_reminders')
def send_staff_reminders(run_date: Optional[str] = None) -> Dict[str, Any]:
    """Reminder emails for rows flagged in the notify-staff column."""
    from certwatch.core.config import ReportConfig
    from certwatch.products.certification import services
    from certwatch.products.certification.constants import REPORT_STAFF_REMINDERS

    logger = get_task_logger('send_staff_reminders')
    try:
        run = services.send_staff_reminders(
            ReportConfig.from_settings(REPORT_STAFF_REMINDERS), today=_parse_run_date(run_date)
        )
    except Exception as e:
        logger.error(f"Staff reminders failed: {e}")
        raise
    return _staff_summary(run)


@shared_task(name='certwatch.tasks.send_staff_weekly_digest')
def send_staff_weekly_digest(run_date: Optional[str] = None) -> Dict[str, Any]:
    """Friday digest of notify dates in the current and previous week."""
    from certwatch.core.config import ReportConfig
    from certwatch.products.certification import services
    from certwatch.products.certification.constants import REPORT_STAFF_REMINDERS

    logger = get_task_logger('send_staff_weekly_digest')
    try:
        run = services.send_staff_weekly_digest(
            ReportConfig.from_settings(REPORT_STAFF_REMINDERS), today=_parse_run_date(run_date)
        )
    except Exception as e:
        logger.error(f"Staff weekly digest failed: {e}")
        raise
    return _staff_summary(run)
