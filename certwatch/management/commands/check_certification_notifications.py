"""
Management command for the daily certification check.

Usage:
    python manage.py check_certification_notifications
    python manage.py check_certification_notifications --date 2024-02-21
"""

from certwatch.management.commands._base import BatchCommand
from certwatch.products.certification.constants import REPORT_CERTIFICATION
from certwatch.products.certification.services import check_certification_notifications


class Command(BatchCommand):
    help = 'Prepare documents and alert staff for certifications due today'
    report_name = REPORT_CERTIFICATION

    def run_batch(self, config, today):
        return check_certification_notifications(config, today=today)

    def describe_result(self, run):
        yield f'Run date: {run.run_date.isoformat()}'
        yield f'Patients due: {len(run.patients)}'
        yield f'Documents prepared: {len(run.documents)}'
        if run.document_errors:
            yield self.style.WARNING(f'Document errors: {len(run.document_errors)}')
