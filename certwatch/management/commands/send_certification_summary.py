"""
Management command for the weekly certification summary.

Usage:
    python manage.py send_certification_summary
"""

from certwatch.management.commands._base import BatchCommand
from certwatch.products.certification.constants import REPORT_CERTIFICATION
from certwatch.products.certification.services import send_certification_summary


class Command(BatchCommand):
    help = 'Email the summary of certifications due before the end of the month'
    report_name = REPORT_CERTIFICATION

    def run_batch(self, config, today):
        return send_certification_summary(config, today=today)

    def describe_result(self, run):
        yield f'Period: {run.run_date.isoformat()} to {run.period_end.isoformat()}'
        yield f'Upcoming patients: {len(run.patients)}'
        yield f'Documents attached: {len(run.documents)}'
        if run.document_errors:
            yield self.style.WARNING(f'Document errors: {len(run.document_errors)}')
