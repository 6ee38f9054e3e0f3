"""
Management command to send the CTI weekly digest.

Usage:
    python manage.py send_staff_weekly_digest
"""

from certwatch.management.commands._base import BatchCommand
from certwatch.products.certification.constants import REPORT_STAFF_REMINDERS
from certwatch.products.certification.services import send_staff_weekly_digest


class Command(BatchCommand):
    help = 'Email the digest of notify dates in the current and previous week'
    report_name = REPORT_STAFF_REMINDERS

    def run_batch(self, config, today):
        return send_staff_weekly_digest(config, today=today)

    def describe_result(self, run):
        yield f'Period: {run.period_start.isoformat()} to {run.period_end.isoformat()}'
        yield f'Patients listed: {len(run.reminders)}'
