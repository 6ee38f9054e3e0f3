"""
Management command to send CTI staff reminders.

Usage:
    python manage.py send_staff_reminders
"""

from certwatch.management.commands._base import BatchCommand
from certwatch.products.certification.constants import REPORT_STAFF_REMINDERS
from certwatch.products.certification.services import send_staff_reminders


class Command(BatchCommand):
    help = 'Email a reminder to every recipient for each row flagged to notify staff'
    report_name = REPORT_STAFF_REMINDERS

    def run_batch(self, config, today):
        return send_staff_reminders(config, today=today)

    def describe_result(self, run):
        yield f'Flagged patients: {len(run.reminders)}'
