"""
Management command to send the daily HOPE Update Visit report.

Usage:
    python manage.py send_hope_visit_report
    python manage.py send_hope_visit_report --date 2024-02-21 --source census.xlsx
"""

from certwatch.management.commands._base import BatchCommand
from certwatch.products.hopevisits.constants import REPORT_NAME
from certwatch.products.hopevisits.services import run_hope_visit_report


class Command(BatchCommand):
    help = 'Email the daily HOPE Update Visit (HUV) status report'
    report_name = REPORT_NAME

    def run_batch(self, config, today):
        return run_hope_visit_report(config, today=today)

    def describe_result(self, report):
        yield f'Run date: {report.run_date.isoformat()}'
        yield f'Patients: {len(report.patients)}'
