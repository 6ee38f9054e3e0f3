"""Shared argument handling for the batch-run management commands."""

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import CertwatchError


def parse_run_date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise CommandError(f"Invalid --date {value!r}, expected YYYY-MM-DD")


class BatchCommand(BaseCommand):
    """
    Base class for commands that run one report batch.

    Subclasses set ``report_name`` and implement ``run_batch`` and
    ``describe_result``.
    """

    report_name = None

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            help='Run as if today were this date (YYYY-MM-DD)',
        )
        parser.add_argument(
            '--source',
            help='Spreadsheet (.xlsx or .csv) to read instead of the configured source',
        )
        parser.add_argument(
            '--sheet',
            help='Worksheet name to read',
        )

    def handle(self, *args, **options):
        today = parse_run_date(options['date']) if options['date'] else None

        try:
            config = ReportConfig.from_settings(self.report_name).with_overrides(
                source=options['source'], sheet_name=options['sheet']
            )
            result = self.run_batch(config, today)
        except CertwatchError as e:
            raise CommandError(str(e))

        for line in self.describe_result(result):
            self.stdout.write(line)
        if result.skipped:
            self.stdout.write(self.style.WARNING(f'Skipped {len(result.skipped)} row(s):'))
            for error in result.skipped:
                self.stdout.write(f'  {error.describe()}')
        self.stdout.write(
            self.style.SUCCESS(f'Done: {result.messages_sent} message(s) sent')
        )

    def run_batch(self, config, today):
        raise NotImplementedError

    def describe_result(self, result):
        return []
