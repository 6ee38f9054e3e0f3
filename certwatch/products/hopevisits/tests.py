"""
Tests for the daily HOPE Update Visit (HUV) report.
"""

import copy
import shutil
import tempfile
from datetime import date
from io import StringIO
from pathlib import Path

from django.conf import settings
from django.core import mail
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, override_settings

from certwatch.constants import (
    STATUS_ACTION_NEEDED,
    STATUS_COMPLETE,
    STATUS_OVERDUE,
    STATUS_UPCOMING,
)
from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import (
    ConfigurationError,
    InvalidReferenceDate,
    InvalidWindowDefinition,
)
from certwatch.products.hopevisits.constants import REPORT_NAME, get_hope_visit_windows
from certwatch.products.hopevisits.services import (
    HopeVisitReportService,
    run_hope_visit_report,
)
from certwatch.tasks import send_hope_visit_report
from certwatch.tests.factories import HOPE_VISIT_COLUMNS, HopeVisitRowFactory, build_rows

TODAY = date(2024, 2, 15)


def census_rows():
    return build_rows(
        HopeVisitRowFactory,
        HOPE_VISIT_COLUMNS,
        batch=[
            {"patient_name": "Ann Upcoming", "start_of_care": date(2024, 2, 12)},
            {"patient_name": "Bob Overdue", "start_of_care": "1/1/2024"},
            {"patient_name": "Cal Active", "start_of_care": date(2024, 2, 6)},
            {
                "patient_name": "Dee Done",
                "start_of_care": date(2024, 1, 1),
                "huv1_complete": "TRUE",
                "huv2_complete": True,
            },
            {"patient_name": "Eve Unknown", "start_of_care": "unknown"},
        ],
    )


class HopeVisitReportServiceTest(SimpleTestCase):

    def setUp(self):
        self.config = ReportConfig.from_settings(REPORT_NAME)
        self.service = HopeVisitReportService(self.config)

    def test_default_windows(self):
        windows = get_hope_visit_windows()
        self.assertEqual(
            [(w.name, w.start_offset, w.end_offset) for w in windows],
            [("HUV1", 5, 14), ("HUV2", 15, 28)],
        )

    def test_patients_sorted_most_urgent_first(self):
        report = self.service.build_report(census_rows(), TODAY)

        self.assertEqual(
            [patient.patient_name for patient in report.patients],
            ["Bob Overdue", "Cal Active", "Dee Done", "Ann Upcoming"],
        )
        self.assertEqual(
            [patient.most_urgent_status for patient in report.patients],
            [STATUS_OVERDUE, STATUS_ACTION_NEEDED, STATUS_COMPLETE, STATUS_UPCOMING],
        )

    def test_window_statuses(self):
        report = self.service.build_report(census_rows(), TODAY)
        cal = report.patients[1]

        self.assertEqual([entry.name for entry in cal.windows], ["HUV1", "HUV2"])
        self.assertEqual(cal.windows[0].status, STATUS_ACTION_NEEDED)
        self.assertEqual(cal.windows[0].date_range, "(2/11 - 2/20)")
        self.assertEqual(cal.windows[1].status, STATUS_UPCOMING)
        self.assertEqual(cal.windows[1].date_range, "(2/21 - 3/5)")

    def test_bad_rows_skipped(self):
        report = self.service.build_report(census_rows(), TODAY)

        self.assertEqual(len(report.skipped), 1)
        self.assertIsInstance(report.skipped[0], InvalidReferenceDate)
        self.assertEqual(report.skipped[0].row_number, 6)

    def test_calendar_overflow_skips_row(self):
        rows = build_rows(
            HopeVisitRowFactory,
            HOPE_VISIT_COLUMNS,
            batch=[{"start_of_care": date(9999, 12, 25)}, {"patient_name": "Jane Roe"}],
        )
        report = self.service.build_report(rows, TODAY)

        self.assertEqual([patient.patient_name for patient in report.patients], ["Jane Roe"])
        self.assertEqual(report.skipped[0].row_number, 2)
        self.assertEqual(report.skipped[0].field, "start_of_care")

    def test_no_email_without_patients(self):
        report = self.service.build_report([], TODAY)
        self.assertEqual(self.service.send_report(report), 0)
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(HOPE_VISIT_WINDOWS={"HUV1": (14, 5)})
    def test_invalid_window_override(self):
        with self.assertRaises(InvalidWindowDefinition):
            HopeVisitReportService(self.config)

    @override_settings(HOPE_VISIT_WINDOWS={"HUV1": (5, 14), "HUV3": (29, 40)})
    def test_extra_window_needs_completion_column(self):
        with self.assertRaises(ConfigurationError) as cm:
            HopeVisitReportService(self.config)
        self.assertIn("huv3_complete", str(cm.exception))


class RunHopeVisitReportTest(SimpleTestCase):

    def test_report_email(self):
        report = run_hope_visit_report(
            ReportConfig.from_settings(REPORT_NAME), today=TODAY, rows=census_rows()
        )

        self.assertEqual(report.messages_sent, 1)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, "Daily HOPE Update Visit (HUV) Report - 02/15/2024")
        self.assertEqual(message.to, ["huv@example.com"])
        self.assertIn("HOPE Update Visit (HUV) Daily Status - 02/15/2024", message.body)
        self.assertIn("HUV1: ❗ ACTION NEEDED (2/11 - 2/20)", message.body)
        self.assertLess(message.body.index("Bob Overdue"), message.body.index("Ann Upcoming"))
        self.assertNotIn("Eve Unknown", message.body)

        html = message.alternatives[0][0]
        self.assertIn("Cal Active", html)
        self.assertIn("Status Legend", html)


class HopeVisitCommandTest(SimpleTestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.source = self.tmpdir / "census.csv"
        self.source.write_text(
            "Patient,Start of Care,HUV1 Done,HUV2 Done\n"
            "Cal Active,2/6/2024,,\n"
            "Eve Unknown,unknown,,\n",
            encoding="utf-8",
        )

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_command(self):
        out = StringIO()
        call_command(
            "send_hope_visit_report", "--date", "2024-02-15", "--source", str(self.source), stdout=out
        )

        output = out.getvalue()
        self.assertIn("Patients: 1", output)
        self.assertIn("Skipped 1 row(s)", output)
        self.assertIn("row 3, field start_of_care", output)
        self.assertIn("Done: 1 message(s) sent", output)
        self.assertEqual(len(mail.outbox), 1)

    def test_missing_source(self):
        with self.assertRaises(CommandError):
            call_command("send_hope_visit_report", "--source", str(self.tmpdir / "missing.xlsx"))

    def test_bad_date(self):
        with self.assertRaises(CommandError):
            call_command("send_hope_visit_report", "--date", "02/15/2024", "--source", str(self.source))

    def test_task(self):
        reports = copy.deepcopy(settings.CERTWATCH_REPORTS)
        reports[REPORT_NAME]["source"] = str(self.source)

        with self.settings(CERTWATCH_REPORTS=reports):
            result = send_hope_visit_report.delay(run_date="2024-02-15").get()

        self.assertEqual(result["status"], "success")
        self.assertEqual(result["run_date"], "2024-02-15")
        self.assertEqual(result["patients"], 1)
        self.assertEqual(result["skipped"], 1)
        self.assertEqual(result["messages_sent"], 1)
