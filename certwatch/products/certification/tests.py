"""
Tests for certification alerts, weekly summaries and staff reminders.

PDF export is patched out; document templates are the packaged defaults.
"""

import shutil
import tempfile
from datetime import date
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from django.core import mail
from django.core.management import call_command
from django.test import SimpleTestCase

from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import InvalidReferenceDate, SourceUnavailable
from certwatch.products.certification.constants import (
    DOCUMENT_60DAY,
    DOCUMENT_90DAY1,
    DOCUMENT_90DAY2,
    DOCUMENT_ATTEND_CERT,
    DOCUMENT_PATIENT_HISTORY,
    DOCUMENT_PROGRESS_NOTE,
    REPORT_CERTIFICATION,
    REPORT_STAFF_REMINDERS,
    URGENCY_SOON,
    URGENCY_THIS_WEEK,
    URGENCY_UPCOMING,
)
from certwatch.products.certification.services import (
    CertificationService,
    build_placeholders,
    check_certification_notifications,
    classify_urgency,
    determine_cert_period,
    next_monday,
    send_certification_summary,
    send_staff_reminders,
    send_staff_weekly_digest,
)
from certwatch.tasks import check_certification_notifications as check_task
from certwatch.tests.factories import (
    CERTIFICATION_COLUMNS,
    STAFF_REMINDER_COLUMNS,
    CertificationRowFactory,
    StaffReminderRowFactory,
    build_rows,
)

FAKE_PDF = b"%PDF-1.7 fake"

# Wednesday
ALERT_DATE = date(2024, 2, 21)


class CertPeriodTest(SimpleTestCase):

    def test_period_boundaries(self):
        cases = [
            (-3, "Initial (0-90 days)"),
            (0, "Initial (0-90 days)"),
            (90, "Initial (0-90 days)"),
            (91, "Second Period (91-180 days)"),
            (180, "Second Period (91-180 days)"),
            (181, "Subsequent (180+ days)"),
            (1000, "Subsequent (180+ days)"),
        ]
        for days, name in cases:
            with self.subTest(days=days):
                self.assertEqual(determine_cert_period(days).name, name)

    def test_required_documents(self):
        self.assertEqual(
            determine_cert_period(10).documents,
            (DOCUMENT_90DAY1, DOCUMENT_ATTEND_CERT, DOCUMENT_PATIENT_HISTORY),
        )
        self.assertEqual(determine_cert_period(100).documents, (DOCUMENT_90DAY2, DOCUMENT_PROGRESS_NOTE))
        self.assertEqual(determine_cert_period(200).documents, (DOCUMENT_60DAY, DOCUMENT_PROGRESS_NOTE))

    def test_urgency(self):
        self.assertEqual(classify_urgency(0), URGENCY_THIS_WEEK)
        self.assertEqual(classify_urgency(7), URGENCY_THIS_WEEK)
        self.assertEqual(classify_urgency(8), URGENCY_SOON)
        self.assertEqual(classify_urgency(14), URGENCY_SOON)
        self.assertEqual(classify_urgency(15), URGENCY_UPCOMING)

    def test_next_monday(self):
        self.assertEqual(next_monday(date(2024, 2, 19)), date(2024, 2, 26))
        self.assertEqual(next_monday(date(2024, 2, 21)), date(2024, 2, 26))
        self.assertEqual(next_monday(date(2024, 2, 25)), date(2024, 2, 26))


class PlaceholderTest(SimpleTestCase):

    def test_build_placeholders(self):
        service = CertificationService(ReportConfig.from_settings(REPORT_CERTIFICATION))
        rows = build_rows(
            CertificationRowFactory,
            CERTIFICATION_COLUMNS,
            patient_name="Jane Roe",
            mr_number=88231.0,
            cdate_2=None,
        )
        patient = service.select_patients(rows, ALERT_DATE).patients[0]

        self.assertEqual(
            build_placeholders(patient, "Dr. Test Physician", ALERT_DATE),
            {
                "Patient_Name": "Jane Roe",
                "MR_Number": "88231",
                "Doctor_Name": "Dr. Test Physician",
                "Admission_Date": "01/01/2024",
                "Notify_Date": "02/21/2024",
                "CDate_1": "01/01/2024",
                "CDate_2": "N/A",
                "Today_Date": "02/21/2024",
                "Days_Since_Admission": "51",
                "Cert_Period": "Initial (0-90 days)",
            },
        )


@patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
class CertificationAlertTest(SimpleTestCase):

    def setUp(self):
        self.config = ReportConfig.from_settings(REPORT_CERTIFICATION)

    def _rows(self):
        return build_rows(
            CertificationRowFactory,
            CERTIFICATION_COLUMNS,
            batch=[
                {"patient_name": "Jane Roe"},
                {"patient_name": "John Doe", "notify_date": date(2024, 2, 22)},
                {"patient_name": "Sam Second", "admission_date": "10/1/2023"},
                {"patient_name": "No Admission", "admission_date": None},
                {"patient_name": "Not Due", "admission_date": None, "notify_date": None},
            ],
        )

    def test_selects_patients_due_today(self, mock_render):
        run = CertificationService(self.config).select_patients(self._rows(), ALERT_DATE)

        self.assertEqual([p.patient_name for p in run.patients], ["Jane Roe", "Sam Second"])
        self.assertEqual(run.patients[1].days_since_admission, 143)
        self.assertEqual(run.patients[1].cert_period.name, "Second Period (91-180 days)")
        self.assertEqual(len(run.skipped), 1)
        self.assertIsInstance(run.skipped[0], InvalidReferenceDate)
        self.assertEqual(run.skipped[0].row_number, 5)

    def test_alert_email_with_documents(self, mock_render):
        run = check_certification_notifications(self.config, today=ALERT_DATE, rows=self._rows())

        self.assertEqual(len(run.documents), 5)
        self.assertEqual(run.messages_sent, 1)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, "Patient Certification Alert - 02/21/2024 - Action Required")
        self.assertEqual(message.to, ["intake@example.com", "nursing@example.com"])
        self.assertEqual(len(message.attachments), 5)
        self.assertIn("PATIENTS REQUIRING ATTENTION (2)", message.body)
        self.assertIn("Attending Physician: Dr. Test Physician", message.body)
        self.assertIn("Jane Roe", message.alternatives[0][0])

    def test_document_failure_does_not_block_email(self, mock_render):
        config = self.config.with_overrides(document_templates={DOCUMENT_ATTEND_CERT: "missing.html"})
        run = check_certification_notifications(config, today=ALERT_DATE, rows=self._rows())

        self.assertEqual(len(run.documents), 4)
        self.assertEqual([e.document_key for e in run.document_errors], [DOCUMENT_ATTEND_CERT])
        self.assertEqual(len(mail.outbox[0].attachments), 4)

    def test_no_email_when_nobody_due(self, mock_render):
        run = check_certification_notifications(self.config, today=date(2024, 3, 1), rows=self._rows())

        self.assertEqual(run.patients, [])
        self.assertEqual(run.messages_sent, 0)
        self.assertEqual(len(mail.outbox), 0)
        mock_render.assert_not_called()


@patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
class CertificationSummaryTest(SimpleTestCase):

    # Monday
    SUMMARY_DATE = date(2024, 2, 19)

    def setUp(self):
        self.config = ReportConfig.from_settings(REPORT_CERTIFICATION)

    def test_summary_until_end_of_month(self, mock_render):
        rows = build_rows(
            CertificationRowFactory,
            CERTIFICATION_COLUMNS,
            batch=[
                {"patient_name": "Late Feb", "notify_date": date(2024, 2, 29)},
                {"patient_name": "March", "notify_date": date(2024, 3, 1)},
                {"patient_name": "This Week", "notify_date": date(2024, 2, 21)},
                {"patient_name": "Past", "notify_date": date(2024, 2, 18)},
            ],
        )
        run = send_certification_summary(self.config, today=self.SUMMARY_DATE, rows=rows)

        self.assertEqual(run.period_end, date(2024, 2, 29))
        self.assertEqual([p.patient_name for p in run.patients], ["This Week", "Late Feb"])
        self.assertEqual([p.urgency for p in run.patients], [URGENCY_THIS_WEEK, URGENCY_SOON])

        message = mail.outbox[0]
        self.assertEqual(message.subject, "Weekly Certification Summary - February 2024 - 2 Patient(s) Upcoming")
        self.assertIn("This Week [This Week!]", message.body)
        self.assertIn("Late Feb [Soon]", message.body)
        self.assertIn("Next summary: 02/26/2024", message.body)
        self.assertEqual(len(message.attachments), 6)

    def test_all_clear_email(self, mock_render):
        rows = build_rows(CertificationRowFactory, CERTIFICATION_COLUMNS, notify_date=date(2024, 3, 4))
        run = send_certification_summary(self.config, today=self.SUMMARY_DATE, rows=rows)

        self.assertEqual(run.patients, [])
        self.assertEqual(run.messages_sent, 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, "Weekly Certification Summary - February 2024 - No Upcoming")
        self.assertIn("No upcoming certifications for February.", message.body)
        self.assertEqual(message.attachments, [])


class StaffReminderTest(SimpleTestCase):

    def setUp(self):
        self.config = ReportConfig.from_settings(REPORT_STAFF_REMINDERS)

    def test_reminder_per_flagged_row_and_recipient(self):
        rows = build_rows(
            StaffReminderRowFactory,
            STAFF_REMINDER_COLUMNS,
            batch=[
                {"patient_name": "Jane Roe", "notify_staff": "TRUE"},
                {"patient_name": "John Doe"},
                {"patient_name": "Sam Second", "notify_staff": True},
                {"patient_name": "", "notify_staff": True},
            ],
        )
        run = send_staff_reminders(self.config, today=ALERT_DATE, rows=rows)

        self.assertEqual([r.patient_name for r in run.reminders], ["Jane Roe", "Sam Second"])
        self.assertEqual(run.messages_sent, 4)
        self.assertEqual([m.to for m in mail.outbox], [["a@example.com"], ["B@example.com"]] * 2)
        self.assertEqual(mail.outbox[0].subject, "[CTI Notification System]")
        self.assertEqual(
            mail.outbox[0].body,
            "Jane Roe is 15 days away from the end of their certification period.\n",
        )

    def test_nothing_flagged(self):
        rows = build_rows(StaffReminderRowFactory, STAFF_REMINDER_COLUMNS)
        run = send_staff_reminders(self.config, today=ALERT_DATE, rows=rows)

        self.assertEqual(run.messages_sent, 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_weekly_digest_across_year_boundary(self):
        # Friday 2025-01-03: previous Monday 2024-12-23 through Sunday 2025-01-05
        rows = build_rows(
            StaffReminderRowFactory,
            STAFF_REMINDER_COLUMNS,
            batch=[
                {"patient_name": "Too Early", "notify_date": date(2024, 12, 22)},
                {"patient_name": "Christmas Eve", "notify_date": "12/24/2024", "current_period": "P1"},
                {"patient_name": "Sunday", "notify_date": date(2025, 1, 5), "current_period": "P3"},
                {"patient_name": "Too Late", "notify_date": date(2025, 1, 6)},
            ],
        )
        run = send_staff_weekly_digest(self.config, today=date(2025, 1, 3), rows=rows)

        self.assertEqual(run.period_start, date(2024, 12, 23))
        self.assertEqual(run.period_end, date(2025, 1, 5))
        self.assertEqual(run.messages_sent, 2)
        body = mail.outbox[0].body
        self.assertEqual(mail.outbox[0].subject, "[CTI Notification System] Weekly Summary")
        self.assertIn("Christmas Eve - Current Period [P1]", body)
        self.assertIn("Sunday - Current Period [P3]", body)
        self.assertNotIn("Too Early", body)
        self.assertNotIn("Too Late", body)

    def test_empty_digest_still_sent(self):
        run = send_staff_weekly_digest(self.config, today=date(2025, 1, 3), rows=[])

        self.assertEqual(run.messages_sent, 2)
        self.assertIn("No patients have notify dates between 12/23/2024 and 01/05/2025.", mail.outbox[0].body)


class CertificationCommandTest(SimpleTestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.source = self.tmpdir / "certs.csv"
        header = ",".join(f"col{i}" for i in range(12))
        due = ",1/1/2024,,,,2/21/2024,1/1/2024,3/30/2024,,,88231,Jane Roe"
        not_due = ",1/1/2024,,,,2/28/2024,,,,,10001,John Doe"
        self.source.write_text("\n".join([header, due, not_due]) + "\n", encoding="utf-8")

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    @patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
    def test_check_command(self, mock_render):
        out = StringIO()
        call_command(
            "check_certification_notifications", "--date", "2024-02-21", "--source", str(self.source), stdout=out
        )

        output = out.getvalue()
        self.assertIn("Patients due: 1", output)
        self.assertIn("Documents prepared: 3", output)
        self.assertIn("Done: 1 message(s) sent", output)
        self.assertEqual(mail.outbox[0].attachments[0][2], "application/pdf")

    def test_task_reports_missing_source(self):
        with self.assertRaises(SourceUnavailable):
            check_task.delay(run_date="2024-02-21").get()
        self.assertEqual(len(mail.outbox), 0)
