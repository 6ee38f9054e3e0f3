"""
Tests for certification document preparation and email template rendering.
"""

import shutil
import tempfile
from datetime import date
from pathlib import Path
from unittest.mock import patch

from django.template import TemplateDoesNotExist
from django.test import SimpleTestCase

from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import DocumentPreparationError
from certwatch.reporting.documents import (
    DEFAULT_TEMPLATE_DIR,
    fill_placeholders,
    prepare_document,
    prepare_documents,
    resolve_template_path,
)
from certwatch.reporting.services import render_email, render_subject

FAKE_PDF = b"%PDF-1.7 fake"


class FillPlaceholdersTest(SimpleTestCase):

    def test_values_are_substituted_and_escaped(self):
        html = fill_placeholders(
            "<p>{{Patient_Name}} / {{ MR_Number }}</p>",
            {"Patient_Name": "O'Neil <Jr>", "MR_Number": "88231"},
        )
        self.assertEqual(html, "<p>O&#x27;Neil &lt;Jr&gt; / 88231</p>")

    def test_empty_values_render_as_not_available(self):
        html = fill_placeholders("{{CDate_1}}|{{CDate_2}}", {"CDate_1": "", "CDate_2": None})
        self.assertEqual(html, "N/A|N/A")

    def test_unknown_tokens_left_in_place(self):
        self.assertEqual(fill_placeholders("{{Nurse_Name}}", {}), "{{Nurse_Name}}")


class PrepareDocumentTest(SimpleTestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        (self.tmpdir / "cert.html").write_text("<h1>{{Patient_Name}}</h1>", encoding="utf-8")
        self.config = ReportConfig(
            name="certification",
            template_dir=self.tmpdir,
            document_templates={"90DAY1": "cert.html", "ATTEND_CERT": "missing.html"},
        )
        self.today = date(2024, 2, 21)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_default_template_location(self):
        path = resolve_template_path(ReportConfig(name="certification"), "PROGRESS_NOTE")
        self.assertEqual(path, DEFAULT_TEMPLATE_DIR / "progress_note.html")
        self.assertTrue(path.exists())

    @patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
    def test_prepare_document(self, mock_render):
        document = prepare_document(self.config, "90DAY1", {"Patient_Name": "Jane Roe"}, "Jane Roe", self.today)

        mock_render.assert_called_once()
        self.assertEqual(mock_render.call_args.args[0], "<h1>Jane Roe</h1>")
        self.assertEqual(document.name, "90DAY1 - Jane Roe - 02/21/2024")
        self.assertEqual(document.filename, "90DAY1_Jane_Roe_2024-02-21.pdf")
        self.assertEqual(document.as_attachment(), (document.filename, FAKE_PDF, "application/pdf"))
        self.assertIsNone(document.path)

    @patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
    def test_output_dir_saves_copy(self, mock_render):
        config = ReportConfig(
            name="certification",
            template_dir=self.tmpdir,
            document_templates={"90DAY1": "cert.html"},
            output_dir=self.tmpdir / "out",
        )
        document = prepare_document(config, "90DAY1", {"Patient_Name": "Jane Roe"}, "Jane Roe", self.today)
        self.assertEqual(document.path.read_bytes(), FAKE_PDF)

    @patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
    def test_same_name_patients_get_distinct_files(self, mock_render):
        config = ReportConfig(
            name="certification",
            template_dir=self.tmpdir,
            document_templates={"90DAY1": "cert.html"},
            output_dir=self.tmpdir / "out",
        )
        first = prepare_document(config, "90DAY1", {}, "Jane Roe", self.today, reference="88231")
        second = prepare_document(config, "90DAY1", {}, "Jane Roe", self.today, reference="90417")

        self.assertEqual(first.filename, "90DAY1_Jane_Roe_88231_2024-02-21.pdf")
        self.assertNotEqual(first.path, second.path)
        self.assertEqual(sorted(path.name for path in (self.tmpdir / "out").iterdir()),
                         sorted([first.filename, second.filename]))

    @patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
    def test_save_failure_does_not_log_patient_name(self, mock_render):
        blocker = self.tmpdir / "out"
        blocker.write_text("not a directory", encoding="utf-8")
        config = ReportConfig(
            name="certification",
            template_dir=self.tmpdir,
            document_templates={"90DAY1": "cert.html"},
            output_dir=blocker / "pdfs",
        )
        with self.assertLogs("certwatch.reporting.documents", level="ERROR") as cm:
            result = prepare_documents(config, ["90DAY1"], {}, "Jane Roe", self.today, reference="88231")

        self.assertEqual(result["documents"], [])
        self.assertIn("could not save PDF", str(result["errors"][0]))
        for text in cm.output + [str(result["errors"][0])]:
            self.assertNotIn("Jane", text)
            self.assertNotIn("88231", text)

    @patch("certwatch.reporting.documents.render_pdf", side_effect=ValueError("bad font"))
    def test_render_failure(self, mock_render):
        with self.assertRaises(DocumentPreparationError) as cm:
            prepare_document(self.config, "90DAY1", {}, "Jane Roe", self.today)
        self.assertEqual(cm.exception.document_key, "90DAY1")
        self.assertIn("bad font", str(cm.exception))

    @patch("certwatch.reporting.documents.render_pdf", return_value=FAKE_PDF)
    def test_failures_are_isolated_per_document(self, mock_render):
        with self.assertLogs("certwatch.reporting.documents", level="ERROR"):
            result = prepare_documents(
                self.config, ["ATTEND_CERT", "90DAY1"], {"Patient_Name": "Jane Roe"}, "Jane Roe", self.today
            )

        self.assertEqual([document.key for document in result["documents"]], ["90DAY1"])
        self.assertEqual([error.document_key for error in result["errors"]], ["ATTEND_CERT"])


class RenderEmailTest(SimpleTestCase):

    def test_text_only_template(self):
        text, html = render_email(
            "staff_weekly_digest",
            {"run": {"reminders": [], "period_start": date(2024, 2, 12), "period_end": date(2024, 2, 25)}},
        )
        self.assertIsNone(html)
        self.assertIn("No patients have notify dates between 02/12/2024 and 02/25/2024.", text)

    def test_text_is_not_html_escaped(self):
        text, _ = render_email(
            "staff_reminder",
            {"reminder": {"message": "O'Neil & Co is 15 days away"}},
        )
        self.assertEqual(text, "O'Neil & Co is 15 days away\n")

    def test_missing_template(self):
        with self.assertRaises(TemplateDoesNotExist):
            render_email("no_such_email", {})

    def test_subject_is_single_line(self):
        subject = render_subject("certification_alert", {"run_date": date(2024, 2, 21)})
        self.assertEqual(subject, "Patient Certification Alert - 02/21/2024 - Action Required")
