"""
Tests for structured logging, batch log context and PHI scrubbing.
"""

import logging
import tempfile
from pathlib import Path

from django.test import SimpleTestCase

from certwatch.logging_config import get_logging_config
from certwatch.logging_filters import (
    PHIScrubberFilter,
    SelectivePHIScrubberFilter,
    scrub_dict,
)
from certwatch.logging_utils import (
    StructuredLogFormatter,
    add_log_context,
    clear_log_context,
    get_log_context,
    get_service_logger,
    set_log_context,
)


def make_record(msg, args=(), **extra):
    record = logging.LogRecord("certwatch.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class LogContextTest(SimpleTestCase):

    def tearDown(self):
        clear_log_context()

    def test_nested_context_is_restored(self):
        set_log_context(report="hope_visits")
        with add_log_context(run_date="2024-02-21"):
            with add_log_context(row_number=7):
                self.assertEqual(
                    get_log_context(),
                    {"report": "hope_visits", "run_date": "2024-02-21", "row_number": 7},
                )
            self.assertNotIn("row_number", get_log_context())
        self.assertEqual(get_log_context(), {"report": "hope_visits"})

    def test_service_logger_adds_context(self):
        logger = get_service_logger("certification")
        with self.assertLogs("certwatch.services.certification", level="INFO") as cm:
            with add_log_context(report="certification", row_number=3):
                logger.info("Preparing documents")

        record = cm.records[0]
        self.assertEqual(record.service_name, "certification")
        self.assertEqual(record.report, "certification")
        self.assertEqual(record.row_number, 3)


class StructuredLogFormatterTest(SimpleTestCase):

    def test_key_value_output(self):
        record = make_record("Processed 3 patient(s)", report="certification", row_number=12)
        output = StructuredLogFormatter().format(record)

        self.assertIn("INFO report=certification row_number=12", output)
        self.assertTrue(output.endswith('message="Processed 3 patient(s)"'))

    def test_quotes_values_with_spaces(self):
        record = make_record("done", service_name="hope visits")
        output = StructuredLogFormatter().format(record)

        self.assertIn('service_name="hope visits"', output)
        self.assertIn("message=done", output)


class PHIScrubberFilterTest(SimpleTestCase):

    def setUp(self):
        self.scrubber = PHIScrubberFilter()

    def test_patient_name_and_mrn(self):
        self.assertEqual(
            self.scrubber.scrub_phi("Document failed for Patient: Jane Roe, MR Number: 88231"),
            "Document failed for [REDACTED_NAME], [REDACTED_MRN]",
        )

    def test_labelled_dates(self):
        self.assertEqual(
            self.scrubber.scrub_phi("Admission date: 01/02/2024"),
            "[REDACTED_DATE]",
        )

    def test_plain_batch_messages_untouched(self):
        message = "Processed 3 patient(s) for certification notification, 0 skipped"
        self.assertEqual(self.scrubber.scrub_phi(message), message)

    def test_filter_scrubs_args_and_extra(self):
        record = make_record(
            "Sending to %s",
            args=("nurse@example.com",),
            detail="patient_name=Jane Roe",
            report="certification",
        )
        self.assertTrue(self.scrubber.filter(record))

        self.assertEqual(record.getMessage(), "Sending to [REDACTED_EMAIL]")
        self.assertEqual(record.detail, "[REDACTED_NAME]")
        self.assertEqual(record.report, "certification")

    def test_selective_scrubber_keeps_emails(self):
        scrubber = SelectivePHIScrubberFilter()
        self.assertEqual(
            scrubber.scrub_phi("Sent to nurse@example.com for MRN 88231"),
            "Sent to nurse@example.com for [REDACTED_MRN]",
        )

    def test_scrub_dict(self):
        event = {
            "message": "MR Number: 88231",
            "extra": {"rows": ["Patient: Jane Roe", 3]},
            "level": 40,
        }
        self.assertEqual(
            scrub_dict(event),
            {
                "message": "[REDACTED_MRN]",
                "extra": {"rows": ["[REDACTED_NAME]", 3]},
                "level": 40,
            },
        )


class LoggingConfigTest(SimpleTestCase):

    def test_test_environment_has_no_files(self):
        config = get_logging_config(Path("/nonexistent"), environment="test")

        self.assertEqual(list(config["handlers"]), ["console"])
        self.assertEqual(
            config["filters"]["phi_scrubber"]["()"],
            "certwatch.logging_filters.PHIScrubberFilter",
        )

    def test_development_uses_selective_scrubber(self):
        with tempfile.TemporaryDirectory() as base_dir:
            config = get_logging_config(base_dir, environment="development", log_level="DEBUG")
            self.assertTrue((Path(base_dir) / "logs").is_dir())

        self.assertEqual(
            config["filters"]["phi_scrubber"]["()"],
            "certwatch.logging_filters.SelectivePHIScrubberFilter",
        )
        self.assertEqual(
            config["loggers"]["certwatch"]["handlers"],
            ["console", "app_file", "error_file", "debug_file"],
        )
