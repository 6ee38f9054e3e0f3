"""
Tests for report profile loading and recipient normalization.
"""

from pathlib import Path

from django.test import SimpleTestCase, override_settings

from certwatch.core.config import ReportConfig, normalize_recipients
from certwatch.core.exceptions import ConfigurationError


class NormalizeRecipientsTest(SimpleTestCase):

    def test_case_insensitive_dedup_keeps_first_spelling(self):
        self.assertEqual(
            normalize_recipients(["Ksmith9087@yahoo.com", "ksmith9087@yahoo.com", "KSMITH9087@YAHOO.COM"]),
            ["Ksmith9087@yahoo.com"],
        )

    def test_comma_separated_string(self):
        self.assertEqual(
            normalize_recipients(" intake@example.com, nursing@example.com ,"),
            ["intake@example.com", "nursing@example.com"],
        )

    def test_invalid_addresses_dropped(self):
        with self.assertLogs("certwatch.core.config", level="WARNING") as cm:
            cleaned = normalize_recipients(["not-an-address", "ok@example.com"])
        self.assertEqual(cleaned, ["ok@example.com"])
        self.assertIn("not-an-address", cm.output[0])

    def test_empty(self):
        self.assertEqual(normalize_recipients(None), [])
        self.assertEqual(normalize_recipients(""), [])
        self.assertEqual(normalize_recipients([]), [])


class ReportConfigTest(SimpleTestCase):

    def test_from_dict(self):
        config = ReportConfig.from_dict(
            "hope_visits",
            {
                "source": "/data/census.xlsx",
                "sheet_name": "Census",
                "recipients": ["a@example.com", "A@example.com"],
                "columns": {"patient_name": 0, "start_of_care": 1},
            },
        )
        self.assertEqual(config.name, "hope_visits")
        self.assertEqual(config.source, Path("/data/census.xlsx"))
        self.assertEqual(config.sheet_name, "Census")
        self.assertEqual(config.recipients, ("a@example.com",))
        self.assertFalse(config.send_individually)
        self.assertIsNone(config.template_dir)

    def test_unknown_setting_rejected(self):
        with self.assertRaises(ConfigurationError) as cm:
            ReportConfig.from_dict("hope_visits", {"recipents": ["a@example.com"]})
        self.assertIn("recipents", str(cm.exception))

    def test_bad_column_indices_rejected(self):
        for index in [-1, "3", 2.0, True]:
            with self.subTest(index=index):
                with self.assertRaises(ConfigurationError):
                    ReportConfig.from_dict("hope_visits", {"columns": {"patient_name": index}})

    def test_require_columns(self):
        config = ReportConfig.from_dict("hope_visits", {"columns": {"patient_name": 0}})
        self.assertEqual(config.require_columns(["patient_name"]), {"patient_name": 0})
        with self.assertRaises(ConfigurationError) as cm:
            config.require_columns(["patient_name", "start_of_care"])
        self.assertIn("start_of_care", str(cm.exception))

    def test_with_overrides_ignores_none(self):
        config = ReportConfig.from_dict("hope_visits", {"source": "/data/census.xlsx"})
        updated = config.with_overrides(source=None, sheet_name="March", recipients="x@example.com,X@example.com")
        self.assertEqual(updated.source, Path("/data/census.xlsx"))
        self.assertEqual(updated.sheet_name, "March")
        self.assertEqual(updated.recipients, ("x@example.com",))
        # original untouched
        self.assertIsNone(config.sheet_name)

    def test_from_settings(self):
        config = ReportConfig.from_settings("staff_reminders")
        self.assertEqual(config.recipients, ("a@example.com", "B@example.com"))
        self.assertTrue(config.send_individually)

    def test_missing_profile(self):
        with self.assertRaises(ConfigurationError):
            ReportConfig.from_settings("does_not_exist")

    @override_settings(DEFAULT_FROM_EMAIL="fallback@example.com")
    def test_sender(self):
        self.assertEqual(ReportConfig(name="a").sender, "fallback@example.com")
        self.assertEqual(ReportConfig(name="a", from_email="own@example.com").sender, "own@example.com")
