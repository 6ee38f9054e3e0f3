"""
Tests for spreadsheet loading and named-schema row decoding.
"""

import shutil
import tempfile
from datetime import date, datetime
from pathlib import Path

from django.test import SimpleTestCase
from openpyxl import Workbook

from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import (
    ConfigurationError,
    InvalidRecord,
    InvalidReferenceDate,
    SourceUnavailable,
)
from certwatch.ingestion.services import (
    FIELD_DATE,
    FIELD_FLAG,
    FieldSpec,
    RecordSchema,
    decode_rows,
    load_rows,
    parse_flag,
)

HEADER = ("Patient", "Start of Care", "HUV1", "HUV2")


class LoadRowsTest(SimpleTestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _write_workbook(self, name="census.xlsx", sheet_title="Census"):
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = sheet_title
        worksheet.append(HEADER)
        worksheet.append(("Jane Roe", datetime(2024, 2, 6), True, None))
        worksheet.append(("John Doe", datetime(2024, 1, 20), False, False))
        path = self.tmpdir / name
        workbook.save(path)
        return path

    def test_workbook_rows_exclude_header(self):
        rows = load_rows(self._write_workbook())
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0][0], "Jane Roe")
        self.assertEqual(rows[0][1], datetime(2024, 2, 6))

    def test_named_sheet(self):
        path = self._write_workbook(sheet_title="March")
        self.assertEqual(len(load_rows(path, sheet_name="March")), 2)

    def test_missing_sheet(self):
        path = self._write_workbook()
        with self.assertRaises(SourceUnavailable) as cm:
            load_rows(path, sheet_name="April")
        self.assertIn('Sheet named "April" not found', str(cm.exception))

    def test_csv_rows(self):
        path = self.tmpdir / "census.csv"
        path.write_text("Patient,Start of Care,HUV1,HUV2\nJane Roe,2/6/2024,TRUE,\n", encoding="utf-8")
        self.assertEqual(load_rows(path), [("Jane Roe", "2/6/2024", "TRUE", "")])

    def test_missing_file(self):
        with self.assertRaises(SourceUnavailable):
            load_rows(self.tmpdir / "nope.xlsx")

    def test_no_source_configured(self):
        with self.assertRaises(SourceUnavailable):
            load_rows(None)

    def test_unsupported_format(self):
        path = self.tmpdir / "census.txt"
        path.write_text("Patient\n", encoding="utf-8")
        with self.assertRaises(SourceUnavailable):
            load_rows(path)

    def test_corrupt_workbook(self):
        path = self.tmpdir / "broken.xlsx"
        path.write_bytes(b"this is not a zip archive")
        with self.assertRaises(SourceUnavailable):
            load_rows(path)


class RecordSchemaTest(SimpleTestCase):

    def setUp(self):
        self.schema = RecordSchema(
            [
                FieldSpec("patient_name", required=True),
                FieldSpec("start_of_care", kind=FIELD_DATE, reference=True),
                FieldSpec("huv1_complete", kind=FIELD_FLAG),
                FieldSpec("mr_number"),
            ],
            {"patient_name": 0, "start_of_care": 1, "huv1_complete": 2, "mr_number": 3},
        )

    def test_decode_by_name(self):
        values = self.schema.decode(["  Jane Roe ", "2/6/2024", "x", 88231.0], row_number=2)
        self.assertEqual(
            values,
            {
                "patient_name": "Jane Roe",
                "start_of_care": date(2024, 2, 6),
                "huv1_complete": True,
                "mr_number": "88231",
            },
        )

    def test_short_row_reads_missing_cells_as_blank(self):
        values = self.schema.decode(["Jane Roe", "2/6/2024"])
        self.assertFalse(values["huv1_complete"])
        self.assertEqual(values["mr_number"], "")

    def test_date_cell_in_text_field(self):
        values = self.schema.decode(["Jane Roe", "2/6/2024", None, datetime(2024, 3, 1)])
        self.assertEqual(values["mr_number"], "03/01/2024")

    def test_missing_required_text(self):
        with self.assertRaises(InvalidRecord) as cm:
            self.schema.decode(["", "2/6/2024"], row_number=7)
        self.assertEqual(cm.exception.row_number, 7)
        self.assertEqual(cm.exception.field, "patient_name")
        self.assertEqual(cm.exception.describe(), "row 7, field patient_name: missing value")

    def test_bad_reference_date(self):
        with self.assertRaises(InvalidReferenceDate) as cm:
            self.schema.decode(["Jane Roe", "soon"], row_number=3)
        self.assertEqual(cm.exception.field, "start_of_care")
        self.assertIn("unparseable date", cm.exception.reason)

    def test_missing_column_setting(self):
        config = ReportConfig(name="hope_visits", columns={"patient_name": 0})
        with self.assertRaises(ConfigurationError):
            RecordSchema.for_config([FieldSpec("patient_name"), FieldSpec("start_of_care")], config)

    def test_unknown_field_kind(self):
        with self.assertRaises(ValueError):
            FieldSpec("patient_name", kind="currency")


class DecodeRowsTest(SimpleTestCase):

    def setUp(self):
        self.schema = RecordSchema(
            [
                FieldSpec("patient_name", required=True),
                FieldSpec("start_of_care", kind=FIELD_DATE, reference=True),
            ],
            {"patient_name": 0, "start_of_care": 1},
        )

    def test_bad_rows_are_isolated(self):
        rows = [
            ("Jane Roe", "2/6/2024"),
            ("John Doe", "not a date"),
            (None, None),
            ("", "2/6/2024"),
            ("Ann Lee", date(2024, 1, 3)),
        ]
        with self.assertLogs("certwatch.ingestion.services", level="WARNING"):
            result = decode_rows(rows, self.schema)

        self.assertEqual([row_number for row_number, _ in result.records], [2, 6])
        self.assertEqual([error.row_number for error in result.skipped], [3, 5])
        self.assertIsInstance(result.skipped[0], InvalidReferenceDate)

    def test_non_finite_serial_skips_only_its_row(self):
        rows = [("Jane Roe", float("nan")), ("Ann Lee", 45328)]
        with self.assertLogs("certwatch.ingestion.services", level="WARNING"):
            result = decode_rows(rows, self.schema)

        self.assertEqual([row_number for row_number, _ in result.records], [3])
        self.assertEqual([error.row_number for error in result.skipped], [2])

    def test_blank_rows_are_silent(self):
        result = decode_rows([("", "  "), (None, None)], self.schema)
        self.assertEqual(result.records, [])
        self.assertEqual(result.skipped, [])


class ParseFlagTest(SimpleTestCase):

    def test_truthy_values(self):
        for value in [True, 1, 1.0, "TRUE", "yes", " x ", "Done"]:
            with self.subTest(value=value):
                self.assertTrue(parse_flag(value))

    def test_falsy_values(self):
        for value in [False, None, 0, "", "FALSE", "no", "pending"]:
            with self.subTest(value=value):
                self.assertFalse(parse_flag(value))
