"""
Spreadsheet ingestion for certwatch.

Loads rows from an exported patient spreadsheet (.xlsx or .csv) and decodes
them through a named schema, so each workflow reads fields by name instead of
by position. A row that cannot be decoded raises InvalidRecord and is skipped
without stopping the rest of the batch.

Usage:
    rows = load_rows(config.source, sheet_name=config.sheet_name)
    schema = RecordSchema.for_config(HOPE_VISIT_FIELDS, config)
    result = decode_rows(rows, schema)
    for row_number, values in result.records:
        ...
"""

import csv
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from certwatch.constants import TRUTHY_FLAG_VALUES
from certwatch.core.dates import format_date, parse_date
from certwatch.core.exceptions import (
    InvalidRecord,
    InvalidReferenceDate,
    SourceUnavailable,
)

logger = logging.getLogger(__name__)

FIELD_TEXT = "text"
FIELD_DATE = "date"
FIELD_FLAG = "flag"

FIELD_KINDS = {FIELD_TEXT, FIELD_DATE, FIELD_FLAG}

# Row 1 of every sheet is the header; data starts on row 2
FIRST_DATA_ROW = 2

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}


@dataclass(frozen=True)
class FieldSpec:
    """
    One named column in a record schema.

    Attributes:
        name: field name, also the key into ReportConfig.columns
        kind: FIELD_TEXT, FIELD_DATE or FIELD_FLAG
        required: missing / unparseable values reject the row
        reference: the field anchors date windows; a bad value raises
            InvalidReferenceDate instead of plain InvalidRecord
    """

    name: str
    kind: str = FIELD_TEXT
    required: bool = False
    reference: bool = False

    def __post_init__(self):
        if self.kind not in FIELD_KINDS:
            raise ValueError(f"Unknown field kind {self.kind!r} for {self.name!r}")


@dataclass
class DecodeResult:
    """Decoded rows plus the rows that were rejected."""

    records: List[Tuple[int, Dict[str, Any]]] = field(default_factory=list)
    skipped: List[InvalidRecord] = field(default_factory=list)


class RecordSchema:
    """Maps named fields onto positional spreadsheet columns."""

    def __init__(self, fields: Sequence[FieldSpec], columns: Mapping[str, int]):
        self.fields = tuple(fields)
        self.columns = dict(columns)
        missing = [spec.name for spec in self.fields if spec.name not in self.columns]
        if missing:
            raise ValueError(f"No column configured for: {', '.join(missing)}")

    @classmethod
    def for_config(cls, fields: Sequence[FieldSpec], config) -> "RecordSchema":
        """Build a schema using the column indices of a ReportConfig."""
        columns = config.require_columns([spec.name for spec in fields])
        return cls(fields, columns)

    def decode(self, row: Sequence[Any], row_number: Optional[int] = None) -> Dict[str, Any]:
        """
        Decode one row.

        Args:
            row: cell values in column order
            row_number: spreadsheet row number, used in error messages

        Returns:
            dict of field name -> decoded value (str, date, bool or None)

        Raises:
            InvalidReferenceDate: reference date missing or unparseable
            InvalidRecord: any other required field missing or invalid
        """
        values = {}
        for spec in self.fields:
            index = self.columns[spec.name]
            raw = row[index] if index < len(row) else None
            values[spec.name] = self._decode_value(spec, raw, row_number)
        return values

    def _decode_value(self, spec: FieldSpec, raw: Any, row_number: Optional[int]) -> Any:
        if spec.kind == FIELD_FLAG:
            return parse_flag(raw)

        if spec.kind == FIELD_DATE:
            parsed = parse_date(raw)
            if parsed is None and (spec.required or spec.reference):
                error_class = InvalidReferenceDate if spec.reference else InvalidRecord
                reason = "missing date" if _is_blank(raw) else f"unparseable date {raw!r}"
                raise error_class(reason, row_number=row_number, field=spec.name)
            return parsed

        if isinstance(raw, date):
            # openpyxl hands back datetimes for date-formatted cells
            text = format_date(parse_date(raw))
        elif isinstance(raw, float) and raw.is_integer():
            # Numeric ids such as MR numbers come back as floats
            text = str(int(raw))
        else:
            text = "" if raw is None else str(raw).strip()
        if spec.required and not text:
            raise InvalidRecord("missing value", row_number=row_number, field=spec.name)
        return text


def parse_flag(value: Any) -> bool:
    """Interpret a checkbox / TRUE-FALSE cell."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in TRUTHY_FLAG_VALUES


def decode_rows(
    rows: Iterable[Sequence[Any]],
    schema: RecordSchema,
    first_row_number: int = FIRST_DATA_ROW,
) -> DecodeResult:
    """
    Decode every row, isolating failures per row.

    Entirely blank rows are ignored silently; rows that fail decoding are
    logged and collected in ``DecodeResult.skipped``.
    """
    result = DecodeResult()
    for offset, row in enumerate(rows):
        row_number = first_row_number + offset
        if all(_is_blank(cell) for cell in row):
            continue
        try:
            result.records.append((row_number, schema.decode(row, row_number)))
        except InvalidRecord as e:
            logger.warning(f"Skipping spreadsheet row: {e.describe()}")
            result.skipped.append(e)
    return result


def load_rows(source: Optional[Path], sheet_name: Optional[str] = None) -> List[Tuple[Any, ...]]:
    """
    Read all data rows (header excluded) from a spreadsheet export.

    Args:
        source: path to an .xlsx/.xlsm workbook or a .csv file
        sheet_name: worksheet to read; the active sheet when omitted

    Returns:
        List of row tuples

    Raises:
        SourceUnavailable: file missing, unreadable, unsupported, or the
            named worksheet does not exist
    """
    if source is None:
        raise SourceUnavailable("No spreadsheet source configured")

    path = Path(source)
    if not path.exists():
        raise SourceUnavailable(f"Spreadsheet not found: {path}")

    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        rows = _load_workbook_rows(path, sheet_name)
    elif suffix in CSV_SUFFIXES:
        rows = _load_csv_rows(path)
    else:
        raise SourceUnavailable(f"Unsupported spreadsheet format: {path.suffix}")

    logger.info(f"Loaded {len(rows)} data rows from {path.name}")
    return rows


def _load_workbook_rows(path: Path, sheet_name: Optional[str]) -> List[Tuple[Any, ...]]:
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, OSError, KeyError) as e:
        raise SourceUnavailable(f"Could not open workbook {path.name}: {e}")

    try:
        if sheet_name:
            if sheet_name not in workbook.sheetnames:
                raise SourceUnavailable(
                    f'Sheet named "{sheet_name}" not found in {path.name}'
                )
            worksheet = workbook[sheet_name]
        else:
            worksheet = workbook.active
        rows = list(worksheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    return rows[1:]


def _load_csv_rows(path: Path) -> List[Tuple[Any, ...]]:
    try:
        with open(path, newline="", encoding="utf-8-sig") as csvfile:
            rows = [tuple(row) for row in csv.reader(csvfile)]
    except (OSError, UnicodeDecodeError) as e:
        raise SourceUnavailable(f"Could not read {path.name}: {e}")
    return rows[1:]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
