"""
Daily HOPE Update Visit (HUV) report.

Reads the hospice census spreadsheet, computes each patient's HUV windows from
the start of care date and emails a status table with the patients needing
attention listed first.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from django.utils import timezone

from certwatch.alerts.services import send_notification
from certwatch.constants import STATUS_DESCRIPTIONS, STATUS_LABELS
from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import InvalidRecord, InvalidReferenceDate
from certwatch.core.windows import (
    Window,
    WindowDefinition,
    classify_status,
    rank_for_display,
    sort_for_display,
)
from certwatch.ingestion.services import (
    FIELD_DATE,
    FIELD_FLAG,
    FieldSpec,
    RecordSchema,
    decode_rows,
    load_rows,
)
from certwatch.logging_utils import add_log_context, get_service_logger
from certwatch.products.hopevisits.constants import (
    FIELD_PATIENT_NAME,
    FIELD_START_OF_CARE,
    REPORT_NAME,
    completion_field,
    get_hope_visit_windows,
)
from certwatch.reporting.services import render_email

logger = get_service_logger(REPORT_NAME)


@dataclass
class WindowStatus:
    """One HUV window of one patient, classified against the batch date."""

    name: str
    window: Window
    status: str

    @property
    def label(self) -> str:
        return STATUS_LABELS[self.status]

    @property
    def date_range(self) -> str:
        return self.window.display_range()


@dataclass
class HopeVisitPatient:
    row_number: int
    patient_name: str
    start_of_care: date
    windows: List[WindowStatus]

    @property
    def most_urgent_status(self) -> str:
        return min((entry.status for entry in self.windows), key=rank_for_display)


@dataclass
class HopeVisitReport:
    """Result of one HUV batch."""

    run_date: date
    window_names: List[str]
    patients: List[HopeVisitPatient] = field(default_factory=list)
    skipped: List[InvalidRecord] = field(default_factory=list)
    messages_sent: int = 0


class HopeVisitReportService:
    """
    Builds and sends the daily HUV status report.

    Usage:
        service = HopeVisitReportService(ReportConfig.from_settings("hope_visits"))
        report = service.build_report(rows, today)
        service.send_report(report)
    """

    def __init__(self, config: ReportConfig, windows: Optional[Sequence[WindowDefinition]] = None):
        self.config = config
        self.windows = list(windows) if windows is not None else get_hope_visit_windows()
        self.schema = RecordSchema.for_config(self.fields(), config)

    def fields(self) -> List[FieldSpec]:
        specs = [
            FieldSpec(FIELD_PATIENT_NAME, required=True),
            FieldSpec(FIELD_START_OF_CARE, kind=FIELD_DATE, reference=True),
        ]
        specs.extend(
            FieldSpec(completion_field(definition.name), kind=FIELD_FLAG)
            for definition in self.windows
        )
        return specs

    def build_report(self, rows: Sequence[Sequence[Any]], today: date) -> HopeVisitReport:
        """
        Classify every patient's windows against ``today``.

        Rows without a patient name or with an unusable start of care date
        are skipped and listed in ``HopeVisitReport.skipped``.
        """
        decoded = decode_rows(rows, self.schema)
        report = HopeVisitReport(
            run_date=today,
            window_names=[definition.name for definition in self.windows],
            skipped=list(decoded.skipped),
        )

        patients = []
        for row_number, values in decoded.records:
            with add_log_context(row_number=row_number):
                try:
                    patients.append(self._classify_patient(row_number, values, today))
                except InvalidReferenceDate as e:
                    logger.warning(f"Skipping spreadsheet row: {e.describe()}")
                    report.skipped.append(e)

        report.patients = sort_for_display(
            patients, status_of=lambda patient: patient.most_urgent_status
        )
        return report

    def _classify_patient(self, row_number: int, values: Dict[str, Any], today: date) -> HopeVisitPatient:
        start_of_care = values[FIELD_START_OF_CARE]
        entries = []
        for definition in self.windows:
            try:
                window = definition.window_for(start_of_care)
            except InvalidReferenceDate as e:
                raise InvalidReferenceDate(
                    e.reason, row_number=row_number, field=FIELD_START_OF_CARE
                ) from e
            status = classify_status(today, window, values[completion_field(definition.name)])
            entries.append(WindowStatus(definition.name, window, status))
        return HopeVisitPatient(
            row_number=row_number,
            patient_name=values[FIELD_PATIENT_NAME],
            start_of_care=start_of_care,
            windows=entries,
        )

    def send_report(self, report: HopeVisitReport) -> int:
        """Email the report. Nothing is sent when there are no patients."""
        if not report.patients:
            logger.info("No patient data found, email not sent")
            return 0

        context = {
            "report": report,
            "run_date": report.run_date,
            "legend": [
                (STATUS_LABELS[status], description)
                for status, description in STATUS_DESCRIPTIONS
            ],
        }
        text_body, html_body = render_email("huv_report", context)
        subject = f"Daily HOPE Update Visit (HUV) Report - {report.run_date.strftime('%m/%d/%Y')}"
        report.messages_sent = send_notification(
            self.config, subject, text_body, html_body=html_body
        )
        return report.messages_sent


def run_hope_visit_report(
    config: ReportConfig,
    today: Optional[date] = None,
    rows: Optional[Sequence[Sequence[Any]]] = None,
) -> HopeVisitReport:
    """
    Run one HUV batch.

    Args:
        config: the hope_visits report profile
        today: batch date, captured once; defaults to the local date
        rows: pre-loaded data rows; read from config.source when omitted

    Raises:
        SourceUnavailable: the spreadsheet could not be read
        DeliveryError: the email could not be delivered
    """
    today = today or timezone.localdate()
    with add_log_context(report=config.name, run_date=today.isoformat()):
        logger.info("Starting HOPE visit report")
        if rows is None:
            rows = load_rows(config.source, sheet_name=config.sheet_name)

        service = HopeVisitReportService(config)
        report = service.build_report(rows, today)
        service.send_report(report)

        logger.info(
            f"HOPE visit report finished: {len(report.patients)} patient(s), "
            f"{len(report.skipped)} skipped, {report.messages_sent} message(s) sent"
        )
        return report
