"""
Hospice Certification Notification Service.

Handles:
- Daily certification alerts for patients whose notify date is today,
  with the required certification documents prepared as PDFs
- Weekly summary of notify dates between today and the end of the month
- Staff reminders for rows flagged in the notify-staff column
- Friday digest of notify dates in the current and previous week
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from django.utils import timezone

from certwatch.alerts.services import send_notification
from certwatch.core.config import ReportConfig
from certwatch.core.dates import days_between, end_of_month, format_date, start_of_week
from certwatch.core.exceptions import (
    DocumentPreparationError,
    InvalidRecord,
    InvalidReferenceDate,
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
from certwatch.products.certification.constants import (
    CERT_PERIODS,
    FIELD_ADMISSION_DATE,
    FIELD_CDATE_1,
    FIELD_CDATE_2,
    FIELD_CURRENT_PERIOD,
    FIELD_MR_NUMBER,
    FIELD_NOTIFY_DATE,
    FIELD_NOTIFY_STAFF,
    FIELD_PATIENT_NAME,
    STAFF_DIGEST_SUBJECT,
    STAFF_REMINDER_LEAD_DAYS,
    STAFF_REMINDER_SUBJECT,
    URGENCY_COLORS,
    URGENCY_LABELS,
    URGENCY_SOON,
    URGENCY_SOON_DAYS,
    URGENCY_THIS_WEEK,
    URGENCY_THIS_WEEK_DAYS,
    URGENCY_UPCOMING,
)
from certwatch.reporting.documents import PreparedDocument, prepare_documents
from certwatch.reporting.services import render_email, render_subject

logger = get_service_logger("certification")

# The admission date is only validated once a row is selected, so rows that
# are not due today never produce warnings.
CERTIFICATION_FIELDS = [
    FieldSpec(FIELD_ADMISSION_DATE, kind=FIELD_DATE),
    FieldSpec(FIELD_NOTIFY_DATE, kind=FIELD_DATE),
    FieldSpec(FIELD_CDATE_1, kind=FIELD_DATE),
    FieldSpec(FIELD_CDATE_2, kind=FIELD_DATE),
    FieldSpec(FIELD_MR_NUMBER),
    FieldSpec(FIELD_PATIENT_NAME),
]

STAFF_REMINDER_FIELDS = [
    FieldSpec(FIELD_PATIENT_NAME),
    FieldSpec(FIELD_CURRENT_PERIOD),
    FieldSpec(FIELD_NOTIFY_DATE, kind=FIELD_DATE),
    FieldSpec(FIELD_NOTIFY_STAFF, kind=FIELD_FLAG),
]


@dataclass(frozen=True)
class CertPeriod:
    name: str
    documents: tuple


@dataclass
class CertificationPatient:
    """A patient selected for certification paperwork."""

    row_number: int
    patient_name: str
    mr_number: str
    admission_date: date
    notify_date: Optional[date]
    cdate_1: Optional[date]
    cdate_2: Optional[date]
    days_since_admission: int
    cert_period: CertPeriod
    days_until_notify: int = 0
    urgency: str = URGENCY_UPCOMING
    documents: List[PreparedDocument] = field(default_factory=list)
    document_errors: List[DocumentPreparationError] = field(default_factory=list)

    @property
    def urgency_label(self) -> str:
        return URGENCY_LABELS[self.urgency]

    @property
    def urgency_color(self) -> str:
        return URGENCY_COLORS[self.urgency]


@dataclass
class CertificationRun:
    """Result of a certification batch (daily alert or weekly summary)."""

    run_date: date
    patients: List[CertificationPatient] = field(default_factory=list)
    skipped: List[InvalidRecord] = field(default_factory=list)
    period_end: Optional[date] = None
    messages_sent: int = 0

    @property
    def documents(self) -> List[PreparedDocument]:
        return [document for patient in self.patients for document in patient.documents]

    @property
    def document_errors(self) -> List[DocumentPreparationError]:
        return [error for patient in self.patients for error in patient.document_errors]


@dataclass
class StaffReminder:
    row_number: int
    patient_name: str
    current_period: str
    notify_date: Optional[date]
    notify_staff: bool = False

    @property
    def message(self) -> str:
        return (
            f"{self.patient_name} is {STAFF_REMINDER_LEAD_DAYS} days away from the "
            f"end of their certification period."
        )

    @property
    def digest_line(self) -> str:
        return f"{self.patient_name} - Current Period [{self.current_period}]"


@dataclass
class StaffReminderRun:
    run_date: date
    reminders: List[StaffReminder] = field(default_factory=list)
    skipped: List[InvalidRecord] = field(default_factory=list)
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    messages_sent: int = 0


def determine_cert_period(days_since_admission: int) -> CertPeriod:
    """
    Determine the certification period and the documents it requires.

    Example:
        >>> determine_cert_period(91).name
        'Second Period (91-180 days)'
    """
    for last_day, name, documents in CERT_PERIODS:
        if last_day is None or days_since_admission <= last_day:
            return CertPeriod(name=name, documents=tuple(documents))
    raise ValueError("CERT_PERIODS must end with an open-ended period")


def classify_urgency(days_until: int) -> str:
    if days_until <= URGENCY_THIS_WEEK_DAYS:
        return URGENCY_THIS_WEEK
    if days_until <= URGENCY_SOON_DAYS:
        return URGENCY_SOON
    return URGENCY_UPCOMING


def next_monday(today: date) -> date:
    """The Monday after ``today`` (a week out when today is a Monday)."""
    return today + timedelta(days=7 - today.weekday())


def build_placeholders(patient: CertificationPatient, doctor_name: str, today: date) -> Dict[str, str]:
    """Values for the ``{{Placeholder}}`` tokens in certification documents."""
    return {
        "Patient_Name": patient.patient_name,
        "MR_Number": patient.mr_number or "N/A",
        "Doctor_Name": doctor_name or "N/A",
        "Admission_Date": format_date(patient.admission_date),
        "Notify_Date": format_date(patient.notify_date),
        "CDate_1": format_date(patient.cdate_1),
        "CDate_2": format_date(patient.cdate_2),
        "Today_Date": format_date(today),
        "Days_Since_Admission": str(patient.days_since_admission),
        "Cert_Period": patient.cert_period.name,
    }


class CertificationService:
    """
    Selects patients due for recertification and emails their paperwork.

    Usage:
        service = CertificationService(ReportConfig.from_settings("certification"))
        run = service.check_notifications(rows, today)
    """

    def __init__(self, config: ReportConfig):
        self.config = config
        self.schema = RecordSchema.for_config(CERTIFICATION_FIELDS, config)

    def select_patients(self, rows: Sequence[Sequence[Any]], today: date, until: Optional[date] = None) -> CertificationRun:
        """
        Decode rows and keep those with a notify date in ``[today, until]``.

        ``until`` defaults to today, i.e. only patients due today.
        """
        until = until or today
        decoded = decode_rows(rows, self.schema)
        run = CertificationRun(run_date=today, skipped=list(decoded.skipped), period_end=until)

        for row_number, values in decoded.records:
            notify_date = values[FIELD_NOTIFY_DATE]
            if notify_date is None or not today <= notify_date <= until:
                continue
            with add_log_context(row_number=row_number):
                try:
                    run.patients.append(self._build_patient(row_number, values, today))
                except InvalidRecord as e:
                    logger.warning(f"Skipping spreadsheet row: {e.describe()}")
                    run.skipped.append(e)

        run.patients.sort(key=lambda patient: patient.notify_date)
        return run

    def _build_patient(self, row_number: int, values: Dict[str, Any], today: date) -> CertificationPatient:
        admission_date = values[FIELD_ADMISSION_DATE]
        if admission_date is None:
            raise InvalidReferenceDate(
                "missing or unparseable admission date",
                row_number=row_number,
                field=FIELD_ADMISSION_DATE,
            )
        if not values[FIELD_PATIENT_NAME]:
            raise InvalidRecord("missing value", row_number=row_number, field=FIELD_PATIENT_NAME)

        days_since_admission = days_between(admission_date, today)
        days_until_notify = days_between(today, values[FIELD_NOTIFY_DATE])
        return CertificationPatient(
            row_number=row_number,
            patient_name=values[FIELD_PATIENT_NAME],
            mr_number=values[FIELD_MR_NUMBER],
            admission_date=admission_date,
            notify_date=values[FIELD_NOTIFY_DATE],
            cdate_1=values[FIELD_CDATE_1],
            cdate_2=values[FIELD_CDATE_2],
            days_since_admission=days_since_admission,
            cert_period=determine_cert_period(days_since_admission),
            days_until_notify=days_until_notify,
            urgency=classify_urgency(days_until_notify),
        )

    def prepare_patient_documents(self, run: CertificationRun) -> None:
        """Prepare every selected patient's documents; failures stay per document."""
        for patient in run.patients:
            with add_log_context(row_number=patient.row_number):
                placeholders = build_placeholders(patient, self.config.doctor_name, run.run_date)
                prepared = prepare_documents(
                    self.config,
                    patient.cert_period.documents,
                    placeholders,
                    label=patient.patient_name,
                    today=run.run_date,
                    reference=patient.mr_number or f"row{patient.row_number}",
                )
            patient.documents = prepared["documents"]
            patient.document_errors = prepared["errors"]

    def _email_context(self, run: CertificationRun) -> Dict[str, Any]:
        return {
            "run": run,
            "patients": run.patients,
            "run_date": run.run_date,
            "period_end": run.period_end,
            "next_summary": next_monday(run.run_date),
            "doctor_name": self.config.doctor_name,
            "organization_name": self.config.organization_name,
            "attachment_count": len(run.documents),
        }

    def _send(self, template_name: str, subject: str, run: CertificationRun) -> int:
        text_body, html_body = render_email(template_name, self._email_context(run))
        attachments = [document.as_attachment() for document in run.documents]
        return send_notification(
            self.config, subject, text_body, html_body=html_body, attachments=attachments
        )

    def check_notifications(self, rows: Sequence[Sequence[Any]], today: date) -> CertificationRun:
        """Daily run: alert staff about patients whose notify date is today."""
        run = self.select_patients(rows, today)
        if not run.patients:
            logger.info("No patients due for certification today, email not sent")
            return run

        self.prepare_patient_documents(run)
        subject = render_subject("certification_alert", self._email_context(run))
        run.messages_sent = self._send("certification_alert", subject, run)
        return run

    def send_summary(self, rows: Sequence[Sequence[Any]], today: date) -> CertificationRun:
        """Weekly run: everything due from today to the end of the month."""
        run = self.select_patients(rows, today, until=end_of_month(today))
        month = today.strftime("%B %Y")

        if not run.patients:
            logger.info("No upcoming certifications this month, sending all clear")
            run.messages_sent = self._send(
                "certification_none",
                f"Weekly Certification Summary - {month} - No Upcoming",
                run,
            )
            return run

        self.prepare_patient_documents(run)
        run.messages_sent = self._send(
            "certification_summary",
            f"Weekly Certification Summary - {month} - {len(run.patients)} Patient(s) Upcoming",
            run,
        )
        return run


class StaffReminderService:
    """
    Plain text reminders for the CTI notification list.

    Every message goes to each recipient separately so staff never see the
    rest of the distribution list.
    """

    def __init__(self, config: ReportConfig):
        self.config = config.with_overrides(send_individually=True)
        self.schema = RecordSchema.for_config(STAFF_REMINDER_FIELDS, config)

    def _decode(self, rows: Sequence[Sequence[Any]], today: date) -> StaffReminderRun:
        decoded = decode_rows(rows, self.schema)
        run = StaffReminderRun(run_date=today, skipped=list(decoded.skipped))
        for row_number, values in decoded.records:
            if not values[FIELD_PATIENT_NAME]:
                continue
            run.reminders.append(
                StaffReminder(
                    row_number=row_number,
                    patient_name=values[FIELD_PATIENT_NAME],
                    current_period=values[FIELD_CURRENT_PERIOD],
                    notify_date=values[FIELD_NOTIFY_DATE],
                    notify_staff=values[FIELD_NOTIFY_STAFF],
                )
            )
        return run

    def send_reminders(self, rows: Sequence[Sequence[Any]], today: date) -> StaffReminderRun:
        """Send one reminder per flagged row."""
        run = self._decode(rows, today)
        run.reminders = [reminder for reminder in run.reminders if reminder.notify_staff]

        for reminder in run.reminders:
            with add_log_context(row_number=reminder.row_number):
                text_body, _ = render_email("staff_reminder", {"reminder": reminder})
                run.messages_sent += send_notification(
                    self.config, STAFF_REMINDER_SUBJECT, text_body
                )
        if not run.reminders:
            logger.info("No rows flagged for staff reminders")
        return run

    def send_weekly_digest(self, rows: Sequence[Sequence[Any]], today: date) -> StaffReminderRun:
        """Send the digest of notify dates in the current and previous week."""
        run = self._decode(rows, today)
        this_monday = start_of_week(today)
        run.period_start = this_monday - timedelta(days=7)
        run.period_end = this_monday + timedelta(days=6)
        run.reminders = [
            reminder
            for reminder in run.reminders
            if reminder.notify_date is not None
            and run.period_start <= reminder.notify_date <= run.period_end
        ]

        text_body, _ = render_email("staff_weekly_digest", {"run": run})
        run.messages_sent = send_notification(self.config, STAFF_DIGEST_SUBJECT, text_body)
        return run


def _load(config: ReportConfig, rows):
    if rows is None:
        rows = load_rows(config.source, sheet_name=config.sheet_name)
    return rows


def check_certification_notifications(
    config: ReportConfig,
    today: Optional[date] = None,
    rows: Optional[Sequence[Sequence[Any]]] = None,
) -> CertificationRun:
    """
    Daily certification check.

    Raises:
        SourceUnavailable: the spreadsheet could not be read
        DeliveryError: the email could not be delivered
    """
    today = today or timezone.localdate()
    with add_log_context(report=config.name, run_date=today.isoformat()):
        logger.info("Starting certification check")
        run = CertificationService(config).check_notifications(_load(config, rows), today)
        logger.info(
            f"Processed {len(run.patients)} patient(s) for certification notification, "
            f"{len(run.skipped)} skipped, {len(run.document_errors)} document error(s)"
        )
        return run


def send_certification_summary(
    config: ReportConfig,
    today: Optional[date] = None,
    rows: Optional[Sequence[Sequence[Any]]] = None,
) -> CertificationRun:
    """Weekly certification summary (see CertificationService.send_summary)."""
    today = today or timezone.localdate()
    with add_log_context(report=config.name, run_date=today.isoformat()):
        logger.info("Starting weekly certification summary")
        run = CertificationService(config).send_summary(_load(config, rows), today)
        logger.info(
            f"Weekly summary complete: {len(run.patients)} patient(s), "
            f"{len(run.documents)} document(s) attached"
        )
        return run


def send_staff_reminders(
    config: ReportConfig,
    today: Optional[date] = None,
    rows: Optional[Sequence[Sequence[Any]]] = None,
) -> StaffReminderRun:
    today = today or timezone.localdate()
    with add_log_context(report=config.name, run_date=today.isoformat()):
        run = StaffReminderService(config).send_reminders(_load(config, rows), today)
        logger.info(
            f"Staff reminders complete: {len(run.reminders)} flagged patient(s), "
            f"{run.messages_sent} message(s) sent"
        )
        return run


def send_staff_weekly_digest(
    config: ReportConfig,
    today: Optional[date] = None,
    rows: Optional[Sequence[Sequence[Any]]] = None,
) -> StaffReminderRun:
    today = today or timezone.localdate()
    with add_log_context(report=config.name, run_date=today.isoformat()):
        run = StaffReminderService(config).send_weekly_digest(_load(config, rows), today)
        logger.info(
            f"Staff weekly digest complete: {len(run.reminders)} patient(s) listed, "
            f"{run.messages_sent} message(s) sent"
        )
        return run
