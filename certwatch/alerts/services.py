"""Email delivery for certwatch reports and notifications."""
from typing import Iterable, Optional, Sequence, Tuple
import logging
import smtplib

from django.core.mail import EmailMultiAlternatives, get_connection

from certwatch.alerts.resilience import RetryPolicy, retry_with_backoff
from certwatch.core.config import ReportConfig, normalize_recipients
from certwatch.core.exceptions import DeliveryError

logger = logging.getLogger(__name__)

# (filename, content, mimetype)
Attachment = Tuple[str, bytes, str]

RETRYABLE_DELIVERY_ERRORS = (smtplib.SMTPException, OSError)


def build_message(
    subject: str,
    text_body: str,
    recipients: Sequence[str],
    from_email: str,
    html_body: Optional[str] = None,
    attachments: Iterable[Attachment] = (),
) -> EmailMultiAlternatives:
    """Assemble a multipart email with optional HTML alternative and files."""
    email = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=from_email,
        to=list(recipients),
    )
    if html_body:
        email.attach_alternative(html_body, "text/html")
    for filename, content, mimetype in attachments:
        email.attach(filename, content, mimetype)
    return email


def send_notification(
    config: ReportConfig,
    subject: str,
    text_body: str,
    html_body: Optional[str] = None,
    attachments: Iterable[Attachment] = (),
    recipients: Optional[Iterable[str]] = None,
) -> int:
    """
    Send a notification to the report's recipients.

    When ``config.send_individually`` is set each recipient gets a separate
    message (nobody sees the rest of the list) and each message is retried
    on its own, so a dropped connection never repeats a message that was
    already accepted. Otherwise one message is addressed to everyone.

    Args:
        config: report profile (recipients, sender, delivery mode)
        subject: email subject
        text_body: plain text body, always included
        html_body: optional HTML alternative
        attachments: (filename, content, mimetype) tuples
        recipients: overrides config.recipients when given

    Returns:
        Number of messages handed to the mail backend

    Raises:
        DeliveryError: the backend still failed after all retries
    """
    to = normalize_recipients(recipients) if recipients is not None else list(config.recipients)
    if not to:
        logger.warning(f"Report {config.name} has no recipients configured, email not sent")
        return 0

    attachments = list(attachments)
    if config.send_individually:
        messages = [
            build_message(subject, text_body, [address], config.sender, html_body, attachments)
            for address in to
        ]
    else:
        messages = [
            build_message(subject, text_body, to, config.sender, html_body, attachments)
        ]

    sent = sum(_deliver(message) for message in messages)
    logger.info(
        f"Report {config.name}: sent {sent} message(s) to {len(to)} recipient(s) "
        f"with {len(attachments)} attachment(s)"
    )
    return sent


def _deliver(message: EmailMultiAlternatives) -> int:
    @retry_with_backoff(RetryPolicy.from_settings(), retryable_exceptions=RETRYABLE_DELIVERY_ERRORS)
    def send_messages():
        connection = get_connection(fail_silently=False)
        return connection.send_messages([message]) or 0

    try:
        return send_messages()
    except RETRYABLE_DELIVERY_ERRORS as e:
        raise DeliveryError(f"Email delivery failed: {e}") from e
