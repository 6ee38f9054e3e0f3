"""
Tests for email delivery: recipients, alternatives, attachments and retries.
"""

import smtplib
from unittest.mock import MagicMock, patch

from django.core import mail
from django.core.mail.backends import locmem
from django.test import SimpleTestCase, override_settings

from certwatch.alerts.resilience import RetryPolicy, retry_with_backoff
from certwatch.alerts.services import send_notification
from certwatch.core.config import ReportConfig
from certwatch.core.exceptions import DeliveryError
from certwatch.tests.factories import ReportConfigFactory


class DropsConnectionOnceBackend(locmem.EmailBackend):
    """Accepts one message, then loses the connection a single time."""

    accepted = 0
    dropped = False

    def send_messages(self, messages):
        sent = 0
        for message in messages:
            cls = DropsConnectionOnceBackend
            if cls.accepted == 1 and not cls.dropped:
                cls.dropped = True
                raise smtplib.SMTPServerDisconnected("connection lost")
            sent += super().send_messages([message])
            cls.accepted += 1
        return sent


class SendNotificationTest(SimpleTestCase):

    def setUp(self):
        self.config = ReportConfig.from_dict(
            "certification",
            {"recipients": ["intake@example.com", "Nursing@example.com", "nursing@example.com"]},
        )

    def test_single_message_to_all_recipients(self):
        sent = send_notification(self.config, "Subject", "Plain body")

        self.assertEqual(sent, 1)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["intake@example.com", "Nursing@example.com"])
        self.assertEqual(message.from_email, "certwatch@example.com")
        self.assertEqual(message.body, "Plain body")
        self.assertEqual(message.alternatives, [])

    def test_html_alternative_and_attachments(self):
        send_notification(
            self.config,
            "Subject",
            "Plain body",
            html_body="<p>HTML body</p>",
            attachments=[("90DAY1_Jane_Roe.pdf", b"%PDF-1.7", "application/pdf")],
        )

        message = mail.outbox[0]
        self.assertEqual(message.alternatives[0][0], "<p>HTML body</p>")
        self.assertEqual(message.alternatives[0][1], "text/html")
        self.assertEqual(len(message.attachments), 1)
        self.assertEqual(message.attachments[0][0], "90DAY1_Jane_Roe.pdf")

    def test_individual_messages(self):
        config = self.config.with_overrides(send_individually=True)
        sent = send_notification(config, "Subject", "Body")

        self.assertEqual(sent, 2)
        self.assertEqual([message.to for message in mail.outbox], [["intake@example.com"], ["Nursing@example.com"]])

    @override_settings(EMAIL_BACKEND="certwatch.alerts.tests_services.DropsConnectionOnceBackend")
    def test_dropped_connection_does_not_repeat_delivered_messages(self):
        DropsConnectionOnceBackend.accepted = 0
        DropsConnectionOnceBackend.dropped = False
        config = self.config.with_overrides(send_individually=True)

        with self.assertLogs("certwatch.alerts.resilience", level="WARNING"):
            sent = send_notification(
                config,
                "Subject",
                "Body",
                recipients=["a@example.com", "b@example.com", "c@example.com"],
            )

        self.assertTrue(DropsConnectionOnceBackend.dropped)
        self.assertEqual(sent, 3)
        self.assertEqual(
            [message.to for message in mail.outbox],
            [["a@example.com"], ["b@example.com"], ["c@example.com"]],
        )

    def test_recipient_override(self):
        send_notification(self.config, "Subject", "Body", recipients=["other@example.com"])
        self.assertEqual(mail.outbox[0].to, ["other@example.com"])

    def test_no_recipients(self):
        config = ReportConfigFactory(recipients=())
        with self.assertLogs("certwatch.alerts.services", level="WARNING"):
            sent = send_notification(config, "Subject", "Body")
        self.assertEqual(sent, 0)
        self.assertEqual(len(mail.outbox), 0)

    def test_profile_sender(self):
        config = ReportConfigFactory(from_email="reports@example.com")
        send_notification(config, "Subject", "Body")

        self.assertEqual(mail.outbox[0].from_email, "reports@example.com")
        self.assertEqual(mail.outbox[0].to, ["staff@example.com"])

    @patch("certwatch.alerts.services.get_connection")
    def test_delivery_failure_after_retries(self, mock_get_connection):
        connection = MagicMock()
        connection.send_messages.side_effect = smtplib.SMTPServerDisconnected("connection lost")
        mock_get_connection.return_value = connection

        with self.assertRaises(DeliveryError) as cm:
            send_notification(self.config, "Subject", "Body")

        # CERTWATCH_EMAIL_RETRY in test settings allows two retries
        self.assertEqual(connection.send_messages.call_count, 3)
        self.assertIn("connection lost", str(cm.exception))

    @patch("certwatch.alerts.services.get_connection")
    def test_transient_failure_recovers(self, mock_get_connection):
        connection = MagicMock()
        connection.send_messages.side_effect = [ConnectionResetError("reset"), 1]
        mock_get_connection.return_value = connection

        self.assertEqual(send_notification(self.config, "Subject", "Body"), 1)
        self.assertEqual(connection.send_messages.call_count, 2)


class RetryWithBackoffTest(SimpleTestCase):

    def test_policy_from_settings(self):
        policy = RetryPolicy.from_settings()
        self.assertEqual(policy.max_retries, 2)
        self.assertEqual(list(policy.delays()), [0, 0])

    def test_delays_are_capped(self):
        policy = RetryPolicy(max_retries=6, base_delay=5.0, max_delay=30.0)
        self.assertEqual(list(policy.delays()), [5.0, 10.0, 20.0, 30.0, 30.0, 30.0])

    @patch("certwatch.alerts.resilience.time.sleep")
    def test_exponential_delays(self, mock_sleep):
        calls = []

        @retry_with_backoff(RetryPolicy(max_retries=3, base_delay=1.0), retryable_exceptions=(OSError,))
        def flaky():
            calls.append(1)
            raise OSError("down")

        with self.assertRaises(OSError):
            flaky()

        self.assertEqual(len(calls), 4)
        self.assertEqual([call.args[0] for call in mock_sleep.call_args_list], [1.0, 2.0, 4.0])

    def test_non_retryable_error_propagates_immediately(self):
        calls = []

        @retry_with_backoff(RetryPolicy(max_retries=3, base_delay=0), retryable_exceptions=(OSError,))
        def broken():
            calls.append(1)
            raise ValueError("bad message")

        with self.assertRaises(ValueError):
            broken()
        self.assertEqual(len(calls), 1)
