"""Unit tests for portfolio_api.services.email: reset message and SMTP delivery."""

import asyncio
import smtplib
import unittest
from unittest.mock import MagicMock, patch

from pydantic import SecretStr

from portfolio_api.services.email import (
    EmailDeliveryError,
    SmtpEmailSender,
    build_reset_link,
    render_reset_email,
)


class TestResetMessage(unittest.TestCase):
    def test_link(self) -> None:
        self.assertEqual(
            build_reset_link("https://example.com/", "abc"),
            "https://example.com/reset-password?token=abc",
        )

    def test_body_mentions_link_and_lifetime(self) -> None:
        body = render_reset_email("https://example.com/reset-password?token=abc", 60)
        self.assertIn('href="https://example.com/reset-password?token=abc"', body)
        self.assertIn("expire in 1 hour", body)

    def test_lifetime_wording(self) -> None:
        self.assertIn("expire in 2 hours", render_reset_email("x", 120))
        self.assertIn("expire in 30 minutes", render_reset_email("x", 30))


def _sender(**kwargs: object) -> SmtpEmailSender:
    options: dict = {
        "host": "smtp.example.com",
        "port": 587,
        "from_address": "no-reply@example.com",
        "from_name": "Portfolio",
        "username": "mailer",
        "password": "pw",
    }
    options.update(kwargs)
    return SmtpEmailSender(**options)


class TestSmtpEmailSender(unittest.TestCase):
    """SmtpEmailSender with smtplib patched out."""

    @patch("portfolio_api.services.email.smtplib.SMTP")
    def test_sends_with_starttls_and_login(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value.__enter__.return_value

        asyncio.run(_sender().send("a@x.com", "Password Reset", "<p>hi</p>"))

        mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "pw")
        server.send_message.assert_called_once()
        msg = server.send_message.call_args[0][0]
        self.assertEqual(msg["To"], "a@x.com")
        self.assertEqual(msg["Subject"], "Password Reset")
        self.assertIn("Portfolio", msg["From"])
        self.assertIn("no-reply@example.com", msg["From"])

    @patch("portfolio_api.services.email.smtplib.SMTP_SSL")
    def test_ssl_without_login(self, mock_smtp_ssl: MagicMock) -> None:
        server = mock_smtp_ssl.return_value.__enter__.return_value

        sender = _sender(port=465, use_tls=False, use_ssl=True, username=None, password=None)
        asyncio.run(sender.send("a@x.com", "s", "b"))

        mock_smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30.0)
        server.starttls.assert_not_called()
        server.login.assert_not_called()
        server.send_message.assert_called_once()

    @patch("portfolio_api.services.email.smtplib.SMTP")
    def test_smtp_error_raises_delivery_error(self, mock_smtp: MagicMock) -> None:
        server = mock_smtp.return_value.__enter__.return_value
        server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

        with self.assertRaises(EmailDeliveryError) as ctx:
            asyncio.run(_sender().send("a@x.com", "s", "b"))
        self.assertIn("SMTPRecipientsRefused", ctx.exception.message)

    @patch("portfolio_api.services.email.smtplib.SMTP")
    def test_connection_error_raises_delivery_error(self, mock_smtp: MagicMock) -> None:
        mock_smtp.side_effect = ConnectionRefusedError()

        with self.assertRaises(EmailDeliveryError):
            asyncio.run(_sender().send("a@x.com", "s", "b"))

    def test_from_settings(self) -> None:
        settings = MagicMock()
        settings.SMTP_HOST = "mail.local"
        settings.SMTP_PORT = 2525
        settings.EMAIL_FROM = "site@example.com"
        settings.EMAIL_FROM_NAME = ""
        settings.SMTP_USERNAME = "u"
        settings.SMTP_PASSWORD = SecretStr("p")
        settings.SMTP_USE_TLS = False
        settings.SMTP_USE_SSL = False
        settings.SMTP_TIMEOUT_SEC = 5.0

        with patch("portfolio_api.services.email.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value
            asyncio.run(SmtpEmailSender.from_settings(settings).send("a@x.com", "s", "b"))

        mock_smtp.assert_called_once_with("mail.local", 2525, timeout=5.0)
        server.login.assert_called_once_with("u", "p")
        msg = server.send_message.call_args[0][0]
        self.assertEqual(msg["From"], "site@example.com")


if __name__ == "__main__":
    unittest.main()
