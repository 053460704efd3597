"""Outgoing email: sender protocol, SMTP implementation and the password-reset message."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from portfolio_api.core.config import Settings

logger = logging.getLogger(__name__)

RESET_EMAIL_SUBJECT = "Password Reset"


class EmailDeliveryError(Exception):
    """Raised when a message could not be handed to the mail server."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one HTML message. Raises EmailDeliveryError on failure."""
        ...


def build_reset_link(frontend_url: str, raw_token: str) -> str:
    return f"{frontend_url.rstrip('/')}/reset-password?token={raw_token}"


def render_reset_email(reset_link: str, expire_minutes: int) -> str:
    """HTML body for the password-reset message."""
    if expire_minutes % 60 == 0:
        hours = expire_minutes // 60
        lifetime = "1 hour" if hours == 1 else f"{hours} hours"
    else:
        lifetime = f"{expire_minutes} minutes"
    return (
        "<h1>Password Reset</h1>\n"
        "<p>You requested a password reset. Click the link below to reset your password:</p>\n"
        f'<p><a href="{reset_link}">Reset Password</a></p>\n'
        "<p>If you didn't request this, please ignore this email.</p>\n"
        f"<p>This link will expire in {lifetime}.</p>\n"
    )


class SmtpEmailSender:
    """
    EmailSender over SMTP.

    smtplib is blocking, so each send runs in a worker thread. One connection
    is opened per message; nothing is retried.
    """

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        from_name: str = "",
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from = formataddr((from_name, from_address)) if from_name else from_address
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._use_ssl = use_ssl
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> SmtpEmailSender:
        password = settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            from_address=settings.EMAIL_FROM,
            from_name=settings.EMAIL_FROM_NAME,
            username=settings.SMTP_USERNAME,
            password=password,
            use_tls=settings.SMTP_USE_TLS,
            use_ssl=settings.SMTP_USE_SSL,
            timeout=settings.SMTP_TIMEOUT_SEC,
        )

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from
        msg["To"] = to
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(body, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        smtp_class = smtplib.SMTP_SSL if self._use_ssl else smtplib.SMTP
        with smtp_class(self._host, self._port, timeout=self._timeout) as server:
            if self._use_tls:
                server.starttls()
            if self._username and self._password:
                server.login(self._username, self._password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = self._build_message(to, subject, body)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"SMTP delivery failed: {type(e).__name__}") from e
        logger.info("Email sent", extra={"subject": subject, "smtp_host": self._host})
