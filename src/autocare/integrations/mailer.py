"""Outbound mail — booking confirmations and low-inventory alerts.

The blocking SMTP exchange runs in a worker thread so it never stalls the
event loop. Delivery failures are logged and surfaced to the caller as
NotificationError; SMTP credentials are never logged.
"""

from __future__ import annotations

import abc
import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from autocare.api.errors import NotificationError
from autocare.config import Settings

logger = structlog.get_logger()


class Mailer(abc.ABC):
    """Abstract base for mail backends."""

    @abc.abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one plain-text message.

        Raises:
            NotificationError: If the message could not be handed off.
        """


class SmtpMailer(Mailer):
    """Sends mail through an SMTP relay, optionally with STARTTLS and login.

    Args:
        host: SMTP server hostname.
        port: SMTP server port.
        from_address: Envelope and header sender.
        username: Login name, if the relay requires auth.
        password: Login password, if the relay requires auth.
        use_tls: Upgrade the connection with STARTTLS before login.
        timeout: Socket timeout in seconds.
    """

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        *,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from_address = from_address
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from_address
        msg["To"] = to
        msg.set_content(body)
        return msg

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            if self._use_tls:
                server.starttls()
            if self._username and self._password:
                server.login(self._username, self._password)
            server.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        message = self._build_message(to, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            await logger.aerror(
                "mail_delivery_failed",
                host=self._host,
                port=self._port,
                recipient=to,
                error_type=type(exc).__name__,
            )
            raise NotificationError() from exc

        await logger.ainfo("mail_sent", recipient=to, subject=subject)


def create_mailer(settings: Settings) -> Mailer:
    """Build the configured mail backend."""
    return SmtpMailer(
        settings.smtp_host,
        settings.smtp_port,
        settings.mail_from,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        timeout=settings.mail_timeout_seconds,
    )
