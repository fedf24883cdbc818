"""
auth/notifier.py -- Outbound email for the password-reset flow.

SmtpNotifier delivers plain-text mail over implicit-TLS SMTP using the
settings injected at construction. send() raises on any delivery problem
(smtplib.SMTPException, OSError for connection failures); the service decides
what a failure means. There are no retries.

Any object with a matching send(to, subject, body) method satisfies the
Notifier protocol -- tests substitute a recording fake.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("ecomauth.notifier")


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


class SmtpNotifier:
    """Send mail through an SMTP_SSL relay."""

    def __init__(self, settings: Settings) -> None:
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._user = settings.smtp_user
        self._password = settings.smtp_password
        self._sender = settings.email_from

    def send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.set_content(body)

        with smtplib.SMTP_SSL(self._host, self._port) as smtp:
            if self._user:
                smtp.login(self._user, self._password)
            smtp.send_message(msg)
        logger.info("Sent '%s' to %s", subject, to)
