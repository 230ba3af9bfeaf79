"""Transactional mail delivery over SMTP."""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr

from fastapi.concurrency import run_in_threadpool

from .config import Settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class OutgoingMail:
    """A plain-text message ready to be handed to the transport."""

    recipient: str
    subject: str
    body: str
    sender_name: str
    sender_address: str


class Mailer:
    """Sends OutgoingMail through the configured SMTP relay (STARTTLS)."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return bool(self._settings.smtp_host)

    def build_message(self, mail: OutgoingMail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((mail.sender_name, mail.sender_address))
        message["To"] = mail.recipient
        message["Subject"] = mail.subject
        message.set_content(mail.body)
        return message

    async def deliver(self, mail: OutgoingMail) -> bool:
        """Send `mail` and report whether the relay accepted it.

        Transport failures are logged and reported as False, never raised.
        """

        if not self.enabled:
            logger.warning("Mailer.deliver => transport disabled, '%s' not sent", mail.subject)
            return False

        try:
            await run_in_threadpool(self._transmit, self.build_message(mail))
        except (smtplib.SMTPException, OSError):
            logger.exception("Mailer.deliver => '%s' to %s failed", mail.subject, mail.recipient)
            return False

        logger.info("Mailer.deliver => '%s' delivered to %s", mail.subject, mail.recipient)
        return True

    def _transmit(self, message: EmailMessage) -> None:
        settings = self._settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as client:
            client.starttls()
            if settings.smtp_user:
                client.login(settings.smtp_user, settings.smtp_password)
            client.send_message(message)
