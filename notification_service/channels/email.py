"""SMTP email adapter using aiosmtplib.

Builds a ``multipart/alternative`` message (plain text plus optional HTML)
and submits it to the configured SMTP server. Worker threads have no
event loop of their own, so each submission runs in a short-lived one.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from typing import Any

import aiosmtplib

from notification_service.channels.base import ChannelAdapter, Outcome
from notification_service.errors import ConfigurationError
from notification_service.models.delivery import DeliveryRecord, NotificationChannel
from notification_service.services.recipients import mask_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmtpConfig:
    """SMTP server settings."""

    host: str
    from_address: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout: float = 15.0


def build_mime_message(
    from_address: str,
    to_address: str,
    subject: str | None,
    text: str | None,
    html: str | None = None,
) -> MIMEMultipart | MIMEText:
    """Build the MIME message for one recipient.

    With HTML the message is ``multipart/alternative`` with the plain-text
    part first; without it the message is a single ``text/plain`` part.
    """
    text = text or ""
    if html:
        message: MIMEMultipart | MIMEText = MIMEMultipart("alternative")
        message.attach(MIMEText(text, "plain", "utf-8"))
        message.attach(MIMEText(html, "html", "utf-8"))
    else:
        message = MIMEText(text, "plain", "utf-8")

    message["From"] = from_address
    message["To"] = to_address
    message["Subject"] = subject or ""
    message["Date"] = formatdate(localtime=False, usegmt=True)
    domain = from_address.rsplit("@", 1)[-1] if "@" in from_address else None
    message["Message-ID"] = make_msgid(domain=domain)
    return message


class EmailAdapter(ChannelAdapter):
    """Delivers email over SMTP (STARTTLS on 587 by default)."""

    def __init__(self, config: SmtpConfig) -> None:
        """Initialize the adapter.

        Raises:
            ConfigurationError: If the SMTP host or sender address is missing
        """
        if not config.host:
            raise ConfigurationError("SMTP host is required for email delivery")
        if not config.from_address:
            raise ConfigurationError("Sender address is required for email delivery")

        self.config = config
        logger.info(
            "SMTP adapter initialized",
            extra={"host": config.host, "port": config.port, "use_tls": config.use_tls},
        )

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.EMAIL

    @property
    def provider_name(self) -> str:
        return "smtp"

    def send(self, record: DeliveryRecord) -> Outcome:
        message = build_mime_message(
            self.config.from_address,
            record.recipient,
            record.subject,
            record.content,
            record.html_content,
        )
        message_id = message["Message-ID"]
        masked = mask_email(record.recipient)

        try:
            errors, _response = asyncio.run(self._submit(message))
        except aiosmtplib.SMTPRecipientsRefused as e:
            logger.warning(
                "SMTP server refused recipient",
                extra={"record_id": str(record.id), "recipient": masked, "error": str(e)},
            )
            return Outcome.terminal(f"Recipient refused: {e}")
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.warning(
                "SMTP submission failed",
                extra={"record_id": str(record.id), "recipient": masked, "error": str(e)},
            )
            return Outcome.retryable(f"SMTP submission failed: {e}")

        if errors:
            return Outcome.terminal(f"Recipient refused: {errors}")

        logger.info(
            "Email submitted",
            extra={"record_id": str(record.id), "recipient": masked, "message_id": message_id},
        )
        return Outcome.sent(message_id)

    async def _submit(self, message: MIMEMultipart | MIMEText) -> tuple[dict[str, Any], str]:
        return await aiosmtplib.send(
            message,
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username or None,
            password=self.config.password or None,
            start_tls=self.config.use_tls,
            timeout=self.config.timeout,
        )

    def check_health(self) -> dict[str, Any]:
        """Open and close an SMTP session."""
        started = time.monotonic()
        try:
            asyncio.run(self._probe())
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            return {"healthy": False, "status": "DOWN", "provider": "SMTP", "error": str(e)}

        return {
            "healthy": True,
            "status": "UP",
            "provider": "SMTP",
            "response_time_ms": round((time.monotonic() - started) * 1000, 1),
        }

    async def _probe(self) -> None:
        smtp = aiosmtplib.SMTP(
            hostname=self.config.host,
            port=self.config.port,
            start_tls=self.config.use_tls,
            timeout=self.config.timeout,
        )
        async with smtp:
            await smtp.noop()
