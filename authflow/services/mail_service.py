"""
Outbound mail senders.

SMTPMailSender talks to a real relay through aiosmtplib; ConsoleMailSender
logs the message instead and is meant for local development.
"""
import asyncio
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import aiosmtplib
import structlog

from ..core.exceptions import MailDispatchError, MailTimeoutError

logger = structlog.get_logger()


def build_message(from_address: str, to_address: str, subject: str, html_body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = from_address
    message["To"] = to_address
    message["Subject"] = subject
    message.set_content("This message requires an HTML capable mail client.")
    message.add_alternative(html_body, subtype="html")
    return message


class SMTPMailSender:
    """Send mail through an SMTP relay, bounded by a per-message timeout."""

    def __init__(
        self,
        hostname: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        from_address: str,
        start_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.hostname = hostname
        self.port = port
        self.username = username
        self._password = password
        self.from_address = from_address
        self.start_tls = start_tls
        self.timeout = timeout

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        message = build_message(self.from_address, to_address, subject, html_body)
        try:
            await asyncio.wait_for(
                aiosmtplib.send(
                    message,
                    hostname=self.hostname,
                    port=self.port,
                    username=self.username,
                    password=self._password,
                    start_tls=self.start_tls,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("Mail dispatch timed out", smtp_host=self.hostname, timeout=self.timeout)
            raise MailTimeoutError(f"no answer from {self.hostname} within {self.timeout}s") from e
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(
                "Mail dispatch failed",
                smtp_host=self.hostname,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise MailDispatchError(f"smtp error: {type(e).__name__}") from e

        logger.info("Mail dispatched", subject=subject, to="***MASKED***")

    async def check_connection(self) -> bool:
        """Connect and authenticate once without sending anything."""
        client = aiosmtplib.SMTP(
            hostname=self.hostname,
            port=self.port,
            start_tls=self.start_tls,
            timeout=self.timeout,
        )
        try:
            await client.connect()
            if self.username:
                await client.login(self.username, self._password or "")
            await client.quit()
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.error(
                "Mail transport unavailable",
                smtp_host=self.hostname,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False
        finally:
            if client.is_connected:
                client.close()

        logger.info("Mail transport ready for messaging", smtp_host=self.hostname)
        return True


class ConsoleMailSender:
    """Log outgoing mail instead of sending it."""

    def __init__(self, from_address: str = "authflow@localhost"):
        self.from_address = from_address

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        logger.info(
            "Console mail",
            from_address=self.from_address,
            to=to_address,
            subject=subject,
            html_body=html_body,
        )

    async def check_connection(self) -> bool:
        logger.info("Console mail backend ready for messaging")
        return True


def build_mail_sender(settings):
    """Build the sender selected by MAIL_BACKEND."""
    from_name = settings.EMAILS_FROM_NAME
    from_email = settings.mail_from_address or "authflow@localhost"
    from_address = formataddr((from_name, from_email)) if from_name else from_email

    if settings.MAIL_BACKEND == "console":
        return ConsoleMailSender(from_address=from_address)

    return SMTPMailSender(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        from_address=from_address,
        start_tls=settings.SMTP_START_TLS,
        timeout=settings.MAIL_SEND_TIMEOUT_SECONDS,
    )
