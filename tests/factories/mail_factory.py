"""
In-memory mail senders used in place of the SMTP transport.
"""
import re
from urllib.parse import urlsplit
from typing import Dict, List

from authflow.core.exceptions import MailDispatchError

LINK_PATTERN = re.compile(r'href="([^"]+)"')


class RecordingMailSender:
    """Mail sender that keeps every message in memory."""

    def __init__(self):
        self.messages: List[Dict[str, str]] = []

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        self.messages.append(
            {"to_address": to_address, "subject": subject, "html_body": html_body}
        )

    async def check_connection(self) -> bool:
        return True

    def last_link(self) -> str:
        match = LINK_PATTERN.search(self.messages[-1]["html_body"])
        assert match, "no link in the last message"
        return match.group(1)

    def last_path(self) -> str:
        """Path of the last link, ready for a test client."""
        return urlsplit(self.last_link()).path


class FailingMailSender:
    """Mail sender whose transport always rejects the message."""

    def __init__(self):
        self.attempts = 0

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        self.attempts += 1
        raise MailDispatchError("relay refused the message")

    async def check_connection(self) -> bool:
        return False

