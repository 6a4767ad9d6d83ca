"""
Outbound mail contract.
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class IMailSender(Protocol):
    """Protocol for sending transactional email."""

    async def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Dispatch one HTML email.

        Raises:
            MailTimeoutError: The transport did not answer in time
            MailDispatchError: The transport rejected or failed the message
        """
        ...

    async def check_connection(self) -> bool:
        """Return True if the transport is reachable and accepts our credentials."""
        ...
