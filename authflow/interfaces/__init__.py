"""
Interfaces for dependency abstraction.
"""
from .mail_interface import IMailSender
from .repository_interface import ICredentialStore

__all__ = [
    "ICredentialStore",
    "IMailSender",
]
