"""Test data factories and collaborator doubles for authflow testing."""

from .mail_factory import FailingMailSender, RecordingMailSender
from .user_factory import SignupPayloadFactory

__all__ = [
    "FailingMailSender",
    "RecordingMailSender",
    "SignupPayloadFactory",
]
