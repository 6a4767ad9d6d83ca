"""
Service layer for the auth service.
"""
from .auth_service import AuthService, SigninResult, SignupResult
from .mail_service import ConsoleMailSender, SMTPMailSender, build_mail_sender

__all__ = [
    "AuthService",
    "ConsoleMailSender",
    "SMTPMailSender",
    "SigninResult",
    "SignupResult",
    "build_mail_sender",
]
