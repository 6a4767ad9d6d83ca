"""
Exception hierarchy for the auth core.

Services raise these; the API layer turns them into public responses through
a single table (authflow.api.errors). The message passed to the constructor is
internal detail for logs only and is never sent to clients.
"""
from typing import Any, Dict, List, Optional


class AuthflowError(Exception):
    """Base exception for all authflow errors."""

    code = "AUTHFLOW_ERROR"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.message:
            return f"[{self.code}] {self.message}"
        return self.code


class RequestValidationFailed(AuthflowError):
    """Input failed shape validation. Carries every violation, not just the first."""

    code = "VALIDATION_ERROR"

    def __init__(self, messages: List[str]):
        super().__init__("; ".join(messages))
        self.messages = messages


class DuplicateEmailError(AuthflowError):
    code = "DUPLICATE_EMAIL"


class AuthenticationFailedError(AuthflowError):
    """Unknown email or wrong password. Deliberately says nothing about which."""

    code = "AUTHENTICATION_FAILED"


class NotFoundError(AuthflowError):
    code = "NOT_FOUND"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"


class VerificationNotFoundError(NotFoundError):
    code = "VERIFICATION_NOT_FOUND"


class HashingError(AuthflowError):
    code = "HASHING_FAILED"


class StorageError(AuthflowError):
    code = "STORAGE_FAILED"


class MailDispatchError(AuthflowError):
    code = "MAIL_DISPATCH_FAILED"


class MailTimeoutError(MailDispatchError):
    code = "MAIL_TIMEOUT"


class TokenError(AuthflowError):
    code = "TOKEN_INVALID"


class TokenExpiredError(TokenError):
    code = "TOKEN_EXPIRED"


class TokenMalformedError(TokenError):
    code = "TOKEN_MALFORMED"


class TokenSignatureError(TokenError):
    code = "TOKEN_SIGNATURE_INVALID"


class VerificationInvalidError(AuthflowError):
    code = "VERIFICATION_INVALID"


class VerificationExpiredError(AuthflowError):
    code = "VERIFICATION_EXPIRED"


class AlreadyVerifiedError(AuthflowError):
    code = "ALREADY_VERIFIED"
