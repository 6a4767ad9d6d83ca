"""
Mapping from domain exceptions to public HTTP responses.

Internal detail (the exception message) is logged, never returned. Lookup
walks the exception's MRO so subclasses inherit their parent's response
unless they have their own entry.
"""
from typing import Dict, Optional, Tuple, Type

from fastapi import status
from fastapi.responses import JSONResponse
import structlog

from ..core.exceptions import (
    AlreadyVerifiedError,
    AuthenticationFailedError,
    AuthflowError,
    DuplicateEmailError,
    HashingError,
    MailDispatchError,
    MailTimeoutError,
    NotFoundError,
    RequestValidationFailed,
    StorageError,
    TokenError,
    TokenExpiredError,
    UserNotFoundError,
    VerificationExpiredError,
    VerificationInvalidError,
    VerificationNotFoundError,
)
from ..schemas.auth_schemas import ErrorResponse

logger = structlog.get_logger()

VALIDATION_MESSAGE = "user errors, check the data you have inserted"
INTERNAL_ERROR_MESSAGE = "internal server error"

ERROR_RESPONSES: Dict[Type[AuthflowError], Tuple[int, str]] = {
    RequestValidationFailed: (status.HTTP_400_BAD_REQUEST, VALIDATION_MESSAGE),
    DuplicateEmailError: (status.HTTP_409_CONFLICT, "user with this email already exists"),
    AuthenticationFailedError: (status.HTTP_401_UNAUTHORIZED, "email or password is incorrect"),
    UserNotFoundError: (status.HTTP_404_NOT_FOUND, "user not found"),
    VerificationNotFoundError: (status.HTTP_404_NOT_FOUND, "no pending verification for this account"),
    NotFoundError: (status.HTTP_404_NOT_FOUND, "not found"),
    HashingError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "system error, hash failure"),
    StorageError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "error on writing in db"),
    MailTimeoutError: (status.HTTP_504_GATEWAY_TIMEOUT, "mail server did not respond, retry later"),
    MailDispatchError: (status.HTTP_502_BAD_GATEWAY, "failed to send mail"),
    TokenExpiredError: (status.HTTP_401_UNAUTHORIZED, "token has expired"),
    TokenError: (status.HTTP_401_UNAUTHORIZED, "invalid token"),
    VerificationInvalidError: (status.HTTP_400_BAD_REQUEST, "invalid verification link"),
    VerificationExpiredError: (status.HTTP_410_GONE, "verification link has expired, request a new one"),
    AlreadyVerifiedError: (status.HTTP_409_CONFLICT, "email already verified"),
}


def lookup_error(exc: AuthflowError) -> Tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in ERROR_RESPONSES:
            return ERROR_RESPONSES[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE


def render_error(exc: AuthflowError, request_id: Optional[str] = None) -> JSONResponse:
    status_code, message = lookup_error(exc)

    if status_code >= 500:
        logger.error("Request failed", error_code=exc.code, error=exc.message)
    else:
        logger.info("Request rejected", error_code=exc.code, status_code=status_code)

    errors = exc.messages if isinstance(exc, RequestValidationFailed) else None
    body = ErrorResponse(message=message, errors=errors, request_id=request_id)

    headers = None
    if isinstance(exc, TokenError):
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )
