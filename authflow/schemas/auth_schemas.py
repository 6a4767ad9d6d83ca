"""
Authentication-related Pydantic schemas for request/response validation.

Request schemas collect every violation in one pass; parse_signup() and
parse_signin() turn a pydantic ValidationError into RequestValidationFailed
carrying the user-facing messages.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from ..core.exceptions import RequestValidationFailed

DEFAULT_PASSWORD_MIN_LENGTH = 8
DEFAULT_PASSWORD_MAX_LENGTH = 72

SIGNIN_FAILED_MESSAGE = "email or password is incorrect"
PASSWORD_MISMATCH_MESSAGE = "passwords don't match"

# Error types raised by our own validators; their message is already user facing
CUSTOM_ERROR_TYPES = {
    "invalid_email",
    "password_too_short",
    "password_too_long",
    "username_blank",
    "password_mismatch",
}


def normalize_email(value: str) -> str:
    """Syntax-check an address and return it lower-cased. Raises EmailNotValidError."""
    result = validate_email(value, check_deliverability=False)
    return result.normalized.lower()


class SignupRequest(BaseModel):
    """Signup request schema."""

    model_config = ConfigDict(extra="ignore")

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")
    username: Optional[str] = Field(None, description="Display name")
    confirm_password: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("confirm_password", "confirmPassword"),
        description="Must equal password when given",
    )

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        try:
            return normalize_email(v.strip())
        except EmailNotValidError:
            raise PydanticCustomError("invalid_email", "write a valid email")

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str, info: ValidationInfo) -> str:
        context = info.context or {}
        min_length = context.get("password_min_length", DEFAULT_PASSWORD_MIN_LENGTH)
        max_length = context.get("password_max_length", DEFAULT_PASSWORD_MAX_LENGTH)

        if len(v) < min_length:
            raise PydanticCustomError(
                "password_too_short",
                "password must be at least {min_length} characters",
                {"min_length": min_length},
            )
        # bcrypt silently truncates past 72 bytes
        if len(v.encode("utf-8")) > max_length:
            raise PydanticCustomError(
                "password_too_long",
                "password must be at most {max_length} bytes",
                {"max_length": max_length},
            )
        return v

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise PydanticCustomError("username_blank", "username must be at least one character")
        return v

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        password = info.data.get("password")
        if v is not None and password is not None and v != password:
            raise PydanticCustomError("password_mismatch", PASSWORD_MISMATCH_MESSAGE)
        return v


class SigninRequest(BaseModel):
    """Signin request schema. Every failure maps to one generic message."""

    model_config = ConfigDict(extra="ignore")

    email: str = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        try:
            return normalize_email(v.strip())
        except EmailNotValidError:
            raise PydanticCustomError("invalid_email", SIGNIN_FAILED_MESSAGE)


def collect_error_messages(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """Flatten pydantic error dicts into unique, user-facing messages, in order."""
    messages: List[str] = []
    for error in errors:
        field = ".".join(str(part) for part in error["loc"]) or "body"
        if error["type"] == "missing":
            message = f"{field} is required"
        elif error["type"] in CUSTOM_ERROR_TYPES:
            message = error["msg"]
        else:
            message = f"{field}: {error['msg']}"
        if message not in messages:
            messages.append(message)
    return messages


def _confirmation_differs(data: Dict[str, Any]) -> bool:
    """Compare the raw fields, since info.data has no password once its own check failed."""
    password = data.get("password")
    confirm = data.get("confirm_password", data.get("confirmPassword"))
    return isinstance(password, str) and isinstance(confirm, str) and confirm != password


def parse_signup(
    data: Dict[str, Any],
    password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH,
    password_max_length: int = DEFAULT_PASSWORD_MAX_LENGTH,
) -> SignupRequest:
    try:
        return SignupRequest.model_validate(
            data,
            context={
                "password_min_length": password_min_length,
                "password_max_length": password_max_length,
            },
        )
    except ValidationError as e:
        messages = collect_error_messages(e.errors())
        if _confirmation_differs(data) and PASSWORD_MISMATCH_MESSAGE not in messages:
            messages.append(PASSWORD_MISMATCH_MESSAGE)
        raise RequestValidationFailed(messages) from e


def parse_signin(data: Dict[str, Any]) -> SigninRequest:
    try:
        return SigninRequest.model_validate(data)
    except ValidationError as e:
        raise RequestValidationFailed([SIGNIN_FAILED_MESSAGE]) from e


class ResponseModel(BaseModel):
    """Base for response bodies; serialised with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserResponse(ResponseModel):
    """Public view of a user. Never carries the password hash."""

    id: int
    email: str
    username: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    is_verified: bool = False
    created_at: Optional[datetime] = None


class SignupResponse(ResponseModel):
    success: bool = True
    message: str
    user: UserResponse
    verification_status: str


class SigninResponse(ResponseModel):
    success: bool = True
    message: str
    user_id: int
    token: str


class MessageResponse(ResponseModel):
    success: bool = True
    message: str
    user_id: Optional[int] = None


class ClaimsResponse(ResponseModel):
    success: bool = True
    message: str
    user_id: int
    permissions: List[str]
    expires_at: datetime


class ErrorResponse(ResponseModel):
    success: bool = False
    message: str
    errors: Optional[List[str]] = None
    request_id: Optional[str] = None
