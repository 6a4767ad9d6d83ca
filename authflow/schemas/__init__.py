"""
Request and response schemas for the auth API.
"""
from .auth_schemas import (
    ClaimsResponse,
    ErrorResponse,
    MessageResponse,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignupResponse,
    UserResponse,
    collect_error_messages,
    parse_signin,
    parse_signup,
)

__all__ = [
    "ClaimsResponse",
    "ErrorResponse",
    "MessageResponse",
    "SigninRequest",
    "SigninResponse",
    "SignupRequest",
    "SignupResponse",
    "UserResponse",
    "collect_error_messages",
    "parse_signin",
    "parse_signup",
]
