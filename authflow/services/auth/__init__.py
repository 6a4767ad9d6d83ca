"""
Focused authentication services.
"""
from .email_verification_service import EmailVerificationService
from .token_service import TokenClaims, TokenService

__all__ = [
    "EmailVerificationService",
    "TokenClaims",
    "TokenService",
]
