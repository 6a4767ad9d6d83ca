"""
Database models for the auth service.
"""
from .base import Base
from .user import User
from .verification import UserVerification, VerificationStatus

__all__ = [
    "Base",
    "User",
    "UserVerification",
    "VerificationStatus",
]
