"""
Repository interfaces for dependency abstraction.
Defines the data access contract the auth services depend on so storage can
be swapped or mocked in tests.
"""
from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from ..models.verification import UserVerification


@runtime_checkable
class ICredentialStore(Protocol):
    """Protocol for user and verification record persistence."""

    async def create_user(
        self,
        db: AsyncSession,
        email: str,
        hashed_password: str,
        username: Optional[str] = None,
        permissions: Optional[List[str]] = None,
    ) -> User:
        """
        Insert a new user in a single committed write.

        Args:
            db: Database session
            email: Normalised, unique email
            hashed_password: bcrypt hash, never the plaintext
            username: Optional display name
            permissions: Permission claims to embed in future tokens

        Returns:
            Created user instance

        Raises:
            DuplicateEmailError: The email is already registered
            StorageError: Any other database failure
        """
        ...

    async def get_by_email(self, db: AsyncSession, email: str) -> User:
        """Get user by email. Raises UserNotFoundError."""
        ...

    async def get_by_id(self, db: AsyncSession, user_id: int) -> User:
        """Get user by ID. Raises UserNotFoundError."""
        ...

    async def create_verification(
        self,
        db: AsyncSession,
        user_id: int,
        unique_string_hash: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> UserVerification:
        """Persist a pending verification record. Raises StorageError."""
        ...

    async def get_pending_verifications(
        self,
        db: AsyncSession,
        user_id: int,
    ) -> List[UserVerification]:
        """Pending records for a user, newest first."""
        ...

    async def complete_verification(
        self,
        db: AsyncSession,
        user: User,
        verification: UserVerification,
        at: datetime,
    ) -> User:
        """
        Mark the user verified and the record consumed, superseding any other
        pending records of the same user, in one transaction.

        The record is consumed only if it is still pending when written;
        otherwise VerificationInvalidError is raised and nothing changes.
        """
        ...

    async def expire_verification(
        self,
        db: AsyncSession,
        verification: UserVerification,
    ) -> UserVerification:
        """Mark a record expired."""
        ...
