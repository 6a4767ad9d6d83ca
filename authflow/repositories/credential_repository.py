"""
Credential repository implementation following the Repository pattern.
Handles user and verification record persistence.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import structlog

from ..core.exceptions import (
    DuplicateEmailError,
    StorageError,
    UserNotFoundError,
    VerificationInvalidError,
)
from ..interfaces.repository_interface import ICredentialStore
from ..models.user import User
from ..models.verification import UserVerification, VerificationStatus

logger = structlog.get_logger()


class CredentialRepository(ICredentialStore):
    """Repository for users and their verification records."""

    async def create_user(
        self,
        db: AsyncSession,
        email: str,
        hashed_password: str,
        username: Optional[str] = None,
        permissions: Optional[List[str]] = None,
    ) -> User:
        user = User(
            email=email,
            username=username,
            hashed_password=hashed_password,
            permissions=list(permissions or []),
            is_verified=False,
        )
        try:
            db.add(user)
            await db.commit()
            await db.refresh(user)
        except IntegrityError as e:
            await db.rollback()
            logger.info("User creation rejected, email already registered", email="***MASKED***")
            raise DuplicateEmailError("email already registered") from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("User creation failed", error=str(e))
            raise StorageError("failed to create user") from e

        logger.info("User created successfully", user_id=user.id)
        return user

    async def get_by_email(self, db: AsyncSession, email: str) -> User:
        user = await self._scalar(
            db,
            select(User).where(User.email == email),
            "Failed to get user by email",
        )
        if user is None:
            raise UserNotFoundError("no user with this email")
        return user

    async def get_by_id(self, db: AsyncSession, user_id: int) -> User:
        user = await self._scalar(
            db,
            select(User).where(User.id == user_id),
            "Failed to get user by ID",
        )
        if user is None:
            raise UserNotFoundError(f"no user with id {user_id}")
        return user

    async def create_verification(
        self,
        db: AsyncSession,
        user_id: int,
        unique_string_hash: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> UserVerification:
        verification = UserVerification(
            user_id=user_id,
            unique_string_hash=unique_string_hash,
            status=VerificationStatus.PENDING.value,
            created_at=created_at,
            expires_at=expires_at,
        )
        try:
            db.add(verification)
            await db.commit()
            await db.refresh(verification)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Verification record creation failed", user_id=user_id, error=str(e))
            raise StorageError("failed to store verification record") from e

        logger.info(
            "Verification record created",
            user_id=user_id,
            verification_id=verification.id,
        )
        return verification

    async def get_pending_verifications(
        self,
        db: AsyncSession,
        user_id: int,
    ) -> List[UserVerification]:
        query = (
            select(UserVerification)
            .where(
                UserVerification.user_id == user_id,
                UserVerification.status == VerificationStatus.PENDING.value,
            )
            .order_by(UserVerification.created_at.desc(), UserVerification.id.desc())
        )
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to load verification records", user_id=user_id, error=str(e))
            raise StorageError("failed to load verification records") from e
        return list(result.scalars().all())

    async def complete_verification(
        self,
        db: AsyncSession,
        user: User,
        verification: UserVerification,
        at: datetime,
    ) -> User:
        user_id, verification_id = user.id, verification.id
        try:
            consumed = await db.execute(
                update(UserVerification)
                .where(
                    UserVerification.id == verification_id,
                    UserVerification.status == VerificationStatus.PENDING.value,
                )
                .values(status=VerificationStatus.CONSUMED.value, consumed_at=at)
            )
            if consumed.rowcount != 1:
                await db.rollback()
                logger.warning(
                    "Verification record no longer pending",
                    user_id=user_id,
                    verification_id=verification_id,
                )
                raise VerificationInvalidError("verification link was already used")

            await db.execute(
                update(UserVerification)
                .where(
                    UserVerification.user_id == user_id,
                    UserVerification.status == VerificationStatus.PENDING.value,
                )
                .values(status=VerificationStatus.SUPERSEDED.value)
            )
            user.is_verified = True
            user.email_verified_at = at
            await db.commit()
            await db.refresh(user)
            await db.refresh(verification)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Verification completion failed", user_id=user_id, error=str(e))
            raise StorageError("failed to complete verification") from e

        logger.info("Email verified", user_id=user_id, verification_id=verification_id)
        return user

    async def expire_verification(
        self,
        db: AsyncSession,
        verification: UserVerification,
    ) -> UserVerification:
        try:
            verification.status = VerificationStatus.EXPIRED.value
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to expire verification", verification_id=verification.id, error=str(e))
            raise StorageError("failed to expire verification record") from e
        return verification

    async def _scalar(self, db: AsyncSession, query, failure_message: str):
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error(failure_message, error=str(e))
            raise StorageError(failure_message) from e
        return result.scalar_one_or_none()
