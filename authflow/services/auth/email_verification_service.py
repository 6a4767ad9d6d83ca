"""
Email verification service focused solely on email verification operations.
Issues one-time verification links and consumes them.
"""
from datetime import datetime, timedelta, timezone
from html import escape
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...core.exceptions import (
    AlreadyVerifiedError,
    UserNotFoundError,
    VerificationExpiredError,
    VerificationInvalidError,
    VerificationNotFoundError,
)
from ...core.security import PasswordHasher, generate_unique_string
from ...interfaces.mail_interface import IMailSender
from ...interfaces.repository_interface import ICredentialStore
from ...models.user import User
from ...models.verification import UserVerification

logger = structlog.get_logger()

VERIFICATION_SUBJECT = "verify your email"


def build_verification_link(base_url: str, user_id: int, unique_string: str) -> str:
    return f"{base_url.rstrip('/')}/auth/verify/{user_id}/{unique_string}"


def render_verification_email(link: str, ttl: timedelta) -> str:
    hours = int(ttl.total_seconds() // 3600)
    window = f"{hours} hours" if hours != 1 else "1 hour"
    return (
        "<p>verify your email address to complete the signup and login into your account.</p>"
        f"<p>this link <b>expires in {window}</b>.</p>"
        f'<p>Press <a href="{escape(link, quote=True)}">here</a> to proceed.</p>'
    )


class EmailVerificationService:
    """Service responsible for email verification operations."""

    def __init__(
        self,
        credential_store: ICredentialStore,
        password_hasher: PasswordHasher,
        mail_sender: IMailSender,
        base_url: str,
        ttl: timedelta = timedelta(hours=6),
    ):
        self.credential_store = credential_store
        self.password_hasher = password_hasher
        self.mail_sender = mail_sender
        self.base_url = base_url
        self.ttl = ttl

    async def initiate(
        self,
        db: AsyncSession,
        user: User,
        now: Optional[datetime] = None,
    ) -> UserVerification:
        """
        Create a verification record for user and email them the link.

        The plaintext one-time string only lives long enough to be hashed and
        written into the link; it is neither returned nor logged.

        Args:
            db: Database session
            user: Unverified user
            now: Override the creation time (defaults to now, UTC)

        Returns:
            The persisted verification record

        Raises:
            AlreadyVerifiedError: Nothing to verify
            HashingError: The one-time string could not be hashed
            StorageError: The record could not be persisted
            MailDispatchError: The record exists but the email was not sent
        """
        if user.is_verified:
            raise AlreadyVerifiedError(f"user {user.id} is already verified")

        created_at = now or datetime.now(timezone.utc)
        unique_string = generate_unique_string(user.id)
        unique_string_hash = await self.password_hasher.hash(unique_string)

        verification = await self.credential_store.create_verification(
            db,
            user_id=user.id,
            unique_string_hash=unique_string_hash,
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )

        link = build_verification_link(self.base_url, user.id, unique_string)
        await self.mail_sender.send(
            to_address=user.email,
            subject=VERIFICATION_SUBJECT,
            html_body=render_verification_email(link, self.ttl),
        )

        logger.info(
            "Verification email sent",
            user_id=user.id,
            verification_id=verification.id,
            email="***MASKED***",
        )
        return verification

    async def verify(
        self,
        db: AsyncSession,
        user_id: int,
        unique_string: str,
        now: Optional[datetime] = None,
    ) -> User:
        """
        Consume a verification link.

        Raises:
            VerificationNotFoundError: The user has no pending verification
            VerificationInvalidError: Unknown user id, no pending record
                matches the string, or the record was consumed concurrently
            VerificationExpiredError: The matching record is past its expiry
        """
        now = now or datetime.now(timezone.utc)
        try:
            user = await self.credential_store.get_by_id(db, user_id)
        except UserNotFoundError:
            # Same answer as a bad string so links cannot enumerate user ids
            logger.warning("Verification link for unknown user", user_id=user_id)
            raise VerificationInvalidError("verification link is not valid")

        pending = await self.credential_store.get_pending_verifications(db, user_id)
        if not pending:
            if user.is_verified:
                raise AlreadyVerifiedError(f"user {user_id} is already verified")
            raise VerificationNotFoundError(f"no pending verification for user {user_id}")

        match = None
        for verification in pending:
            if await self.password_hasher.verify(unique_string, verification.unique_string_hash):
                match = verification
                break

        if match is None:
            logger.warning("Verification string did not match", user_id=user_id)
            raise VerificationInvalidError("verification string does not match")

        if match.is_expired(now):
            await self.credential_store.expire_verification(db, match)
            logger.info("Verification link expired", user_id=user_id, verification_id=match.id)
            raise VerificationExpiredError("verification link has expired")

        return await self.credential_store.complete_verification(db, user, match, now)
