"""
Authentication orchestrator.

Composes the credential store, password hasher, token service and
verification workflow into the signup, signin, signout and email
verification use cases. All business rules and failure policy live here.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..core.exceptions import (
    AuthenticationFailedError,
    HashingError,
    MailDispatchError,
    StorageError,
    TokenError,
    UserNotFoundError,
)
from ..core.security import PasswordHasher
from ..interfaces.repository_interface import ICredentialStore
from ..models.user import User
from ..schemas.auth_schemas import (
    DEFAULT_PASSWORD_MAX_LENGTH,
    DEFAULT_PASSWORD_MIN_LENGTH,
    parse_signin,
    parse_signup,
)
from .auth.email_verification_service import EmailVerificationService
from .auth.token_service import TokenClaims, TokenService

logger = structlog.get_logger()


class VerificationDispatch:
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


SIGNUP_MESSAGES = {
    VerificationDispatch.SENT: "signed up successfully, verification email sent",
    VerificationDispatch.FAILED: "account created, verification email failed, retry later",
    VerificationDispatch.SKIPPED: "signed up successfully",
}


@dataclass
class SignupResult:
    user: User
    verification_status: str

    @property
    def message(self) -> str:
        return SIGNUP_MESSAGES[self.verification_status]


@dataclass
class SigninResult:
    user_id: int
    token: str
    permissions: List[str]


class AuthService:
    """Orchestrates the account lifecycle."""

    def __init__(
        self,
        credential_store: ICredentialStore,
        password_hasher: PasswordHasher,
        token_service: TokenService,
        verification_service: EmailVerificationService,
        default_permissions: Optional[List[str]] = None,
        send_verification_on_signup: bool = True,
        password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH,
        password_max_length: int = DEFAULT_PASSWORD_MAX_LENGTH,
    ):
        self.credential_store = credential_store
        self.password_hasher = password_hasher
        self.token_service = token_service
        self.verification_service = verification_service
        self.default_permissions = list(default_permissions or ["user"])
        self.send_verification_on_signup = send_verification_on_signup
        self.password_min_length = password_min_length
        self.password_max_length = password_max_length

    async def signup(self, db: AsyncSession, payload: Dict[str, Any]) -> SignupResult:
        """
        Register a new account.

        Input is validated before storage is touched and every violation is
        reported at once. A failure anywhere in the verification step after the
        account was created does not undo the account; it is reported
        through verification_status instead.

        Raises:
            RequestValidationFailed: Invalid input, with all messages
            HashingError: Password could not be hashed
            DuplicateEmailError: Email already registered
            StorageError: The user could not be written
        """
        request = parse_signup(
            payload,
            password_min_length=self.password_min_length,
            password_max_length=self.password_max_length,
        )

        hashed_password = await self.password_hasher.hash(request.password)
        user = await self.credential_store.create_user(
            db,
            email=request.email,
            hashed_password=hashed_password,
            username=request.username,
            permissions=self.default_permissions,
        )

        if not self.send_verification_on_signup:
            return SignupResult(user=user, verification_status=VerificationDispatch.SKIPPED)

        user_id = user.id
        try:
            await self.verification_service.initiate(db, user)
        except (HashingError, StorageError, MailDispatchError) as e:
            logger.warning(
                "Signup verification step failed",
                user_id=user_id,
                error_code=e.code,
            )
            if isinstance(e, StorageError):
                # The rollback expired the committed user; load it again
                user = await self.credential_store.get_by_id(db, user_id)
            return SignupResult(user=user, verification_status=VerificationDispatch.FAILED)

        return SignupResult(user=user, verification_status=VerificationDispatch.SENT)

    async def signin(self, db: AsyncSession, payload: Dict[str, Any]) -> SigninResult:
        """
        Check credentials and mint a session token.

        Unknown email and wrong password fail identically, including the time
        spent on a bcrypt verify.

        Raises:
            RequestValidationFailed: Malformed input (generic message)
            AuthenticationFailedError: Unknown email or wrong password
        """
        request = parse_signin(payload)

        try:
            user = await self.credential_store.get_by_email(db, request.email)
        except UserNotFoundError:
            await self.password_hasher.dummy_verify(request.password)
            logger.info("Signin failed", reason="unknown_email", email="***MASKED***")
            raise AuthenticationFailedError("unknown email")

        if not await self.password_hasher.verify(request.password, user.hashed_password):
            logger.info("Signin failed", reason="wrong_password", user_id=user.id)
            raise AuthenticationFailedError("wrong password")

        permissions = list(user.permissions or [])
        token = self.token_service.issue(user.id, permissions)

        logger.info("User signed in", user_id=user.id)
        return SigninResult(user_id=user.id, token=token, permissions=permissions)

    async def signout(self, token: Optional[str] = None) -> Optional[int]:
        """
        End the caller's session.

        Tokens are stateless and cannot be revoked; the client discards its
        token. A presented token is checked only so the event can be logged
        against a user.
        """
        user_id = None
        if token:
            try:
                user_id = self.token_service.validate(token).user_id
            except TokenError as e:
                logger.debug("Signout with unusable token", error_code=e.code)

        logger.info("User signed out", user_id=user_id)
        return user_id

    async def send_verification_email(self, db: AsyncSession, user_id: int) -> None:
        """
        Issue a fresh verification link for user_id.

        Raises:
            UserNotFoundError, AlreadyVerifiedError, HashingError,
            StorageError, MailDispatchError
        """
        user = await self.credential_store.get_by_id(db, user_id)
        await self.verification_service.initiate(db, user)

    async def verify_email(self, db: AsyncSession, user_id: int, unique_string: str) -> User:
        return await self.verification_service.verify(db, user_id, unique_string)

    def authenticate_token(self, token: str) -> TokenClaims:
        """Validate a bearer token for downstream handlers. Raises TokenError."""
        return self.token_service.validate(token)
