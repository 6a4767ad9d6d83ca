"""
Dependency injection container.
Builds every component from Settings once per process and owns their
lifecycle (startup connect, shutdown dispose).
"""
from datetime import timedelta
from typing import Any, Dict, Optional, Type, TypeVar

import structlog

from ..core.config import Settings
from ..core.database import Database
from ..core.security import PasswordHasher
from ..interfaces.mail_interface import IMailSender
from ..interfaces.repository_interface import ICredentialStore
from ..repositories.credential_repository import CredentialRepository
from ..services.auth.email_verification_service import EmailVerificationService
from ..services.auth.token_service import TokenService
from ..services.auth_service import AuthService
from ..services.mail_service import build_mail_sender

logger = structlog.get_logger()

T = TypeVar('T')


class Container:
    """Dependency injection container."""

    def __init__(
        self,
        settings: Settings,
        mail_sender: Optional[IMailSender] = None,
        database: Optional[Database] = None,
    ):
        self.settings = settings
        self._instances: Dict[str, Any] = {}
        self._initialized = False

        self.database = database or Database.from_settings(settings)
        self.mail_sender = mail_sender or build_mail_sender(settings)
        self.password_hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
        self.credential_store = CredentialRepository()
        self.token_service = TokenService.from_settings(settings)
        self.verification_service = EmailVerificationService(
            credential_store=self.credential_store,
            password_hasher=self.password_hasher,
            mail_sender=self.mail_sender,
            base_url=settings.BASE_URL,
            ttl=timedelta(hours=settings.VERIFICATION_TTL_HOURS),
        )
        self.auth_service = AuthService(
            credential_store=self.credential_store,
            password_hasher=self.password_hasher,
            token_service=self.token_service,
            verification_service=self.verification_service,
            default_permissions=settings.DEFAULT_PERMISSIONS,
            send_verification_on_signup=settings.SEND_VERIFICATION_ON_SIGNUP,
            password_min_length=settings.PASSWORD_MIN_LENGTH,
            password_max_length=settings.PASSWORD_MAX_LENGTH,
        )

        for interface, instance in (
            (Database, self.database),
            (IMailSender, self.mail_sender),
            (PasswordHasher, self.password_hasher),
            (ICredentialStore, self.credential_store),
            (TokenService, self.token_service),
            (EmailVerificationService, self.verification_service),
            (AuthService, self.auth_service),
        ):
            self.register_instance(interface, instance)

    def register_instance(self, interface: Type[T], instance: T) -> None:
        """
        Register a specific instance for an interface.

        Args:
            interface: Interface type
            instance: Instance to register
        """
        key = interface.__name__
        self._instances[key] = instance
        logger.debug("Registered instance", interface=key, instance=type(instance).__name__)

    def get(self, interface: Type[T]) -> T:
        """
        Get service instance by interface type.

        Raises:
            ValueError: If service is not registered
        """
        key = interface.__name__
        if key not in self._instances:
            raise ValueError(f"Service not registered: {key}")
        return self._instances[key]

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Open the database and run startup checks. Idempotent."""
        if self._initialized:
            return

        await self.database.connect()
        if self.settings.CREATE_TABLES_ON_STARTUP:
            await self.database.create_all()

        # A broken mail transport should not stop signin from working
        if self.settings.MAIL_VERIFY_ON_STARTUP:
            await self.mail_sender.check_connection()

        self._initialized = True
        logger.info("Container initialized")

    async def cleanup(self) -> None:
        """Release resources held by the container."""
        await self.database.dispose()
        self._initialized = False
        logger.info("Container cleaned up")
