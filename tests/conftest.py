"""
Pytest configuration and fixtures for authflow testing.
Provides settings, an on-disk SQLite database per test, service fixtures and
an application client with a recording mail backend.
"""
from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from authflow.container.container import Container
from authflow.core.config import Settings
from authflow.core.database import Database
from authflow.core.security import PasswordHasher
from authflow.main import create_app
from authflow.repositories.credential_repository import CredentialRepository
from authflow.services.auth.email_verification_service import EmailVerificationService
from authflow.services.auth.token_service import TokenService
from authflow.services.auth_service import AuthService

from tests.factories.mail_factory import RecordingMailSender

TEST_SECRET_KEY = "test-signing-key-for-authflow-suite-q7w8e9r0t6y5u4i3"
TEST_BASE_URL = "http://testserver"


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Test settings: development posture, console mail, cheap bcrypt."""
    return Settings(
        _env_file=None,
        SECRET_KEY=TEST_SECRET_KEY,
        ENVIRONMENT="development",
        DEBUG=False,
        BCRYPT_ROUNDS=4,
        MAIL_BACKEND="console",
        BASE_URL=TEST_BASE_URL,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'authflow-test.db'}",
    )


@pytest_asyncio.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    """Connected database with tables created."""
    db = Database.from_settings(settings)
    await db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with database.session() as session:
        yield session


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret_key=TEST_SECRET_KEY)


@pytest.fixture
def repository() -> CredentialRepository:
    return CredentialRepository()


@pytest.fixture
def mail_sender() -> RecordingMailSender:
    return RecordingMailSender()


@pytest.fixture
def verification_service(repository, hasher, mail_sender) -> EmailVerificationService:
    return EmailVerificationService(
        credential_store=repository,
        password_hasher=hasher,
        mail_sender=mail_sender,
        base_url=TEST_BASE_URL,
        ttl=timedelta(hours=6),
    )


@pytest.fixture
def auth_service(repository, hasher, token_service, verification_service) -> AuthService:
    return AuthService(
        credential_store=repository,
        password_hasher=hasher,
        token_service=token_service,
        verification_service=verification_service,
        default_permissions=["user"],
    )


@pytest.fixture
def app_mail_sender() -> RecordingMailSender:
    return RecordingMailSender()


@pytest.fixture
def client(settings, app_mail_sender):
    """Create FastAPI test client. The lifespan opens and disposes the database."""
    container = Container(settings, mail_sender=app_mail_sender)
    app = create_app(settings=settings, container=container)

    with TestClient(app) as test_client:
        yield test_client
