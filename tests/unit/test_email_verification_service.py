"""
Tests for the email verification workflow.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from authflow.core.exceptions import (
    AlreadyVerifiedError,
    HashingError,
    MailDispatchError,
    StorageError,
    VerificationExpiredError,
    VerificationInvalidError,
    VerificationNotFoundError,
)
from authflow.models.user import User
from authflow.models.verification import VerificationStatus
from authflow.services.auth.email_verification_service import (
    EmailVerificationService,
    build_verification_link,
    render_verification_email,
)

from tests.factories.mail_factory import FailingMailSender


@pytest_asyncio.fixture
async def user(repository, db_session):
    return await repository.create_user(
        db_session, email="verify@example.com", hashed_password="h", permissions=["user"]
    )


def unique_string_from(link: str) -> str:
    return link.rsplit("/", 1)[1]


class TestVerificationEmail:
    """Link format and email copy."""

    @pytest.mark.unit
    def test_link_format(self):
        link = build_verification_link("http://localhost:4000/", 5, "abc5")

        assert link == "http://localhost:4000/auth/verify/5/abc5"

    @pytest.mark.unit
    def test_email_states_expiry_window(self):
        body = render_verification_email("http://h/auth/verify/1/x1", timedelta(hours=6))

        assert "expires in 6 hours" in body
        assert 'href="http://h/auth/verify/1/x1"' in body


class TestEmailVerificationInitiate:
    """Test cases for EmailVerificationService.initiate."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_initiate_stores_hash_and_mails_plaintext(
        self, verification_service, mail_sender, hasher, user, db_session
    ):
        # Act
        record = await verification_service.initiate(db_session, user)

        # Assert
        assert record.user_id == user.id
        assert record.status == VerificationStatus.PENDING.value
        assert len(mail_sender.messages) == 1

        message = mail_sender.messages[0]
        assert message["to_address"] == "verify@example.com"
        assert message["subject"] == "verify your email"

        link = mail_sender.last_link()
        assert link.startswith(f"http://testserver/auth/verify/{user.id}/")
        unique_string = unique_string_from(link)
        assert unique_string.endswith(str(user.id))
        assert record.unique_string_hash != unique_string
        assert await hasher.verify(unique_string, record.unique_string_hash)

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_expiry_is_creation_plus_ttl(self, verification_service, user, db_session):
        now = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

        record = await verification_service.initiate(db_session, user, now=now)

        assert record.is_expired(now + timedelta(hours=5, minutes=59)) is False
        assert record.is_expired(now + timedelta(hours=6)) is True

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_already_verified_user_rejected(self, verification_service, mail_sender):
        verified = User(id=1, email="v@example.com", hashed_password="h", is_verified=True)

        with pytest.raises(AlreadyVerifiedError):
            await verification_service.initiate(AsyncMock(), verified)

        assert mail_sender.messages == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_mail_failure_keeps_record(self, repository, hasher, user, db_session):
        service = EmailVerificationService(
            credential_store=repository,
            password_hasher=hasher,
            mail_sender=FailingMailSender(),
            base_url="http://testserver",
        )

        with pytest.raises(MailDispatchError):
            await service.initiate(db_session, user)

        assert len(await repository.get_pending_verifications(db_session, user.id)) == 1

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_failures_are_distinguishable(self, mail_sender):
        """Hash and storage failures surface as their own error kinds, before any mail."""
        user = MagicMock(spec=User, id=1, email="u@example.com", is_verified=False)
        hasher = MagicMock()
        hasher.hash = AsyncMock(side_effect=HashingError("boom"))
        store = MagicMock()
        store.create_verification = AsyncMock(side_effect=StorageError("boom"))

        service = EmailVerificationService(store, hasher, mail_sender, "http://testserver")
        with pytest.raises(HashingError):
            await service.initiate(AsyncMock(), user)

        hasher.hash = AsyncMock(return_value="hashed")
        with pytest.raises(StorageError):
            await service.initiate(AsyncMock(), user)

        assert mail_sender.messages == []


class TestEmailVerificationConsume:
    """Test cases for EmailVerificationService.verify."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_verify_marks_user_verified_once(
        self, verification_service, mail_sender, user, db_session
    ):
        # Arrange
        await verification_service.initiate(db_session, user)
        unique_string = unique_string_from(mail_sender.last_link())

        # Act
        verified = await verification_service.verify(db_session, user.id, unique_string)

        # Assert
        assert verified.is_verified is True
        assert verified.email_verified_at is not None
        with pytest.raises(AlreadyVerifiedError):
            await verification_service.verify(db_session, user.id, unique_string)

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_older_link_still_valid_until_one_is_used(
        self, verification_service, mail_sender, repository, user, db_session
    ):
        await verification_service.initiate(db_session, user)
        first = unique_string_from(mail_sender.last_link())
        await verification_service.initiate(db_session, user)

        verified = await verification_service.verify(db_session, user.id, first)

        assert verified.is_verified is True
        assert await repository.get_pending_verifications(db_session, user.id) == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_wrong_string_rejected(self, verification_service, user, db_session):
        await verification_service.initiate(db_session, user)

        with pytest.raises(VerificationInvalidError):
            await verification_service.verify(db_session, user.id, f"not-the-string{user.id}")

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_no_pending_record(self, verification_service, user, db_session):
        with pytest.raises(VerificationNotFoundError):
            await verification_service.verify(db_session, user.id, "anything")

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unknown_user_looks_like_invalid_link(self, verification_service, db_session):
        with pytest.raises(VerificationInvalidError):
            await verification_service.verify(db_session, 999, "anything")

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_expired_link_rejected_and_marked(
        self, verification_service, mail_sender, repository, user, db_session
    ):
        # Arrange
        created = datetime.now(timezone.utc) - timedelta(hours=7)
        await verification_service.initiate(db_session, user, now=created)
        unique_string = unique_string_from(mail_sender.last_link())

        # Act / Assert
        with pytest.raises(VerificationExpiredError):
            await verification_service.verify(db_session, user.id, unique_string)

        assert await repository.get_pending_verifications(db_session, user.id) == []
        refreshed = await repository.get_by_id(db_session, user.id)
        assert refreshed.is_verified is False
