"""
Tests for model helpers.
"""
from datetime import datetime, timedelta, timezone

import pytest

from authflow.models.user import User
from authflow.models.verification import UserVerification


class TestUser:

    @pytest.mark.unit
    def test_to_dict_never_includes_hash(self):
        user = User(id=1, email="a@x.com", hashed_password="$2b$10$secret", permissions=["user"])

        data = user.to_dict()

        assert data["email"] == "a@x.com"
        assert "hashed_password" not in data
        assert "email" not in user.to_dict(exclude={"email"})

    @pytest.mark.unit
    def test_repr_has_no_email(self):
        assert "a@x.com" not in repr(User(id=1, email="a@x.com", is_verified=False))


class TestUserVerification:

    @pytest.mark.unit
    def test_naive_expiry_is_read_as_utc(self):
        """SQLite returns naive datetimes."""
        now = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
        record = UserVerification(expires_at=datetime(2030, 1, 1, 13, 0))

        assert record.is_expired(now) is False
        assert record.is_expired(now + timedelta(hours=1)) is True

    @pytest.mark.unit
    def test_aware_expiry(self):
        now = datetime.now(timezone.utc)
        record = UserVerification(expires_at=now - timedelta(seconds=1))

        assert record.is_expired(now) is True
