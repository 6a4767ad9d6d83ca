"""
Tests for session token minting and validation.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from authflow.core.exceptions import (
    TokenExpiredError,
    TokenMalformedError,
    TokenSignatureError,
)
from authflow.services.auth.token_service import TokenService

from tests.conftest import TEST_SECRET_KEY


class TestTokenService:
    """Test cases for TokenService."""

    @pytest.mark.unit
    def test_issue_then_validate_returns_embedded_claims(self, token_service):
        # Arrange
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)

        # Act
        token = token_service.issue(17, ["user", "editor"], issued_at=issued_at)
        claims = token_service.validate(token)

        # Assert
        assert claims.user_id == 17
        assert claims.permissions == ["user", "editor"]
        assert claims.issued_at == issued_at
        assert claims.expires_at == issued_at + timedelta(hours=24)

    @pytest.mark.unit
    def test_claim_layout(self, token_service):
        token = token_service.issue(3, ["user"])

        payload = jwt.decode(token, TEST_SECRET_KEY, algorithms=["HS256"])

        assert payload["userInfo"] == {"userId": 3, "permissions": ["user"]}
        assert payload["exp"] - payload["iat"] == 24 * 3600

    @pytest.mark.unit
    def test_expired_token_rejected(self, token_service):
        issued_at = datetime.now(timezone.utc) - timedelta(hours=25)
        token = token_service.issue(1, ["user"], issued_at=issued_at)

        with pytest.raises(TokenExpiredError):
            token_service.validate(token)

    @pytest.mark.unit
    def test_custom_lifetime(self):
        service = TokenService(secret_key=TEST_SECRET_KEY, expires_delta=timedelta(minutes=5))
        issued_at = datetime.now(timezone.utc) - timedelta(minutes=6)

        token = service.issue(1, [], issued_at=issued_at)

        with pytest.raises(TokenExpiredError):
            service.validate(token)

    @pytest.mark.unit
    def test_wrong_key_rejected(self, token_service):
        other = TokenService(secret_key="another-signing-key-that-is-long-enough-xyz")
        token = other.issue(1, ["user"])

        with pytest.raises(TokenSignatureError):
            token_service.validate(token)

    @pytest.mark.unit
    def test_tampered_payload_rejected(self, token_service):
        header, _, signature = token_service.issue(1, ["user"]).split(".")
        forged_payload = token_service.issue(2, ["admin"]).split(".")[1]

        with pytest.raises(TokenSignatureError):
            token_service.validate(f"{header}.{forged_payload}.{signature}")

    @pytest.mark.unit
    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "a.b"])
    def test_garbage_is_malformed(self, token_service, garbage):
        with pytest.raises(TokenMalformedError):
            token_service.validate(garbage)

    @pytest.mark.unit
    def test_missing_user_info_is_malformed(self, token_service):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "1", "iat": int(now.timestamp()), "exp": int((now + timedelta(hours=1)).timestamp())},
            TEST_SECRET_KEY,
            algorithm="HS256",
        )

        with pytest.raises(TokenMalformedError):
            token_service.validate(token)

    @pytest.mark.unit
    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            TokenService(secret_key="")

    @pytest.mark.unit
    def test_from_settings(self, settings):
        service = TokenService.from_settings(settings)

        assert service.algorithm == "HS256"
        assert service.expires_delta == timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS)
