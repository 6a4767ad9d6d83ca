"""
Token service focused solely on session token operations.
Mints and validates the signed, self-contained tokens handed out at signin.
Tokens are stateless: there is no server-side store and no revocation.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
import structlog

from ...core.exceptions import TokenExpiredError, TokenMalformedError, TokenSignatureError

logger = structlog.get_logger()

DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)


@dataclass(frozen=True)
class TokenClaims:
    """Claims carried by a session token, as they were at mint time."""

    user_id: int
    permissions: List[str] = field(default_factory=list)
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class TokenService:
    """Service responsible for JWT session token operations."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expires_delta: timedelta = DEFAULT_TOKEN_LIFETIME,
    ):
        if not secret_key:
            raise ValueError("secret_key is required")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    @classmethod
    def from_settings(cls, settings) -> "TokenService":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            expires_delta=timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
        )

    def issue(
        self,
        user_id: int,
        permissions: List[str],
        issued_at: Optional[datetime] = None,
    ) -> str:
        """
        Mint a signed token for user_id.

        Args:
            user_id: Identity to embed
            permissions: Permission claims, copied as they are now
            issued_at: Override the mint time (defaults to now, UTC)

        Returns:
            Encoded JWT
        """
        issued_at = issued_at or datetime.now(timezone.utc)
        expires_at = issued_at + self.expires_delta

        claims = {
            "userInfo": {
                "userId": user_id,
                "permissions": list(permissions),
            },
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

        logger.debug("Session token issued", user_id=user_id, expires_at=expires_at.isoformat())
        return token

    def validate(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry and return the embedded claims.

        Raises:
            TokenMalformedError: Not a JWT, or required claims missing
            TokenExpiredError: Past its exp
            TokenSignatureError: Signed with another key or algorithm
        """
        try:
            jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError as e:
            raise TokenMalformedError("token could not be decoded") from e

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("token has expired") from e
        except JWTClaimsError as e:
            raise TokenMalformedError(f"invalid claims: {e}") from e
        except JWTError as e:
            raise TokenSignatureError("signature verification failed") from e

        return self._claims_from_payload(payload)

    @staticmethod
    def _claims_from_payload(payload: Dict[str, Any]) -> TokenClaims:
        user_info = payload.get("userInfo")
        if not isinstance(user_info, dict) or "userId" not in user_info:
            raise TokenMalformedError("token is missing userInfo.userId")

        permissions = user_info.get("permissions") or []
        if not isinstance(permissions, list):
            raise TokenMalformedError("permissions claim must be a list")

        try:
            user_id = int(user_info["userId"])
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as e:
            raise TokenMalformedError("token has invalid standard claims") from e

        return TokenClaims(
            user_id=user_id,
            permissions=permissions,
            issued_at=issued_at,
            expires_at=expires_at,
        )
