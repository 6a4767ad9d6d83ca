import asyncio
import secrets
import uuid
from typing import Optional

from passlib.context import CryptContext
import structlog

from .exceptions import HashingError

logger = structlog.get_logger()

DEFAULT_BCRYPT_ROUNDS = 10


class PasswordHasher:
    """
    Salted one-way hashing for passwords and one-time verification strings.

    bcrypt is CPU bound, so both operations run in a worker thread and the
    calling request is suspended instead of blocking the event loop.
    passlib's bcrypt handler compares digests in constant time.
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )
        self._dummy_hash: Optional[str] = None

    def hash_sync(self, plaintext: str) -> str:
        try:
            return self._context.hash(plaintext)
        except Exception as e:
            logger.error("Hashing failed", error_type=type(e).__name__)
            raise HashingError(f"bcrypt hashing failed: {type(e).__name__}") from e

    def verify_sync(self, plaintext: str, hashed: str) -> bool:
        try:
            return self._context.verify(plaintext, hashed)
        except (ValueError, TypeError):
            # Unknown or malformed hash: treat as a mismatch
            return False

    async def hash(self, plaintext: str) -> str:
        """Hash plaintext with a fresh salt. Raises HashingError."""
        return await asyncio.to_thread(self.hash_sync, plaintext)

    async def verify(self, plaintext: str, hashed: str) -> bool:
        """Return True if plaintext matches hashed. Never raises for bad hashes."""
        return await asyncio.to_thread(self.verify_sync, plaintext, hashed)

    async def dummy_verify(self, plaintext: str) -> bool:
        """
        Burn one verify against a throwaway hash.

        Used when there is no stored hash to check (unknown email) so the
        caller spends the same time as for a wrong password.
        """
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash(secrets.token_urlsafe(16))
        await self.verify(plaintext, self._dummy_hash)
        return False


def generate_unique_string(user_id: int) -> str:
    """One-time verification string: a random UUID followed by the user id."""
    return f"{uuid.uuid4()}{user_id}"
