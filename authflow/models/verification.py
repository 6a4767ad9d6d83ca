"""
Pending email verification records.
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel, as_utc


class VerificationStatus(str, Enum):
    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    SUPERSEDED = "superseded"


class UserVerification(BaseModel):
    """
    One outstanding verification for a user.

    Only the bcrypt hash of the one-time string is stored; the plaintext goes
    out in the email and nowhere else.
    """

    __tablename__ = 'user_verification'

    user_id = Column(
        Integer,
        ForeignKey('user.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    unique_string_hash = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=VerificationStatus.PENDING.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="verifications")

    __table_args__ = (
        Index('idx_user_verification_user_status', 'user_id', 'status'),
    )

    def is_expired(self, now: datetime) -> bool:
        return as_utc(self.expires_at) <= now

    def __repr__(self) -> str:
        return f"<UserVerification(id={self.id}, user_id={self.user_id}, status={self.status})>"
