"""
User account model.
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """A registered account. Passwords are only ever stored as bcrypt hashes."""

    __tablename__ = 'user'

    email = Column(String(254), unique=True, nullable=False, index=True)
    username = Column(String(150), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    permissions = Column(JSON, nullable=False, default=list)

    is_verified = Column(Boolean, default=False, nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)

    verifications = relationship(
        "UserVerification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self, exclude=None):
        """Never expose the password hash, even when asked for every column."""
        exclude = set(exclude or ()) | {"hashed_password"}
        return super().to_dict(exclude=exclude)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, verified={self.is_verified})>"
