from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator
from database.db import Base
from datetime import datetime, timezone
from utils.crypto import encrypt_value, decrypt_value


def utcnow() -> datetime:
    # Naive UTC, matching what SQLite and Postgres "timestamp" columns hand back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime) -> str:
    return value.replace(tzinfo=timezone.utc).isoformat() if value else None


class EncryptedText(TypeDecorator):
    """Text column encrypted at rest with the application key."""
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return encrypt_value(value) if value else None

    def process_result_value(self, value, dialect):
        return decrypt_value(value) if value else None


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    orcid = Column(String(19), unique=True, index=True, nullable=False) # 0000-0002-1234-5678

    # Profile data from ORCID
    name = Column(String(255), nullable=True)
    email = Column(String(254), nullable=True)
    institution = Column(String(255), nullable=True)

    # ORCID tokens, never serialized
    access_token = Column(EncryptedText, nullable=True)
    refresh_token = Column(EncryptedText, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=True)

    # Relationships
    api_tokens = relationship("AccessToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    entries = relationship("Entry", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)

    def serialize(self) -> dict:
        return {
            "id": self.id,
            "orcid": self.orcid,
            "name": self.name,
            "email": self.email,
            "institution": self.institution,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }


class AccessToken(Base):
    __tablename__ = "access_tokens"

    id = Column(String, primary_key=True, index=True) # JWT jti
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    last_used_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="api_tokens")


# Registers Entry so the User.entries relationship resolves wherever User is imported
import database.models.entry_model  # noqa: E402,F401
