# File: database/models/entry_model.py
from sqlalchemy import Column, Integer, String, Text, JSON, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base
from database.models.auth_models import utcnow, isoformat
import enum


class EntryStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PUBLISHED = "published"


class Entry(Base):
    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Client-generated UUID
    entry_id = Column(String(36), unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)

    # Validated against api.models.entry_models before every write
    authors = Column(JSON, nullable=False, default=list)
    molecule = Column(JSON, nullable=True)

    nmr_archive_path = Column(String, nullable=True)
    massbank_files = Column(JSON, nullable=True) # [{"filename": ..., "path": ...}]

    status = Column(
        Enum(EntryStatus, values_callable=lambda x: [e.value for e in x]),
        default=EntryStatus.SUBMITTED,
        nullable=False
    )

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="entries")

    def serialize(self) -> dict:
        return {
            "id": self.id,
            "entryId": self.entry_id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "authors": self.authors or [],
            "molecule": self.molecule,
            "nmrArchivePath": self.nmr_archive_path,
            "massbankFiles": self.massbank_files or [],
            "status": self.status.value if hasattr(self.status, "value") else self.status,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
