# File: services/entry_service.py
from dataclasses import dataclass
from typing import BinaryIO, List, Optional
import json
import logging
import os
import uuid

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.models.entry_models import AuthorList, MoleculeData, MassbankFileRef
from database.models.auth_models import User
from database.models.entry_model import Entry, EntryStatus
from services.file_storage_service import FileStorageService

logger = logging.getLogger(__name__)

MB = 1024 * 1024
NMR_MAX_SIZE = 100 * MB
NMR_EXTENSIONS = (".zip",)
MASSBANK_MAX_SIZE = 10 * MB
MASSBANK_EXTENSIONS = (".txt",)


class EntryValidationError(ValueError):
    pass


class UploadValidationError(ValueError):
    pass


class EntryConflictError(Exception):
    pass


class EntryNotFoundError(Exception):
    pass


@dataclass
class IncomingFile:
    filename: str
    stream: BinaryIO
    size: int


@dataclass
class EntryPayload:
    entry_id: str
    title: str
    description: Optional[str]
    authors: list
    molecule: Optional[dict]


def _decode_json(raw: Optional[str], field: str):
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        raise EntryValidationError(f"The {field} field must be valid JSON")


def parse_entry_form(
    entry_id: Optional[str],
    title: Optional[str],
    description: Optional[str],
    authors: Optional[str],
    molecule: Optional[str],
) -> EntryPayload:
    """
    Validates the multipart text fields. Authors and molecule are parsed through the
    same schema that serializes them, so stored rows always deserialize.
    """
    # Only the 36-char hyphenated form; the id doubles as the storage path
    try:
        canonical = str(uuid.UUID(str(entry_id)))
    except (TypeError, ValueError):
        canonical = None
    if canonical is None or canonical != str(entry_id).lower():
        raise EntryValidationError("The entryId field must be a valid UUID")

    if not title:
        raise EntryValidationError("The title field is required")

    if not authors:
        raise EntryValidationError("The authors field is required")

    author_data = _decode_json(authors, "authors")
    try:
        author_models = AuthorList.validate_python(author_data)
    except ValidationError:
        raise EntryValidationError("The authors field must be a list of authors")
    if not author_models:
        raise EntryValidationError("At least one author is required")

    molecule_data = _decode_json(molecule, "molecule")
    molecule_wire = None
    if molecule_data is not None:
        try:
            molecule_wire = MoleculeData.model_validate(molecule_data).to_wire()
        except ValidationError:
            raise EntryValidationError("The molecule field is malformed")

    return EntryPayload(
        entry_id=str(entry_id),
        title=title,
        description=description or None,
        authors=[a.to_wire() for a in author_models],
        molecule=molecule_wire,
    )


def _check_upload(upload: IncomingFile, label: str, extensions, max_size: int) -> None:
    name = (upload.filename or "").lower()
    if not name.endswith(extensions):
        allowed = ", ".join(ext.lstrip(".") for ext in extensions)
        raise UploadValidationError(f"Invalid {label} file: Invalid file extension {os.path.splitext(name)[1].lstrip('.') or '(none)'}. Only {allowed} is allowed")
    if upload.size > max_size:
        raise UploadValidationError(f"Invalid {label} file: File size should be less than {max_size // MB}MB")


def entry_exists(db: Session, entry_id: str) -> bool:
    return db.query(Entry.id).filter(Entry.entry_id == entry_id).first() is not None


def create_entry(
    db: Session,
    storage: FileStorageService,
    user: User,
    payload: EntryPayload,
    nmr_archive: Optional[IncomingFile] = None,
    massbank_files: Optional[List[IncomingFile]] = None,
) -> Entry:
    massbank_files = massbank_files or []

    if entry_exists(db, payload.entry_id):
        raise EntryConflictError("Entry with this ID already exists")

    # Every upload is checked before anything touches the disk or the database
    if nmr_archive is not None:
        _check_upload(nmr_archive, "NMR", NMR_EXTENSIONS, NMR_MAX_SIZE)
    for upload in massbank_files:
        _check_upload(upload, "MassBank", MASSBANK_EXTENSIONS, MASSBANK_MAX_SIZE)

    nmr_archive_path = None
    if nmr_archive is not None:
        nmr_archive_path = storage.save_nmr_archive(nmr_archive.stream, nmr_archive.filename, payload.entry_id)

    massbank_refs = []
    for upload in massbank_files:
        path = storage.save_massbank_file(upload.stream, upload.filename, payload.entry_id)
        massbank_refs.append(MassbankFileRef(filename=upload.filename, path=path).model_dump())

    # Files already moved are left in place if this insert fails
    entry = Entry(
        entry_id=payload.entry_id,
        user_id=user.id,
        title=payload.title,
        description=payload.description,
        authors=payload.authors,
        molecule=payload.molecule,
        nmr_archive_path=nmr_archive_path,
        massbank_files=massbank_refs or None,
        status=EntryStatus.SUBMITTED,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Duplicate entry id on insert: {payload.entry_id}")
        raise EntryConflictError("Entry with this ID already exists")
    db.refresh(entry)

    logger.info(f"✅ Entry created: {entry.entry_id}")
    return entry


def list_entries(db: Session, user: User) -> List[Entry]:
    return (
        db.query(Entry)
        .filter(Entry.user_id == user.id)
        .order_by(Entry.created_at.desc(), Entry.id.desc())
        .all()
    )


def get_entry(db: Session, user: User, entry_id: str) -> Entry:
    # Someone else's entry looks exactly like a missing one
    entry = (
        db.query(Entry)
        .filter(Entry.entry_id == entry_id)
        .filter(Entry.user_id == user.id)
        .first()
    )
    if entry is None:
        raise EntryNotFoundError("Entry not found")
    return entry


def delete_entry(db: Session, storage: FileStorageService, user: User, entry_id: str) -> None:
    entry = get_entry(db, user, entry_id)

    try:
        storage.delete_entry_files(entry.entry_id)
    except OSError as e:
        logger.warning(f"Could not fully remove files for entry {entry.entry_id}: {e}")

    db.delete(entry)
    db.commit()
    logger.info(f"✅ Entry deleted: {entry_id}")
