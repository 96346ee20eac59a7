# api/routers/entries.py
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile
from api.dependencies.auth import get_current_user, get_db
from database.models.auth_models import User
from services.file_storage_service import FileStorageService, FileStorageError, get_file_storage
from services.entry_service import (
    IncomingFile,
    parse_entry_form,
    create_entry,
    list_entries,
    get_entry,
    delete_entry,
    EntryValidationError,
    UploadValidationError,
    EntryConflictError,
    EntryNotFoundError,
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def _as_incoming(upload: UploadFile) -> IncomingFile:
    return IncomingFile(filename=upload.filename or "", stream=upload.file, size=_upload_size(upload))


def _text_field(form, name: str):
    value = form.get(name)
    return value if isinstance(value, str) else None


@router.get("/api/entries")
def index(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    entries = list_entries(db, current_user)
    return {"entries": [e.serialize() for e in entries]}


@router.post("/api/entries", status_code=status.HTTP_201_CREATED)
async def store(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    """
    Multipart create: entryId, title, description, authors, molecule,
    optional nmrArchive and massSpecFile_0..N (stops at the first missing index).
    """
    form = await request.form()

    try:
        payload = parse_entry_form(
            entry_id=_text_field(form, "entryId"),
            title=_text_field(form, "title"),
            description=_text_field(form, "description"),
            authors=_text_field(form, "authors"),
            molecule=_text_field(form, "molecule"),
        )
    except EntryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    nmr_archive = None
    nmr_upload = form.get("nmrArchive")
    if isinstance(nmr_upload, UploadFile):
        nmr_archive = _as_incoming(nmr_upload)

    massbank_files = []
    index = 0
    while True:
        upload = form.get(f"massSpecFile_{index}")
        if not isinstance(upload, UploadFile):
            break
        massbank_files.append(_as_incoming(upload))
        index += 1

    try:
        entry = create_entry(db, storage, current_user, payload, nmr_archive, massbank_files)
    except EntryConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileStorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        await form.close()

    return {"entry": entry.serialize()}


@router.get("/api/entries/{entry_id}")
def show(entry_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        entry = get_entry(db, current_user, entry_id)
    except EntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"entry": entry.serialize()}


@router.delete("/api/entries/{entry_id}")
def destroy(
    entry_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
):
    try:
        delete_entry(db, storage, current_user, entry_id)
    except EntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "Entry deleted"}
