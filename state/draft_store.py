# File: state/draft_store.py
from typing import Dict, Optional
import json
import logging
import os
import threading
import time

from pydantic import ValidationError

from api.models.entry_models import AuthorList, MoleculeData
from state.entry_form_store import EntryFormStore
from state.state_schema import EntryDraft

logger = logging.getLogger(__name__)

DRAFT_KEY = "nobs_entry_draft"


class LocalStorage:
    """
    String key/value store persisted as one JSON file, the desktop stand-in
    for the browser's localStorage.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or os.getenv("NOBS_LOCAL_STORAGE", os.path.join(os.path.expanduser("~"), ".nobs", "local_storage.json"))
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class DraftStore:
    """
    Persists the serializable part of the form (id, title, description,
    authors, molecule). Spectral payloads are never stored.
    """

    def __init__(self, store: EntryFormStore, storage: LocalStorage):
        self.store = store
        self.storage = storage

    def save_draft(self) -> None:
        draft: EntryDraft = {
            "entryId": self.store.entry_id,
            "title": self.store.title,
            "description": self.store.description,
            "authors": [a.to_wire() for a in self.store.authors],
            "molecule": self.store.molecule.to_wire() if self.store.molecule else None,
            "savedAt": int(time.time() * 1000),
        }
        try:
            self.storage.set_item(DRAFT_KEY, json.dumps(draft))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to save draft: {e}")

    def load_draft(self) -> Optional[EntryDraft]:
        try:
            stored = self.storage.get_item(DRAFT_KEY)
            if not stored:
                return None
            draft = json.loads(stored)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load draft: {e}")
            return None
        if not isinstance(draft, dict):
            logger.error(f"Failed to load draft: expected an object, got {type(draft).__name__}")
            return None
        return draft

    def clear_draft(self) -> None:
        try:
            self.storage.remove_item(DRAFT_KEY)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to clear draft: {e}")

    def has_draft(self) -> bool:
        try:
            return self.storage.get_item(DRAFT_KEY) is not None
        except (OSError, ValueError):
            return False

    def restore_draft(self) -> bool:
        draft = self.load_draft()
        if not draft:
            return False

        try:
            authors = AuthorList.validate_python(draft.get("authors") or [])
            molecule = MoleculeData.model_validate(draft["molecule"]) if draft.get("molecule") else None
        except ValidationError as e:
            logger.error(f"Failed to restore draft: {e}")
            return False

        self.store.set_field("entry_id", draft.get("entryId") or "")
        self.store.set_field("title", draft.get("title"))
        self.store.set_field("description", draft.get("description"))
        self.store.set_field("authors", authors)
        self.store.set_field("molecule", molecule)
        return True
