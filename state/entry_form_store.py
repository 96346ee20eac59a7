# File: state/entry_form_store.py
"""
In-progress entry held as independent observable fields.

Validity flags are pure functions of the fields, evaluated on every read,
so they can never go stale and nothing has to invalidate them.
"""
from typing import Callable, List, Optional
import logging
import threading
import uuid

from api.models.entry_models import Affiliation, Author, MoleculeData
from state.state_schema import MassSpecDataBundle, NmrDataBundle, UserProfile
from utils.lexical import has_lexical_content
from utils.sanitization import split_display_name

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]

FIELDS = (
    "entry_id", "title", "description", "authors", "molecule",
    "nmr_data", "mass_spec_data", "is_dirty", "is_submitting", "has_attempted_submit",
)


# ---- Derivations ----

def compute_has_smiles(molecule: Optional[MoleculeData]) -> bool:
    return molecule is not None and molecule.smiles is not None and molecule.smiles.strip() != ""


def compute_has_mass_spec_errors(bundle: Optional[MassSpecDataBundle]) -> bool:
    files = bundle.files if bundle else []
    return any(not f.is_valid for f in files)


def compute_has_nmr_data(bundle: Optional[NmrDataBundle]) -> bool:
    return bundle is not None and bundle.archive_blob is not None


def compute_has_any_mass_spec_file(bundle: Optional[MassSpecDataBundle]) -> bool:
    return bool(bundle and bundle.files)


def compute_is_valid(
    entry_id: str,
    has_title: bool,
    author_count: int,
    has_smiles: bool,
    has_mass_spec_errors: bool,
    has_spectral_file: bool,
) -> bool:
    return (
        entry_id != ""
        and has_title
        and author_count > 0
        and has_smiles
        and not has_mass_spec_errors
        and has_spectral_file
    )


def author_from_user(profile: UserProfile) -> Author:
    first_name, last_name = split_display_name(profile.get("name") or "")
    institution = profile.get("institution")
    return Author(
        id=str(uuid.uuid4()),
        first_name=first_name,
        last_name=last_name,
        affiliations=[Affiliation(id=str(uuid.uuid4()), name=institution)] if institution else [],
        orcid=profile.get("orcid"),
        is_current_user=True,
        order=0,
    )


class EntryFormStore:
    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()
        self.entry_id: str = ""
        self.title: Optional[str] = None
        self.description: Optional[str] = None
        self.authors: List[Author] = []
        self.molecule: Optional[MoleculeData] = None
        self.nmr_data: Optional[NmrDataBundle] = None
        self.mass_spec_data: Optional[MassSpecDataBundle] = None
        self.is_dirty: bool = False
        self.is_submitting: bool = False
        self.has_attempted_submit: bool = False

    # ---- Observation ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a callback invoked with each changed field name. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def set_field(self, name: str, value) -> None:
        if name not in FIELDS:
            raise AttributeError(f"Unknown form field: {name}")
        with self._lock:
            setattr(self, name, value)
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(name)
            except Exception:
                logger.exception(f"Form listener failed for field {name}")

    # ---- Derived ----

    @property
    def has_title(self) -> bool:
        return has_lexical_content(self.title)

    @property
    def has_smiles(self) -> bool:
        return compute_has_smiles(self.molecule)

    @property
    def has_mass_spec_errors(self) -> bool:
        return compute_has_mass_spec_errors(self.mass_spec_data)

    @property
    def has_nmr_data(self) -> bool:
        return compute_has_nmr_data(self.nmr_data)

    @property
    def has_any_mass_spec_file(self) -> bool:
        return compute_has_any_mass_spec_file(self.mass_spec_data)

    @property
    def has_valid_mass_spec_data(self) -> bool:
        return self.has_any_mass_spec_file and not self.has_mass_spec_errors

    @property
    def has_at_least_one_spectral_file(self) -> bool:
        return self.has_nmr_data or self.has_any_mass_spec_file

    @property
    def author_count(self) -> int:
        return len(self.authors)

    @property
    def is_valid(self) -> bool:
        return compute_is_valid(
            self.entry_id,
            self.has_title,
            self.author_count,
            self.has_smiles,
            self.has_mass_spec_errors,
            self.has_at_least_one_spectral_file,
        )

    # ---- Actions ----

    def initialize_form(self, current_user: Optional[UserProfile] = None) -> None:
        """Fresh entry id; the signed-in user becomes the sole author."""
        # Cleared first so the resets below do not count as edits
        self.set_field("is_dirty", False)
        self.set_field("entry_id", str(uuid.uuid4()))
        self.set_field("title", None)
        self.set_field("description", None)
        self.set_field("molecule", None)
        self.set_field("nmr_data", None)
        self.set_field("mass_spec_data", None)
        self.set_field("is_submitting", False)
        self.set_field("has_attempted_submit", False)
        self.set_field("authors", [author_from_user(current_user)] if current_user else [])

    def reset_form(self) -> None:
        self.set_field("is_dirty", False)
        self.set_field("entry_id", "")
        self.set_field("title", None)
        self.set_field("description", None)
        self.set_field("authors", [])
        self.set_field("molecule", None)
        self.set_field("nmr_data", None)
        self.set_field("mass_spec_data", None)
        self.set_field("is_submitting", False)
        self.set_field("has_attempted_submit", False)

    def mark_dirty(self) -> None:
        self.set_field("is_dirty", True)

    def set_title(self, value: Optional[str]) -> None:
        self.set_field("title", value)
        self.mark_dirty()

    def set_description(self, value: Optional[str]) -> None:
        self.set_field("description", value)
        self.mark_dirty()

    def set_molecule(self, value: Optional[MoleculeData]) -> None:
        self.set_field("molecule", value)
        self.mark_dirty()

    def set_nmr_data(self, value: Optional[NmrDataBundle]) -> None:
        self.set_field("nmr_data", value)
        self.mark_dirty()

    def set_mass_spec_data(self, value: Optional[MassSpecDataBundle]) -> None:
        self.set_field("mass_spec_data", value)
        self.mark_dirty()
