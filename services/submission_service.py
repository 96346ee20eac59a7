# services/submission_service.py
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
import json
import logging

from clients.nobs_api_client import ApiError, NobsApiClient
from state.draft_store import DraftStore
from state.entry_form_store import EntryFormStore
from state.state_schema import UserProfile

logger = logging.getLogger(__name__)

SECTION_IDS = {
    "metadata": "entry-metadata-section",
    "authors": "entry-authors-section",
    "molecule": "entry-molecule-section",
    "nmr": "entry-nmr-section",
    "mass_spec": "entry-massspec-section",
}

SUCCESS_MESSAGE = "Entry submitted successfully! The form has been reset for a new entry."


@dataclass
class SubmissionResult:
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    focus_section: Optional[str] = None
    entry: Optional[Dict] = None


def first_invalid_section(store: EntryFormStore) -> Optional[str]:
    """Section to bring into view, checked in fixed priority order."""
    if not store.has_title:
        return SECTION_IDS["metadata"]
    if not store.authors:
        return SECTION_IDS["authors"]
    if not store.has_smiles:
        return SECTION_IDS["molecule"]
    if store.has_mass_spec_errors:
        return SECTION_IDS["mass_spec"]
    if not store.has_at_least_one_spectral_file:
        return SECTION_IDS["nmr"]
    return None


def build_payload(store: EntryFormStore) -> Tuple[Dict[str, str], List[Tuple[str, Tuple[str, bytes, str]]]]:
    fields = {
        "entryId": store.entry_id,
        "title": json.dumps(store.title),
        "description": json.dumps(store.description),
        "authors": json.dumps([a.to_wire() for a in store.authors]),
        "molecule": json.dumps(store.molecule.to_wire() if store.molecule else None),
    }

    files = []
    if store.nmr_data and store.nmr_data.archive_blob is not None:
        files.append(("nmrArchive", (store.nmr_data.file_name, store.nmr_data.archive_blob, "application/zip")))

    if store.mass_spec_data:
        for index, f in enumerate(store.mass_spec_data.files):
            files.append((f"massSpecFile_{index}", (f.original_name, f.content.encode("utf-8"), "text/plain")))

    return fields, files


def submit_entry(
    store: EntryFormStore,
    api: NobsApiClient,
    drafts: DraftStore,
    current_user: Optional[UserProfile] = None,
    focus_section: Optional[Callable[[str], None]] = None,
) -> SubmissionResult:
    """
    Validates, posts the multipart entry and resets the form on success.
    On failure the form is left as-is so the user can retry.
    """
    store.set_field("has_attempted_submit", True)

    if not store.is_valid:
        section = first_invalid_section(store)
        if section and focus_section:
            focus_section(section)
        return SubmissionResult(success=False, focus_section=section)

    store.set_field("is_submitting", True)
    try:
        fields, files = build_payload(store)
        entry = api.create_entry(fields, files)

        drafts.clear_draft()
        store.initialize_form(current_user)
        logger.info(f"✅ Entry submitted: {fields['entryId']}")
        return SubmissionResult(success=True, message=SUCCESS_MESSAGE, entry=entry)

    except ApiError as e:
        logger.warning(f"Entry submission failed: {e.message}")
        return SubmissionResult(success=False, error=e.message or "Failed to submit entry")

    except Exception as e:
        logger.error("Unexpected error during entry submission", exc_info=True)
        return SubmissionResult(success=False, error=str(e) or "An unexpected error occurred")

    finally:
        store.set_field("is_submitting", False)


def save_draft_now(drafts: DraftStore) -> None:
    """Explicit 'Save Draft' action."""
    drafts.save_draft()
