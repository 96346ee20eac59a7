# tests/test_submission_service.py
import json
from unittest.mock import MagicMock

import pytest

from api.models.entry_models import MoleculeData
from clients.nobs_api_client import ApiError
from services.submission_service import SECTION_IDS, SUCCESS_MESSAGE, build_payload, submit_entry
from state.autosave import AutoSave
from state.draft_store import DraftStore, LocalStorage
from state.entry_form_store import EntryFormStore
from state.state_schema import MassSpecDataBundle, MassSpecFile, NmrDataBundle
from utils.lexical import lexical_from_text

USER = {"orcid": "0000-0002-1825-0097", "name": "Josiah Carberry", "institution": "Brown University"}


@pytest.fixture
def store():
    s = EntryFormStore()
    s.initialize_form(USER)
    s.set_title(lexical_from_text("Caffeine"))
    s.set_molecule(MoleculeData(
        molfile_v3="M  END", id_code="RYYVLZVUVIJVGH-UHFFFAOYSA-N", smiles="Cn1cnc2c1c(=O)n(C)c(=O)n2C",
        molecular_formula="C8H10N4O2", molecular_weight=194.19, monoisotopic_mass=194.08,
    ))
    s.set_nmr_data(NmrDataBundle(archive_blob=b"PK", spectra_count=1, file_name="caffeine.nmrium.zip"))
    s.set_mass_spec_data(MassSpecDataBundle(files=[
        MassSpecFile(id="1", original_name="a.txt", content="ACCESSION: A\n//\n", is_valid=True),
    ]))
    return s


@pytest.fixture
def drafts(store, tmp_path):
    d = DraftStore(store, LocalStorage(str(tmp_path / "ls.json")))
    d.save_draft()
    return d


def test_build_payload(store):
    fields, files = build_payload(store)

    assert fields["entryId"] == store.entry_id
    assert json.loads(fields["title"]) == store.title
    assert json.loads(fields["description"]) is None
    assert json.loads(fields["authors"])[0]["firstName"] == "Josiah"
    assert json.loads(fields["molecule"])["molecularFormula"] == "C8H10N4O2"
    assert [name for name, _ in files] == ["nmrArchive", "massSpecFile_0"]
    assert files[1][1] == ("a.txt", b"ACCESSION: A\n//\n", "text/plain")


@pytest.mark.parametrize("breakage, section", [
    (lambda s: s.set_title(None), "metadata"),
    (lambda s: s.set_field("authors", []), "authors"),
    (lambda s: s.set_molecule(None), "molecule"),
    (lambda s: s.set_mass_spec_data(MassSpecDataBundle(files=[
        MassSpecFile(id="2", original_name="b.txt", content="", is_valid=False)])), "mass_spec"),
    (lambda s: (s.set_nmr_data(None), s.set_mass_spec_data(None)), "nmr"),
])
def test_invalid_form_focuses_first_failing_section(store, drafts, breakage, section):
    breakage(store)
    api = MagicMock()
    focused = []

    result = submit_entry(store, api, drafts, USER, focus_section=focused.append)

    assert result.success is False
    assert result.focus_section == SECTION_IDS[section]
    assert focused == [SECTION_IDS[section]]
    assert store.has_attempted_submit is True
    api.create_entry.assert_not_called()


def test_section_priority_order(store, drafts):
    store.set_title(None)
    store.set_molecule(None)
    result = submit_entry(store, MagicMock(), drafts)
    assert result.focus_section == SECTION_IDS["metadata"]


def test_success_resets_form_and_clears_draft(store, drafts):
    old_id = store.entry_id
    api = MagicMock()
    api.create_entry.return_value = {"entryId": old_id}

    result = submit_entry(store, api, drafts, USER)

    assert result.success is True
    assert result.message == SUCCESS_MESSAGE
    assert result.entry == {"entryId": old_id}
    assert not drafts.has_draft()
    assert store.entry_id and store.entry_id != old_id
    assert store.title is None
    assert [a.first_name for a in store.authors] == ["Josiah"]
    assert store.is_submitting is False
    assert store.has_attempted_submit is False


def test_success_leaves_no_draft_behind_with_autosave_running(store, drafts, fake_timers):
    autosave = AutoSave(store, drafts, timer_factory=fake_timers)
    store.set_description(lexical_from_text("Isolated from seeds"))
    assert autosave.pending

    api = MagicMock()
    api.create_entry.return_value = {}
    result = submit_entry(store, api, drafts, USER)

    for timer in fake_timers.created:
        timer.fire()

    assert result.success is True
    assert not autosave.pending
    assert not drafts.has_draft()
    assert store.is_dirty is False


def test_submitting_flag_is_set_during_request(store, drafts):
    api = MagicMock()
    seen = []
    api.create_entry.side_effect = lambda fields, files: seen.append(store.is_submitting) or {}

    submit_entry(store, api, drafts, USER)

    assert seen == [True]
    assert store.is_submitting is False


def test_failure_keeps_form_and_draft(store, drafts):
    entry_id, title = store.entry_id, store.title
    api = MagicMock()
    api.create_entry.side_effect = ApiError("Entry with this ID already exists", 409)

    result = submit_entry(store, api, drafts, USER)

    assert result.success is False
    assert result.error == "Entry with this ID already exists"
    assert store.entry_id == entry_id
    assert store.title == title
    assert store.has_nmr_data
    assert drafts.has_draft()
    assert store.is_submitting is False


def test_unexpected_exception_is_reported(store, drafts):
    api = MagicMock()
    api.create_entry.side_effect = RuntimeError("socket closed")

    result = submit_entry(store, api, drafts, USER)

    assert result.success is False
    assert result.error == "socket closed"
    assert store.is_submitting is False
