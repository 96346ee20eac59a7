# tests/test_entry_form_store.py
import itertools

import pytest

from api.models.entry_models import Author, MoleculeData
from state.entry_form_store import EntryFormStore, compute_is_valid
from state.state_schema import MassSpecDataBundle, MassSpecFile, NmrDataBundle
from utils.lexical import lexical_from_text

USER = {"orcid": "0000-0002-1825-0097", "name": "Ada King Lovelace", "email": None, "institution": "Analytical Engine Society"}


def _molecule(smiles="CCO"):
    return MoleculeData(
        molfile_v3="M  END",
        id_code="LFQSCWFLJHTTHZ-UHFFFAOYSA-N",
        smiles=smiles,
        molecular_formula="C2H6O",
        molecular_weight=46.07,
        monoisotopic_mass=46.04,
    )


def _ms_file(valid=True):
    return MassSpecFile(id="f", original_name="a.txt", content="", is_valid=valid)


def _valid_store():
    store = EntryFormStore()
    store.initialize_form(USER)
    store.set_title(lexical_from_text("Caffeine"))
    store.set_molecule(_molecule())
    store.set_nmr_data(NmrDataBundle(archive_blob=b"PK", spectra_count=1, file_name="a.nmrium.zip"))
    return store


def test_is_valid_truth_table():
    for entry_id, has_title, author_count, has_smiles, has_errors, has_file in itertools.product(
        ["", "id"], [False, True], [0, 2], [False, True], [False, True], [False, True]
    ):
        expected = bool(entry_id) and has_title and author_count > 0 and has_smiles and not has_errors and has_file
        assert compute_is_valid(entry_id, has_title, author_count, has_smiles, has_errors, has_file) is expected


def test_fully_populated_form_is_valid():
    store = _valid_store()
    assert store.is_valid


@pytest.mark.parametrize("title", [None, "", "not json", lexical_from_text("   ")])
def test_title_without_text_is_invalid(title):
    store = _valid_store()
    store.set_title(title)
    assert not store.has_title
    assert not store.is_valid


def test_blank_smiles_is_invalid():
    store = _valid_store()
    store.set_molecule(_molecule(smiles="  "))
    assert not store.has_smiles
    assert not store.is_valid


def test_mass_spec_alone_counts_as_spectral_data():
    store = _valid_store()
    store.set_nmr_data(None)
    assert not store.is_valid

    store.set_mass_spec_data(MassSpecDataBundle(files=[_ms_file()]))
    assert store.has_valid_mass_spec_data
    assert store.is_valid


def test_any_invalid_mass_spec_file_blocks_submission():
    store = _valid_store()
    store.set_mass_spec_data(MassSpecDataBundle(files=[_ms_file(), _ms_file(valid=False)]))
    assert store.has_mass_spec_errors
    assert not store.has_valid_mass_spec_data
    assert not store.is_valid


def test_derived_flags_follow_every_change():
    store = _valid_store()
    assert store.is_valid
    store.set_field("authors", [])
    assert not store.is_valid
    store.initialize_form(USER)
    assert not store.has_title


def test_initialize_form_makes_current_user_sole_author():
    store = EntryFormStore()
    store.initialize_form(USER)

    assert store.entry_id
    assert len(store.authors) == 1
    author = store.authors[0]
    assert (author.first_name, author.last_name) == ("Ada", "King Lovelace")
    assert author.orcid == USER["orcid"]
    assert author.is_current_user is True
    assert author.order == 0
    assert [a.name for a in author.affiliations] == ["Analytical Engine Society"]
    assert store.is_dirty is False


def test_initialize_form_generates_a_new_id_each_time():
    store = EntryFormStore()
    store.initialize_form(USER)
    first = store.entry_id
    store.initialize_form(USER)
    assert store.entry_id != first


def test_initialize_form_without_user_has_no_authors():
    store = EntryFormStore()
    store.initialize_form(None)
    assert store.authors == []


def test_reset_form_clears_everything():
    store = _valid_store()
    store.set_field("has_attempted_submit", True)
    store.reset_form()

    assert store.entry_id == ""
    assert store.title is None
    assert store.authors == []
    assert store.molecule is None
    assert store.nmr_data is None
    assert store.is_dirty is False
    assert store.has_attempted_submit is False


def test_setters_mark_dirty_and_notify():
    store = EntryFormStore()
    changed = []
    unsubscribe = store.subscribe(changed.append)

    store.set_description(lexical_from_text("Isolated from seeds"))
    assert store.is_dirty
    assert changed == ["description", "is_dirty"]

    unsubscribe()
    store.set_title(lexical_from_text("x"))
    assert changed == ["description", "is_dirty"]


def test_unknown_field_is_rejected():
    store = EntryFormStore()
    with pytest.raises(AttributeError):
        store.set_field("nope", 1)


def test_failing_listener_does_not_block_others():
    store = EntryFormStore()
    seen = []

    def broken(_):
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(seen.append)
    store.set_field("title", None)
    assert seen == ["title"]


def test_author_wire_format_is_camel_case():
    author = Author(id="1", first_name="Ada", last_name="Lovelace", order=0)
    wire = author.to_wire()
    assert wire["firstName"] == "Ada"
    assert wire["isCurrentUser"] is False
    assert Author.model_validate(wire) == author
