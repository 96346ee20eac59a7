# tests/test_entries_api.py
import json
import os
import uuid
from unittest.mock import patch

from database.models.entry_model import Entry
from utils.lexical import lexical_from_text

AUTHORS = [{
    "id": "a-1",
    "firstName": "Josiah",
    "lastName": "Carberry",
    "affiliations": [{"id": "aff-1", "name": "Brown University"}],
    "orcid": "0000-0002-1825-0097",
    "isCurrentUser": True,
    "order": 0,
}]

MOLECULE = {
    "molfileV3": "\n  RDKit          2D\n\n  0  0  0  0  0  0  0  0  0  0999 V3000\nM  END\n",
    "idCode": "LFQSCWFLJHTTHZ-UHFFFAOYSA-N",
    "smiles": "CCO",
    "molecularFormula": "C2H6O",
    "molecularWeight": 46.069,
    "monoisotopicMass": 46.041864812,
}


def _fields(entry_id=None, **overrides):
    fields = {
        "entryId": entry_id or str(uuid.uuid4()),
        "title": json.dumps(lexical_from_text("Caffeine from Coffea arabica")),
        "description": json.dumps(None),
        "authors": json.dumps(AUTHORS),
        "molecule": json.dumps(MOLECULE),
    }
    fields.update(overrides)
    return fields


def _files(nmr=True, massbank=2):
    files = []
    if nmr:
        files.append(("nmrArchive", ("caffeine.nmrium.zip", b"PK\x03\x04 fake zip", "application/zip")))
    for i in range(massbank):
        files.append((f"massSpecFile_{i}", (f"record_{i}.txt", b"ACCESSION: MSBNK-Test-TS000001\n//\n", "text/plain")))
    return files


def test_create_entry_moves_files_into_sharded_storage(client, make_user, storage, db):
    _, headers = make_user()
    entry_id = "AB" + str(uuid.uuid4())[2:]

    r = client.post("/api/entries", data=_fields(entry_id), files=_files(), headers=headers)

    assert r.status_code == 201, r.text
    entry = r.json()["entry"]
    assert entry["entryId"] == entry_id
    assert entry["status"] == "submitted"
    assert entry["authors"][0]["firstName"] == "Josiah"
    assert entry["molecule"]["smiles"] == "CCO"

    entry_dir = os.path.join(storage.data_dir, "ab", entry_id)
    assert entry["nmrArchivePath"] == os.path.join(entry_dir, "nmr", "caffeine.nmrium.zip")
    assert os.path.exists(entry["nmrArchivePath"])
    assert [f["filename"] for f in entry["massbankFiles"]] == ["record_0.txt", "record_1.txt"]
    for f in entry["massbankFiles"]:
        assert f["path"].startswith(os.path.join(entry_dir, "massbank"))
        assert os.path.exists(f["path"])


def test_massbank_indices_stop_at_first_gap(client, make_user):
    _, headers = make_user()
    files = [
        ("massSpecFile_0", ("a.txt", b"x", "text/plain")),
        ("massSpecFile_2", ("c.txt", b"x", "text/plain")),
    ]
    r = client.post("/api/entries", data=_fields(), files=files, headers=headers)
    assert r.status_code == 201
    assert [f["filename"] for f in r.json()["entry"]["massbankFiles"]] == ["a.txt"]


def test_duplicate_entry_id_conflicts_without_writes(client, make_user, storage, db):
    _, headers = make_user()
    entry_id = str(uuid.uuid4())
    first = client.post("/api/entries", data=_fields(entry_id), files=_files(massbank=1), headers=headers)
    assert first.status_code == 201

    nmr_dir = storage.get_type_dir(entry_id, "nmr")
    before = sorted(os.listdir(nmr_dir))

    files = [("nmrArchive", ("other.zip", b"PK other", "application/zip"))]
    second = client.post("/api/entries", data=_fields(entry_id), files=files, headers=headers)

    assert second.status_code == 409
    assert second.json() == {"error": "Entry with this ID already exists"}
    assert sorted(os.listdir(nmr_dir)) == before
    assert db.query(Entry).count() == 1


def test_invalid_upload_aborts_before_any_write(client, make_user, storage, db):
    _, headers = make_user()
    entry_id = str(uuid.uuid4())
    files = [
        ("nmrArchive", ("good.zip", b"PK", "application/zip")),
        ("massSpecFile_0", ("spectrum.csv", b"x", "text/csv")),
    ]

    r = client.post("/api/entries", data=_fields(entry_id), files=files, headers=headers)

    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid MassBank file")
    assert not os.path.exists(storage.get_entry_dir(entry_id))
    assert db.query(Entry).count() == 0


def test_oversized_nmr_archive_is_rejected(client, make_user):
    _, headers = make_user()
    with patch("services.entry_service.NMR_MAX_SIZE", 4):
        r = client.post(
            "/api/entries",
            data=_fields(),
            files=[("nmrArchive", ("big.zip", b"0123456789", "application/zip"))],
            headers=headers,
        )
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid NMR file")


def test_create_rejects_bad_form_fields(client, make_user):
    _, headers = make_user()

    r = client.post("/api/entries", data=_fields(entry_id="not-a-uuid"), files=_files(), headers=headers)
    assert r.status_code == 400

    r = client.post("/api/entries", data=_fields(authors="{broken"), files=_files(), headers=headers)
    assert r.status_code == 400

    r = client.post("/api/entries", data=_fields(title=""), files=_files(), headers=headers)
    assert r.status_code == 400


def test_create_rejects_non_canonical_entry_ids(client, make_user, storage, db):
    _, headers = make_user()
    raw = uuid.uuid4()

    for entry_id in (f"urn:uuid:{raw}", f"{{{raw}}}", raw.hex, f" {raw}"):
        r = client.post("/api/entries", data=_fields(entry_id), files=_files(), headers=headers)
        assert r.status_code == 400, entry_id
        assert r.json() == {"error": "The entryId field must be a valid UUID"}

    assert not os.path.exists(storage.data_dir) or os.listdir(storage.data_dir) == []
    assert db.query(Entry).count() == 0


def test_insert_race_on_same_id_maps_to_conflict(client, make_user, db):
    _, headers = make_user()
    entry_id = str(uuid.uuid4())
    assert client.post("/api/entries", data=_fields(entry_id), files=_files(massbank=0), headers=headers).status_code == 201

    # A second writer that got past the existence check hits the unique constraint
    with patch("services.entry_service.entry_exists", return_value=False):
        r = client.post("/api/entries", data=_fields(entry_id), files=_files(nmr=False, massbank=0), headers=headers)

    assert r.status_code == 409
    assert r.json() == {"error": "Entry with this ID already exists"}
    assert db.query(Entry).count() == 1
    assert client.get(f"/api/entries/{entry_id}", headers=headers).status_code == 200


def test_entries_require_auth(client):
    assert client.get("/api/entries").status_code == 401
    assert client.post("/api/entries", data=_fields()).status_code == 401
    assert client.get(f"/api/entries/{uuid.uuid4()}").status_code == 401
    assert client.delete(f"/api/entries/{uuid.uuid4()}").status_code == 401


def test_list_returns_own_entries_newest_first(client, make_user):
    _, alice = make_user()
    _, bob = make_user(orcid="0000-0001-5109-3700", name="Bob Example")

    ids = [str(uuid.uuid4()) for _ in range(3)]
    for entry_id in ids:
        assert client.post("/api/entries", data=_fields(entry_id), files=_files(massbank=0), headers=alice).status_code == 201
    client.post("/api/entries", data=_fields(), files=_files(massbank=0), headers=bob)

    r = client.get("/api/entries", headers=alice)
    assert r.status_code == 200
    assert [e["entryId"] for e in r.json()["entries"]] == list(reversed(ids))


def test_foreign_entry_is_not_found(client, make_user):
    _, alice = make_user()
    _, bob = make_user(orcid="0000-0001-5109-3700", name="Bob Example")
    entry_id = str(uuid.uuid4())
    client.post("/api/entries", data=_fields(entry_id), files=_files(), headers=alice)

    assert client.get(f"/api/entries/{entry_id}", headers=alice).status_code == 200

    for r in (client.get(f"/api/entries/{entry_id}", headers=bob), client.get(f"/api/entries/{uuid.uuid4()}", headers=bob)):
        assert r.status_code == 404
        assert r.json() == {"error": "Entry not found"}


def test_delete_removes_directory_and_row(client, make_user, storage, db):
    _, headers = make_user()
    entry_id = str(uuid.uuid4())
    client.post("/api/entries", data=_fields(entry_id), files=_files(), headers=headers)
    assert os.path.isdir(storage.get_entry_dir(entry_id))

    r = client.delete(f"/api/entries/{entry_id}", headers=headers)

    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Entry deleted"}
    assert not os.path.exists(storage.get_entry_dir(entry_id))
    assert db.query(Entry).count() == 0


def test_delete_missing_or_foreign_entry_mutates_nothing(client, make_user, storage, db):
    _, alice = make_user()
    _, bob = make_user(orcid="0000-0001-5109-3700", name="Bob Example")
    entry_id = str(uuid.uuid4())
    client.post("/api/entries", data=_fields(entry_id), files=_files(), headers=alice)

    assert client.delete(f"/api/entries/{entry_id}", headers=bob).status_code == 404
    assert client.delete(f"/api/entries/{uuid.uuid4()}", headers=alice).status_code == 404

    assert os.path.isdir(storage.get_entry_dir(entry_id))
    assert db.query(Entry).count() == 1


def test_delete_without_files_on_disk_still_succeeds(client, make_user, storage):
    _, headers = make_user()
    entry_id = str(uuid.uuid4())
    client.post("/api/entries", data=_fields(entry_id), files=_files(), headers=headers)
    storage.delete_entry_files(entry_id)

    assert client.delete(f"/api/entries/{entry_id}", headers=headers).status_code == 200
