# File: state/authors.py
"""
Author list mutations. Every mutation renumbers `order` to match list
position and marks the form dirty.
"""
from typing import Any, Dict, List
import uuid

from api.models.entry_models import Author
from state.entry_form_store import EntryFormStore


def _renumber(authors: List[Author]) -> List[Author]:
    return [a.model_copy(update={"order": i}) for i, a in enumerate(authors)]


def _commit(store: EntryFormStore, authors: List[Author]) -> None:
    store.set_field("authors", _renumber(authors))
    store.mark_dirty()


def add_author(store: EntryFormStore, author: Dict[str, Any]) -> Author:
    """
    Appends a new author. `author` takes snake_case or camelCase keys; any id/order given is replaced.
    """
    data = {k: v for k, v in author.items() if k not in ("id", "order")}
    new_author = Author.model_validate({**data, "id": str(uuid.uuid4()), "order": len(store.authors)})
    _commit(store, store.authors + [new_author])
    return new_author


def update_author(store: EntryFormStore, author_id: str, updates: Dict[str, Any]) -> None:
    # Normalise camelCase patches onto attribute names
    fields = {}
    for key, value in updates.items():
        name = next((n for n, f in Author.model_fields.items() if key in (n, f.alias)), None)
        if name and name not in ("id", "order"):
            fields[name] = value

    authors = [
        Author.model_validate({**a.model_dump(), **fields}) if a.id == author_id else a
        for a in store.authors
    ]
    _commit(store, authors)


def remove_author(store: EntryFormStore, author_id: str) -> None:
    _commit(store, [a for a in store.authors if a.id != author_id])


def move_author_up(store: EntryFormStore, index: int) -> None:
    authors = list(store.authors)
    if index <= 0 or index >= len(authors):
        return
    authors[index - 1], authors[index] = authors[index], authors[index - 1]
    _commit(store, authors)


def move_author_down(store: EntryFormStore, index: int) -> None:
    authors = list(store.authors)
    if index < 0 or index >= len(authors) - 1:
        return
    authors[index], authors[index + 1] = authors[index + 1], authors[index]
    _commit(store, authors)
