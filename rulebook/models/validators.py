"""
rulebook/models/validators.py -- Input validation for the catalogue forms.

These checks run at the input boundary, *before* anything reaches the
store.  They never raise: each returns a mapping of field name to a
human-readable message, empty when the input is acceptable.  Forms feed
the mapping straight into their per-field indicators.

Usage::

    from rulebook.models.validators import validate_document_input

    errors = validate_document_input(store, name, exclude_id=doc.id)
    if not errors:
        store.update_document(doc.id, name=name)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from rulebook.utils import fold_name

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "This field is required"
DUPLICATE_DOCUMENT_MESSAGE = "A document with this name already exists"
DUPLICATE_VARIABLE_MESSAGE = "A variable with this name already exists"


def validate_document_input(
    store: Any,
    name: str,
    exclude_id: Optional[str] = None,
) -> dict[str, str]:
    """Validate the name typed for a new or renamed document type.

    Parameters
    ----------
    store : EntityStore
        Anything exposing ``document_name_exists(name, exclude_id)``.
    name : str
        The raw name from the form.
    exclude_id : str, optional
        The document being edited, so it does not collide with itself.
    """
    name = (name or "").strip()
    if not name:
        return {"name": REQUIRED_MESSAGE}
    if store.document_name_exists(name, exclude_id=exclude_id):
        return {"name": DUPLICATE_DOCUMENT_MESSAGE}
    return {}


def validate_field_input(name: str) -> dict[str, str]:
    """Fields only need a name; duplicates within a document are allowed."""
    if not (name or "").strip():
        return {"name": REQUIRED_MESSAGE}
    return {}


def validate_variable_input(
    store: Any,
    name: str,
    exclude_id: Optional[str] = None,
) -> dict[str, str]:
    """Validate the name typed for a new or renamed variable."""
    name = (name or "").strip()
    if not name:
        return {"name": REQUIRED_MESSAGE}
    if store.variable_name_exists(name, exclude_id=exclude_id):
        return {"name": DUPLICATE_VARIABLE_MESSAGE}
    return {}


class NameIndex:
    """Name uniqueness checks over already-loaded entity lists.

    Exposes the same ``*_name_exists`` methods as the EntityStore, so the
    validators above can run on the UI thread against what a screen has
    already loaded instead of calling the (slow) store again.
    """

    def __init__(self, documents: Iterable = (), variables: Iterable = ()):
        self._documents = [(d.id, fold_name(d.name)) for d in documents]
        self._variables = [(v.id, fold_name(v.name)) for v in variables]

    @staticmethod
    def _exists(rows, name: str, exclude_id: Optional[str]) -> bool:
        target = fold_name(name)
        return any(folded == target and row_id != exclude_id for row_id, folded in rows)

    def document_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        return self._exists(self._documents, name, exclude_id)

    def variable_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        return self._exists(self._variables, name, exclude_id)


def is_auto_search(variable: Any) -> bool:
    """Return True when *variable* is searched across all documents.

    Only an empty ``document_ids`` list means auto-search; a list of ids
    that no longer resolve to documents is still a fixed selection.
    """
    document_ids = getattr(variable, "document_ids", None)
    if document_ids is None and isinstance(variable, dict):
        document_ids = variable.get("documentIds", variable.get("document_ids"))
    return not document_ids
