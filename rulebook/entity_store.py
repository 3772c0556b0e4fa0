"""
rulebook/entity_store.py -- Sole owner of the catalogue collections.

The EntityStore composes one repository per collection (documents,
fields, variables) plus the rules singleton, and layers the catalogue
rules on top of plain CRUD:

    * fresh ids come from per-collection counters ("12", "f39", "v44")
    * external document types are immutable through CRUD
    * deleting a document cascades to its fields
    * name uniqueness is checked case-insensitively for the forms
    * ``save_rules`` always stamps ``updated_at``

Every public operation first sleeps for ``latency`` seconds, standing in
for a remote backend, so the desktop console always calls the store from
a worker thread.  An RLock guards each operation, which keeps concurrent
worker calls safe; writes are last-write-wins.

Usage:
    from rulebook.entity_store import EntityStore

    store = EntityStore.in_memory(latency=0)
    doc = store.create_document({"name": "Bail commercial", "icon": "file-text"})
    store.create_field({"documentTypeId": doc.id, "name": "Loyer", "required": True})
    store.delete_document(doc.id)      # fields go with it
"""

from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel

from rulebook import seed as seed_data
from rulebook.models.base import DocumentField, DocumentType, RulesConfig, Variable
from rulebook.repository import (
    InMemoryRepository,
    InMemoryRulesRepository,
    JsonFileRepository,
    JsonRulesRepository,
    Repository,
    RulesRepository,
)
from rulebook.utils import fold_name, utc_now

logger = logging.getLogger(__name__)

Payload = Union[Mapping[str, Any], BaseModel]

# File names used by the JSON backend.
DOCUMENTS_FILE = "documents.json"
FIELDS_FILE = "fields.json"
VARIABLES_FILE = "variables.json"
RULES_FILE = "rules.json"

# Per-collection id prefixes.
_ID_PREFIXES = {"documents": "", "fields": "f", "variables": "v"}

# Attributes that ``update_*`` never changes.
_FROZEN_DOCUMENT_KEYS = {"id", "is_external", "isExternal"}
_FROZEN_FIELD_KEYS = {"id", "document_type_id", "documentTypeId", "is_system", "isSystem"}
_FROZEN_VARIABLE_KEYS = {"id"}


def _payload(data: Payload) -> dict:
    """Turn a mapping or a model into a plain dict without its id."""
    if isinstance(data, BaseModel):
        payload = data.model_dump()
    else:
        payload = dict(data)
    payload.pop("id", None)
    return payload


def _contains(haystack: str, query: str) -> bool:
    return query.casefold() in haystack.casefold()


class EntityStore:
    """Thread-safe catalogue store over injected repositories.

    Parameters
    ----------
    documents, fields, variables : Repository
        One repository per collection.
    rules : RulesRepository
        Holder of the singleton rules document.
    latency : float
        Seconds slept at the start of every public call.
    """

    def __init__(
        self,
        documents: Repository[DocumentType],
        fields: Repository[DocumentField],
        variables: Repository[Variable],
        rules: RulesRepository,
        latency: float = 0.0,
    ) -> None:
        self._documents = documents
        self._fields = fields
        self._variables = variables
        self._rules = rules
        self._latency = max(0.0, float(latency))
        self._lock = threading.RLock()
        self._counters = {name: 1 for name in _ID_PREFIXES}

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def in_memory(cls, seed: bool = True, latency: float = 0.0) -> "EntityStore":
        """Build a store backed by dicts, optionally pre-filled with the
        default catalogue."""
        if seed:
            return cls(
                InMemoryRepository(seed_data.default_documents()),
                InMemoryRepository(seed_data.default_fields()),
                InMemoryRepository(seed_data.default_variables()),
                InMemoryRulesRepository(seed_data.default_rules()),
                latency=latency,
            )
        return cls(
            InMemoryRepository(),
            InMemoryRepository(),
            InMemoryRepository(),
            InMemoryRulesRepository(),
            latency=latency,
        )

    @classmethod
    def from_directory(cls, path: str, seed: bool = True, latency: float = 0.0) -> "EntityStore":
        """Build a store backed by JSON files under *path*.

        Collections whose file does not exist yet are seeded with the
        default catalogue when *seed* is true.  Existing files are never
        overwritten.
        """
        os.makedirs(path, exist_ok=True)
        documents = JsonFileRepository(os.path.join(path, DOCUMENTS_FILE), DocumentType)
        fields = JsonFileRepository(os.path.join(path, FIELDS_FILE), DocumentField)
        variables = JsonFileRepository(os.path.join(path, VARIABLES_FILE), Variable)
        rules = JsonRulesRepository(os.path.join(path, RULES_FILE))

        if seed:
            for repo, factory in (
                (documents, seed_data.default_documents),
                (fields, seed_data.default_fields),
                (variables, seed_data.default_variables),
            ):
                if not repo.exists():
                    logger.info("Seeding %s", repo.path)
                    repo.seed(factory())
            if not rules.exists():
                rules.store(seed_data.default_rules())

        logger.info("Entity store opened at %s", path)
        return cls(documents, fields, variables, rules, latency=latency)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def latency(self) -> float:
        return self._latency

    def _wait(self) -> None:
        if self._latency:
            time.sleep(self._latency)

    def _next_id(self, collection: str, repo: Repository) -> str:
        prefix = _ID_PREFIXES[collection]
        while True:
            candidate = f"{prefix}{self._counters[collection]}"
            self._counters[collection] += 1
            if not repo.contains(candidate):
                return candidate

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def list_documents(self) -> list[DocumentType]:
        self._wait()
        with self._lock:
            return self._documents.list()

    def get_document(self, document_id: str) -> Optional[DocumentType]:
        self._wait()
        with self._lock:
            return self._documents.get(document_id)

    def search_documents(self, query: str = "") -> list[DocumentType]:
        """Documents whose name contains *query*, case-insensitively."""
        self._wait()
        query = (query or "").strip()
        with self._lock:
            return [d for d in self._documents.list() if _contains(d.name, query)]

    def create_document(self, data: Payload) -> Optional[DocumentType]:
        """Create a document type; external types are refused with ``None``."""
        self._wait()
        payload = _payload(data)
        if payload.get("is_external") or payload.get("isExternal"):
            logger.info("Refusing to create external document %r", payload.get("name"))
            return None
        with self._lock:
            payload["id"] = self._next_id("documents", self._documents)
            document = DocumentType.model_validate(payload)
            created = self._documents.create(document)
        logger.debug("Created document %s (%s)", created.id, created.name)
        return created

    def update_document(self, document_id: str, **changes: Any) -> Optional[DocumentType]:
        self._wait()
        with self._lock:
            existing = self._documents.get(document_id)
            if existing is None:
                return None
            if existing.is_external:
                logger.info("Document %s is external, update ignored", document_id)
                return None
            merged = existing.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in _FROZEN_DOCUMENT_KEYS})
            updated = self._documents.update(DocumentType.model_validate(merged))
        logger.debug("Updated document %s", document_id)
        return updated

    def delete_document(self, document_id: str) -> bool:
        """Delete a document type and every field it owns."""
        self._wait()
        with self._lock:
            existing = self._documents.get(document_id)
            if existing is None:
                return False
            if existing.is_external:
                logger.info("Document %s is external, delete ignored", document_id)
                return False
            removed = self._documents.delete(document_id)
            cascaded = self._fields.delete_where(lambda f: f.document_type_id == document_id)
        logger.debug("Deleted document %s and %d field(s)", document_id, cascaded)
        return removed

    def document_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        self._wait()
        target = fold_name(name)
        with self._lock:
            return any(
                fold_name(d.name) == target and d.id != exclude_id
                for d in self._documents.list()
            )

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def list_fields(self, document_id: str) -> list[DocumentField]:
        self._wait()
        with self._lock:
            return [f for f in self._fields.list() if f.document_type_id == document_id]

    def field_counts(self) -> dict[str, int]:
        """Number of fields per document id, for list badges."""
        self._wait()
        counts: dict[str, int] = {}
        with self._lock:
            for f in self._fields.list():
                counts[f.document_type_id] = counts.get(f.document_type_id, 0) + 1
        return counts

    def get_field(self, field_id: str) -> Optional[DocumentField]:
        self._wait()
        with self._lock:
            return self._fields.get(field_id)

    def create_field(self, data: Payload) -> Optional[DocumentField]:
        """Create a field under an existing document; ``None`` otherwise."""
        self._wait()
        payload = _payload(data)
        document_id = payload.get("document_type_id", payload.get("documentTypeId"))
        with self._lock:
            if not document_id or not self._documents.contains(document_id):
                logger.info("Cannot add a field to missing document %r", document_id)
                return None
            payload["id"] = self._next_id("fields", self._fields)
            created = self._fields.create(DocumentField.model_validate(payload))
        logger.debug("Created field %s on %s", created.id, document_id)
        return created

    def update_field(self, field_id: str, **changes: Any) -> Optional[DocumentField]:
        self._wait()
        with self._lock:
            existing = self._fields.get(field_id)
            if existing is None:
                return None
            merged = existing.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in _FROZEN_FIELD_KEYS})
            updated = self._fields.update(DocumentField.model_validate(merged))
        logger.debug("Updated field %s", field_id)
        return updated

    def delete_field(self, field_id: str) -> bool:
        self._wait()
        with self._lock:
            removed = self._fields.delete(field_id)
        if removed:
            logger.debug("Deleted field %s", field_id)
        return removed

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def list_variables(self) -> list[Variable]:
        self._wait()
        with self._lock:
            return self._variables.list()

    def list_variables_by_document(self, document_id: str) -> list[Variable]:
        """Variables explicitly attached to *document_id*.

        Auto-search variables are not listed; they belong to no document
        in particular.
        """
        self._wait()
        with self._lock:
            return [v for v in self._variables.list() if document_id in v.document_ids]

    def get_variable(self, variable_id: str) -> Optional[Variable]:
        self._wait()
        with self._lock:
            return self._variables.get(variable_id)

    def search_variables(self, query: str = "", document_id: Optional[str] = None) -> list[Variable]:
        self._wait()
        query = (query or "").strip()
        with self._lock:
            return [
                v for v in self._variables.list()
                if _contains(v.name, query)
                and (document_id is None or document_id in v.document_ids)
            ]

    def create_variable(self, data: Payload) -> Variable:
        self._wait()
        payload = _payload(data)
        with self._lock:
            payload["id"] = self._next_id("variables", self._variables)
            created = self._variables.create(Variable.model_validate(payload))
        logger.debug("Created variable %s (%s)", created.id, created.name)
        return created

    def update_variable(self, variable_id: str, **changes: Any) -> Optional[Variable]:
        self._wait()
        with self._lock:
            existing = self._variables.get(variable_id)
            if existing is None:
                return None
            merged = existing.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in _FROZEN_VARIABLE_KEYS})
            updated = self._variables.update(Variable.model_validate(merged))
        logger.debug("Updated variable %s", variable_id)
        return updated

    def delete_variable(self, variable_id: str) -> bool:
        self._wait()
        with self._lock:
            removed = self._variables.delete(variable_id)
        if removed:
            logger.debug("Deleted variable %s", variable_id)
        return removed

    def variable_name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        self._wait()
        target = fold_name(name)
        with self._lock:
            return any(
                fold_name(v.name) == target and v.id != exclude_id
                for v in self._variables.list()
            )

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def get_rules(self) -> RulesConfig:
        """Return the rules document, creating an empty one on first use."""
        self._wait()
        with self._lock:
            config = self._rules.load()
            if config is None:
                config = RulesConfig()
                self._rules.store(config)
            return config

    def save_rules(self, content: str) -> RulesConfig:
        self._wait()
        config = RulesConfig(content=content, updated_at=utc_now())
        with self._lock:
            self._rules.store(config)
        logger.debug("Saved rules (%d chars)", len(content))
        return config.model_copy()

    def rules_context(self) -> tuple[list[DocumentType], list[Variable], RulesConfig]:
        """Documents, variables and rules read under a single lock.

        The rules screen needs all three to render mentions, so it loads
        them in one call instead of three round trips.
        """
        self._wait()
        with self._lock:
            rules = self._rules.load()
            if rules is None:
                rules = RulesConfig()
                self._rules.store(rules)
            return self._documents.list(), self._variables.list(), rules
