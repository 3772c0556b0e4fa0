"""
rulebook/repository.py -- Storage seam for the EntityStore.

The store never touches module-level state; it composes one repository
per collection plus one for the rules singleton.  Two backends exist:

    InMemoryRepository      tests and throwaway sessions
    JsonFileRepository      one JSON array per collection on disk

Repositories hand out copies, so callers can never mutate stored rows by
accident.  They are not thread-safe on their own; the EntityStore
serialises access with its lock.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from rulebook.models.base import RulesConfig
from rulebook.utils import safe_read_json, safe_write_json

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class Repository(ABC, Generic[T]):
    """Collection of models keyed by their ``id`` attribute."""

    @abstractmethod
    def list(self) -> list[T]:
        """Return copies of all rows in insertion order."""

    @abstractmethod
    def get(self, entity_id: str) -> Optional[T]:
        """Return a copy of the row, or ``None``."""

    @abstractmethod
    def create(self, entity: T) -> T:
        """Append *entity*.  Raises ``KeyError`` if the id is taken."""

    @abstractmethod
    def update(self, entity: T) -> Optional[T]:
        """Replace the row with the same id; ``None`` if it does not exist."""

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Remove the row; return whether something was removed."""

    def contains(self, entity_id: str) -> bool:
        return self.get(entity_id) is not None

    def delete_where(self, predicate: Callable[[T], bool]) -> int:
        """Remove every row matching *predicate*; return how many went."""
        removed = 0
        for entity in self.list():
            if predicate(entity) and self.delete(entity.id):
                removed += 1
        return removed


class InMemoryRepository(Repository[T]):
    def __init__(self, items: Iterable[T] = ()):
        self._rows: dict[str, T] = {}
        for item in items:
            self._rows[item.id] = item.model_copy(deep=True)

    def list(self) -> list[T]:
        return [row.model_copy(deep=True) for row in self._rows.values()]

    def get(self, entity_id: str) -> Optional[T]:
        row = self._rows.get(entity_id)
        return row.model_copy(deep=True) if row is not None else None

    def create(self, entity: T) -> T:
        if entity.id in self._rows:
            raise KeyError(f"Duplicate id: {entity.id}")
        self._rows[entity.id] = entity.model_copy(deep=True)
        return entity.model_copy(deep=True)

    def update(self, entity: T) -> Optional[T]:
        if entity.id not in self._rows:
            return None
        self._rows[entity.id] = entity.model_copy(deep=True)
        return entity.model_copy(deep=True)

    def delete(self, entity_id: str) -> bool:
        return self._rows.pop(entity_id, None) is not None

    def __len__(self) -> int:
        return len(self._rows)


class JsonFileRepository(InMemoryRepository[T]):
    """In-memory rows mirrored to a JSON array after every mutation.

    Rows that fail model validation on load are skipped with a warning
    rather than aborting the whole collection.
    """

    def __init__(self, path: str, model_cls: type[T]):
        self._path = str(path)
        self._model_cls = model_cls
        super().__init__(self._load())

    @property
    def path(self) -> str:
        return self._path

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def _load(self) -> list[T]:
        raw = safe_read_json(self._path, default=[])
        if not isinstance(raw, list):
            logger.warning("%s does not hold a JSON array, ignoring it", self._path)
            return []
        rows = []
        for item in raw:
            try:
                rows.append(self._model_cls.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping invalid row in %s: %s", self._path, exc)
        return rows

    def _flush(self) -> None:
        safe_write_json(self._path, [row.to_json() for row in self._rows.values()])

    def create(self, entity: T) -> T:
        created = super().create(entity)
        self._flush()
        return created

    def update(self, entity: T) -> Optional[T]:
        updated = super().update(entity)
        if updated is not None:
            self._flush()
        return updated

    def delete(self, entity_id: str) -> bool:
        removed = super().delete(entity_id)
        if removed:
            self._flush()
        return removed

    def seed(self, items: Iterable[T]) -> None:
        """Replace the collection with *items* and write it out."""
        self._rows = {item.id: item.model_copy(deep=True) for item in items}
        self._flush()


# ---------------------------------------------------------------------------
# Rules singleton
# ---------------------------------------------------------------------------

class RulesRepository(ABC):
    @abstractmethod
    def load(self) -> Optional[RulesConfig]:
        """Return the stored rules, or ``None`` if nothing was saved yet."""

    @abstractmethod
    def store(self, config: RulesConfig) -> None:
        """Overwrite the stored rules."""


class InMemoryRulesRepository(RulesRepository):
    def __init__(self, config: Optional[RulesConfig] = None):
        self._config = config.model_copy() if config is not None else None

    def load(self) -> Optional[RulesConfig]:
        return self._config.model_copy() if self._config is not None else None

    def store(self, config: RulesConfig) -> None:
        self._config = config.model_copy()


class JsonRulesRepository(RulesRepository):
    def __init__(self, path: str):
        self._path = str(path)

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def load(self) -> Optional[RulesConfig]:
        raw = safe_read_json(self._path)
        if raw is None:
            return None
        try:
            return RulesConfig.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring invalid rules file %s: %s", self._path, exc)
            return None

    def store(self, config: RulesConfig) -> None:
        safe_write_json(self._path, config.to_json())
