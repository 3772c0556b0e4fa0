"""
rulebook/suggestions.py -- Two-step mention picker, independent of any widget.

Typing the trigger character in the rules editor opens a session:

    SELECTING_TYPE   pick "Document" or "Variable"
    SELECTING_ITEM   pick one entity of that kind, filtered by a typed query

and the interaction ends COMMITTED (an item was chosen and handed to
``on_commit``) or CANCELLED.  The editor translates its key events into
``SuggestionKey`` values and printable text into ``type_text``; the popup
only renders ``options`` / ``filtered_items`` / ``highlighted``.

``handle_key`` never raises.  It returns False for input the session does
not handle, so the editor can process that key itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Iterable, Optional

from rulebook.mentions.tokens import MentionType

logger = logging.getLogger(__name__)


class SuggestionStep(Enum):
    SELECTING_TYPE = auto()
    SELECTING_ITEM = auto()


class SuggestionOutcome(Enum):
    ACTIVE = auto()
    COMMITTED = auto()
    CANCELLED = auto()


class SuggestionKey(Enum):
    UP = auto()
    DOWN = auto()
    ENTER = auto()
    ESCAPE = auto()
    BACKSPACE = auto()


@dataclass(frozen=True)
class MentionItem:
    """What a commit hands back: enough to write ``@[type:id]``."""
    id: str
    name: str
    type: MentionType


TYPE_OPTIONS = (MentionType.DOC, MentionType.VAR)
TYPE_LABELS = {
    MentionType.DOC: "Document",
    MentionType.VAR: "Variable",
}


def _items(entities: Iterable, mention_type: MentionType) -> list[MentionItem]:
    return [MentionItem(e.id, e.name, mention_type) for e in entities]


class SuggestionSession:
    def __init__(
        self,
        documents: Iterable = (),
        variables: Iterable = (),
        on_commit: Optional[Callable[[MentionItem], None]] = None,
    ) -> None:
        self.on_commit = on_commit
        self._catalog: dict[MentionType, list[MentionItem]] = {}
        self.set_catalog(documents, variables)
        self.restart()

    def set_catalog(self, documents: Iterable = (), variables: Iterable = ()) -> None:
        """Replace the candidate entities (order is kept for display)."""
        self._catalog = {
            MentionType.DOC: _items(documents, MentionType.DOC),
            MentionType.VAR: _items(variables, MentionType.VAR),
        }

    def restart(self) -> None:
        """Back to a fresh SELECTING_TYPE step, whatever the current state."""
        self._step = SuggestionStep.SELECTING_TYPE
        self._outcome = SuggestionOutcome.ACTIVE
        self._kind: Optional[MentionType] = None
        self._query = ""
        self._highlighted = 0
        self._committed: Optional[MentionItem] = None

    # -- State ---------------------------------------------------------

    @property
    def step(self) -> SuggestionStep:
        return self._step

    @property
    def outcome(self) -> SuggestionOutcome:
        return self._outcome

    @property
    def is_active(self) -> bool:
        return self._outcome is SuggestionOutcome.ACTIVE

    @property
    def kind(self) -> Optional[MentionType]:
        return self._kind

    @property
    def query(self) -> str:
        return self._query

    @property
    def highlighted(self) -> int:
        return self._highlighted

    @property
    def committed_item(self) -> Optional[MentionItem]:
        return self._committed

    @property
    def options(self) -> tuple[MentionType, ...]:
        return TYPE_OPTIONS

    @property
    def filtered_items(self) -> list[MentionItem]:
        if self._kind is None:
            return []
        needle = self._query.casefold()
        return [i for i in self._catalog[self._kind] if needle in i.name.casefold()]

    @property
    def is_empty(self) -> bool:
        """True in SELECTING_ITEM when nothing matches the query."""
        return self._step is SuggestionStep.SELECTING_ITEM and not self.filtered_items

    # -- Keyboard ------------------------------------------------------

    def handle_key(self, key: SuggestionKey) -> bool:
        if not self.is_active:
            return False
        if self._step is SuggestionStep.SELECTING_TYPE:
            return self._handle_type_key(key)
        return self._handle_item_key(key)

    def _handle_type_key(self, key: SuggestionKey) -> bool:
        if key is SuggestionKey.UP:
            self._highlighted = (self._highlighted - 1) % len(TYPE_OPTIONS)
        elif key is SuggestionKey.DOWN:
            self._highlighted = (self._highlighted + 1) % len(TYPE_OPTIONS)
        elif key is SuggestionKey.ENTER:
            self.choose_type(TYPE_OPTIONS[self._highlighted])
        elif key is SuggestionKey.ESCAPE:
            self.cancel()
        else:
            return False
        return True

    def _handle_item_key(self, key: SuggestionKey) -> bool:
        if key is SuggestionKey.ESCAPE:
            self.go_back()
            return True
        if key is SuggestionKey.BACKSPACE:
            if self._query:
                self.set_query(self._query[:-1])
            else:
                self.go_back()
            return True

        items = self.filtered_items
        if not items:
            return False
        if key is SuggestionKey.UP:
            self._highlighted = (self._highlighted - 1) % len(items)
        elif key is SuggestionKey.DOWN:
            self._highlighted = (self._highlighted + 1) % len(items)
        elif key is SuggestionKey.ENTER:
            return self.choose_item(self._highlighted)
        else:
            return False
        return True

    # -- Text and pointer input ----------------------------------------

    def type_text(self, text: str) -> bool:
        """Append typed characters to the query (SELECTING_ITEM only)."""
        if not self.is_active or self._step is not SuggestionStep.SELECTING_ITEM or not text:
            return False
        self.set_query(self._query + text)
        return True

    def set_query(self, query: str) -> None:
        self._query = query
        self._highlighted = 0

    def choose_type(self, kind) -> None:
        if not self.is_active:
            return
        self._kind = MentionType(kind)
        self._step = SuggestionStep.SELECTING_ITEM
        self._query = ""
        self._highlighted = 0

    def choose_item(self, index: int) -> bool:
        """Commit the filtered item at *index*; False if there is none."""
        if not self.is_active or self._step is not SuggestionStep.SELECTING_ITEM:
            return False
        items = self.filtered_items
        if not 0 <= index < len(items):
            return False
        item = items[index]
        self._committed = item
        self._outcome = SuggestionOutcome.COMMITTED
        logger.debug("Mention committed: %s:%s", item.type.value, item.id)
        if self.on_commit is not None:
            self.on_commit(item)
        return True

    def hover(self, index: int) -> None:
        if not self.is_active:
            return
        size = len(TYPE_OPTIONS) if self._step is SuggestionStep.SELECTING_TYPE else len(self.filtered_items)
        if 0 <= index < size:
            self._highlighted = index

    def go_back(self) -> None:
        """Leave SELECTING_ITEM for SELECTING_TYPE, dropping kind and query."""
        if not self.is_active:
            return
        self._step = SuggestionStep.SELECTING_TYPE
        self._kind = None
        self._query = ""
        self._highlighted = 0

    def cancel(self) -> None:
        if self.is_active:
            self._outcome = SuggestionOutcome.CANCELLED
