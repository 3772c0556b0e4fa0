"""
rulebook_ui/widgets/mention_popup.py -- Rendering of a SuggestionSession.

The popup is a child of the editor's viewport and never takes focus; the
editor keeps routing keys to the session and calls :meth:`refresh`.
Mouse input goes straight to the session (choose / hover / back) and the
popup announces it with ``session_changed``.
"""

from __future__ import annotations

import logging

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from rulebook.mentions.tokens import MentionType
from rulebook.suggestions import TYPE_LABELS, SuggestionSession, SuggestionStep
from rulebook_ui.widgets.icons import VARIABLE_PIXMAP, document_icon, standard_icon

logger = logging.getLogger(__name__)

EMPTY_TEXT = "No results"
_TYPE_HINTS = {
    MentionType.DOC: "Reference a document type",
    MentionType.VAR: "Reference a variable",
}


class MentionPopup(QFrame):
    """Two-step picker view.

    Signals
    -------
    session_changed()
        The user acted on the session with the mouse.
    """

    session_changed = Signal()

    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        self.setObjectName("mentionPopup")
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.setAutoFillBackground(True)
        self.setMinimumWidth(260)
        self.setVisible(False)

        self._session: SuggestionSession | None = None
        self._document_icons: dict[str, str] = {}

        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.setSpacing(4)

        header = QHBoxLayout()
        self._back_btn = QPushButton("<")
        self._back_btn.setFixedWidth(28)
        self._back_btn.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self._back_btn.setToolTip("Back to the mention type")
        self._back_btn.clicked.connect(self._on_back)
        header.addWidget(self._back_btn)
        self._title = QLabel("")
        self._title.setStyleSheet("font-weight: bold;")
        header.addWidget(self._title, 1)
        layout.addLayout(header)

        self._list = QListWidget()
        self._list.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self._list.setMouseTracking(True)
        self._list.setMaximumHeight(220)
        self._list.itemClicked.connect(self._on_item_clicked)
        self._list.itemEntered.connect(self._on_item_entered)
        layout.addWidget(self._list)

        self._empty = QLabel(EMPTY_TEXT)
        self._empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._empty.setStyleSheet("color: #757575; font-style: italic; padding: 8px;")
        layout.addWidget(self._empty)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_document_icons(self, icons: dict[str, str]) -> None:
        self._document_icons = dict(icons)

    def show_for(self, session: SuggestionSession, x: int, y: int) -> None:
        self._session = session
        self.refresh()
        self.adjustSize()
        parent = self.parentWidget()
        if parent is not None:
            x = max(0, min(x, parent.width() - self.width()))
        self.move(x, y)
        self.setVisible(True)
        self.raise_()

    def refresh(self) -> None:
        session = self._session
        if session is None:
            return
        self._list.blockSignals(True)
        self._list.clear()
        if session.step is SuggestionStep.SELECTING_TYPE:
            self._title.setText("Insert a mention")
            self._back_btn.setVisible(False)
            for kind in session.options:
                item = QListWidgetItem(TYPE_LABELS[kind])
                item.setToolTip(_TYPE_HINTS[kind])
                if kind is MentionType.VAR:
                    item.setIcon(standard_icon(VARIABLE_PIXMAP))
                else:
                    item.setIcon(document_icon(None))
                self._list.addItem(item)
        else:
            label = "Documents" if session.kind is MentionType.DOC else "Variables"
            self._title.setText(f"{label}: {session.query}" if session.query else label)
            self._back_btn.setVisible(True)
            for entry in session.filtered_items:
                item = QListWidgetItem(entry.name)
                if entry.type is MentionType.DOC:
                    item.setIcon(document_icon(self._document_icons.get(entry.id)))
                else:
                    item.setIcon(standard_icon(VARIABLE_PIXMAP))
                self._list.addItem(item)

        empty = session.is_empty
        self._empty.setVisible(empty)
        self._list.setVisible(not empty)
        if not empty:
            self._list.setCurrentRow(session.highlighted)
        self._list.blockSignals(False)

    def row_texts(self) -> list[str]:
        return [self._list.item(i).text() for i in range(self._list.count())]

    @property
    def current_row(self) -> int:
        return self._list.currentRow()

    @property
    def title(self) -> str:
        return self._title.text()

    def is_showing_empty_state(self) -> bool:
        return not self._empty.isHidden()

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def _on_item_clicked(self, item: QListWidgetItem) -> None:
        session = self._session
        if session is None:
            return
        row = self._list.row(item)
        if session.step is SuggestionStep.SELECTING_TYPE:
            session.choose_type(session.options[row])
        else:
            session.choose_item(row)
        self.session_changed.emit()

    def _on_item_entered(self, item: QListWidgetItem) -> None:
        if self._session is None:
            return
        self._session.hover(self._list.row(item))
        self._list.setCurrentRow(self._session.highlighted)

    def _on_back(self) -> None:
        if self._session is None:
            return
        self._session.go_back()
        self.session_changed.emit()
