"""
rulebook_ui/panels/rules_panel.py -- Rules document screen.

Hosts the RulesEditor, its save indicator, and the help drawer, and wires
the editor to an AutosaveController that persists through
``EntityStore.save_rules``.  Documents, variables and the rules text are
loaded together on a StoreCall thread behind a loading overlay; catalogue
edits announced on the EventBus refresh the mention labels in place.
"""

from __future__ import annotations

import logging
from typing import Any

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

from rulebook.mentions.resolver import dangling_mentions
from rulebook.utils import utc_now
from rulebook_ui.services.autosave import AutosaveController
from rulebook_ui.services.event_bus import EventBus
from rulebook_ui.services.store_worker import StoreCall
from rulebook_ui.settings import Settings
from rulebook_ui.widgets.help_drawer import HelpDrawer
from rulebook_ui.widgets.loading_overlay import LoadingOverlay
from rulebook_ui.widgets.rules_editor import RulesEditor
from rulebook_ui.widgets.save_indicator import SaveIndicator

logger = logging.getLogger(__name__)


def _fetch_catalog(store: Any) -> tuple[list, list]:
    return store.list_documents(), store.list_variables()


class RulesPanel(QWidget):
    """Rules editor with autosave.

    Signals
    -------
    loaded()
        The rules text and catalogue are in the editor.
    """

    loaded = Signal()

    def __init__(self, store: Any, settings: Settings | None = None, parent: QWidget | None = None):
        super().__init__(parent)
        self._store = store
        self._settings = settings or Settings()
        self._bus = EventBus.instance()
        self._documents: list = []
        self._variables: list = []
        self._is_loaded = False

        self._setup_ui()

        self._autosave = AutosaveController(
            self._store.save_rules,
            interval_ms=self._settings.autosave_ms,
            parent=self,
        )
        self._connect_signals()

    # ------------------------------------------------------------------
    # UI setup
    # ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        header = QHBoxLayout()
        title = QLabel("Validation rules")
        title.setStyleSheet("font-size: 16px; font-weight: bold;")
        header.addWidget(title)
        header.addStretch()

        self._indicator = SaveIndicator()
        header.addWidget(self._indicator)

        self._save_btn = QPushButton("Save now")
        self._save_btn.setToolTip("Save immediately (Ctrl+S)")
        header.addWidget(self._save_btn)

        self._help_btn = QPushButton("Help")
        self._help_btn.setCheckable(True)
        header.addWidget(self._help_btn)
        layout.addLayout(header)

        self._splitter = QSplitter(Qt.Orientation.Horizontal)
        self._editor = RulesEditor(trigger_char=self._settings.trigger_char)
        self._splitter.addWidget(self._editor)
        self._help = HelpDrawer(self._settings.trigger_char)
        self._help.setVisible(False)
        self._splitter.addWidget(self._help)
        self._splitter.setStretchFactor(0, 3)
        self._splitter.setStretchFactor(1, 1)
        layout.addWidget(self._splitter, 1)

        self._loading = LoadingOverlay(self._editor)

    def _connect_signals(self) -> None:
        self._editor.contentChanged.connect(self._autosave.content_changed)
        self._autosave.status_changed.connect(self._indicator.set_status)
        self._autosave.saved.connect(self._on_saved)
        self._autosave.save_failed.connect(self._on_save_failed)

        self._save_btn.clicked.connect(self.save_now)
        self._help_btn.toggled.connect(self._help.setVisible)

        self._bus.catalog_changed.connect(self.refresh_catalog)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def editor(self) -> RulesEditor:
        return self._editor

    @property
    def autosave(self) -> AutosaveController:
        return self._autosave

    @property
    def indicator(self) -> SaveIndicator:
        return self._indicator

    @property
    def help_drawer(self) -> HelpDrawer:
        return self._help

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    def is_loading(self) -> bool:
        return self._loading.is_loading()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Fetch catalogue and rules, then fill the editor."""
        self._is_loaded = False
        self._editor.setReadOnly(True)
        self._loading.show_loading("Loading rules")
        StoreCall.launch(
            self._store.rules_context,
            on_success=self._on_loaded,
            on_failure=self._on_load_failed,
        )

    def _on_loaded(self, result: object) -> None:
        documents, variables, rules = result
        self._documents, self._variables = documents, variables
        self._editor.set_catalog(documents, variables)
        self._editor.load_storage_text(rules.content)
        self._autosave.reset(self._editor.storage_text())
        self._indicator.set_last_saved(rules.updated_at)
        self._help.show_preview(rules.content, documents, variables)

        for mention_type, mention_id in dangling_mentions(rules.content, documents, variables):
            logger.warning("Rules mention unknown %s %r", mention_type.value, mention_id)

        self._editor.setReadOnly(False)
        self._loading.hide_loading()
        self._is_loaded = True
        logger.info("Rules loaded (%d documents, %d variables)", len(documents), len(variables))
        self.loaded.emit()

    def _on_load_failed(self, message: str) -> None:
        self._loading.hide_loading()
        self._bus.error_occurred.emit(f"Could not load the rules: {message}")

    def refresh_catalog(self) -> None:
        StoreCall.launch(_fetch_catalog, self._store, on_success=self._on_catalog_fetched)

    def _on_catalog_fetched(self, result: object) -> None:
        self._documents, self._variables = result
        self._editor.set_catalog(self._documents, self._variables)
        self._help.show_preview(self._autosave.baseline, self._documents, self._variables)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_now(self) -> None:
        self._autosave.flush()

    def _on_saved(self, content: str) -> None:
        self._indicator.set_last_saved(utc_now())
        self._help.show_preview(content, self._documents, self._variables)
        self._bus.rules_saved.emit(content)

    def _on_save_failed(self, message: str) -> None:
        self._bus.status_message.emit("Rules not saved yet, will retry on the next edit")

    def shutdown(self, timeout_ms: int = 5000) -> None:
        """Save every pending edit, including text typed mid-save, then go quiet."""
        if not self._autosave.flush_and_wait(timeout_ms):
            logger.warning("Rules closed with unsaved edits")
        StoreCall.wait_all(timeout_ms)
        self._autosave.detach()
