"""
rulebook_ui/panels/catalog_panel.py -- Documents, fields and variables.

Two tabs:

    Documents   searchable list (icon, external badge, field count); the
                selected document's fields and attached variables below it
    Variables   searchable list with an optional document filter; auto-search
                variables are marked

Search boxes are debounced (200ms) and run ``search_documents`` /
``search_variables`` on a StoreCall thread.  Create and edit dialogs are
validated against the lists already loaded, before anything reaches the
store.  Every successful mutation is announced with
``EventBus.catalog_changed``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtGui import QStandardItem, QStandardItemModel
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListView,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QSplitter,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from rulebook.models.validators import (
    NameIndex,
    is_auto_search,
    validate_document_input,
    validate_field_input,
    validate_variable_input,
)
from rulebook_ui.services.event_bus import EventBus
from rulebook_ui.services.store_worker import StoreCall
from rulebook_ui.settings import SEARCH_DEBOUNCE_MS
from rulebook_ui.widgets.form_dialog import EntityFormDialog
from rulebook_ui.widgets.icons import (
    AUTO_SEARCH_PIXMAP,
    VARIABLE_PIXMAP,
    document_icon,
    standard_icon,
)
from rulebook_ui.widgets.loading_overlay import LoadingOverlay

logger = logging.getLogger(__name__)

ENTITY_ID_ROLE = Qt.ItemDataRole.UserRole + 1

EXTERNAL_BADGE = "External"
AUTO_SEARCH_BADGE = "Auto-search"


def _fetch_catalog(store: Any) -> tuple[list, list, dict]:
    return store.list_documents(), store.list_variables(), store.field_counts()


def _fetch_document_detail(store: Any, document_id: str) -> tuple[str, list, list]:
    return document_id, store.list_fields(document_id), store.list_variables_by_document(document_id)


def document_label(document, field_count: int = 0) -> str:
    if document.is_external:
        return f"{document.name}  [{EXTERNAL_BADGE}]"
    return f"{document.name}  ({field_count} fields)"


def variable_label(variable) -> str:
    if is_auto_search(variable):
        return f"{variable.name}  [{AUTO_SEARCH_BADGE}]"
    return variable.name


class CatalogPanel(QWidget):
    """Catalogue management panel.

    Signals
    -------
    loaded()
        Emitted after the documents and variables lists are (re)filled.
    """

    loaded = Signal()

    def __init__(self, store: Any, parent: QWidget | None = None):
        super().__init__(parent)
        self._store = store
        self._bus = EventBus.instance()
        self._documents: list = []
        self._variables: list = []
        self._field_counts: dict[str, int] = {}
        self._fields: list = []
        self._current_document_id: Optional[str] = None

        self._setup_ui()
        self._connect_signals()

    # ------------------------------------------------------------------
    # UI setup
    # ------------------------------------------------------------------

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        self._tabs = QTabWidget()
        layout.addWidget(self._tabs)
        self._tabs.addTab(self._build_documents_tab(), "Documents")
        self._tabs.addTab(self._build_variables_tab(), "Variables")

    def _build_documents_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(4)

        self._doc_search = QLineEdit()
        self._doc_search.setPlaceholderText("Search documents...")
        self._doc_search.setClearButtonEnabled(True)
        layout.addWidget(self._doc_search)

        splitter = QSplitter(Qt.Orientation.Vertical)

        top = QWidget()
        top_layout = QVBoxLayout(top)
        top_layout.setContentsMargins(0, 0, 0, 0)
        self._doc_model = QStandardItemModel(self)
        self._doc_list = QListView()
        self._doc_list.setModel(self._doc_model)
        self._doc_list.setEditTriggers(QListView.EditTrigger.NoEditTriggers)
        top_layout.addWidget(self._doc_list)

        doc_buttons = QHBoxLayout()
        self._new_doc_btn = QPushButton("New")
        self._edit_doc_btn = QPushButton("Edit")
        self._delete_doc_btn = QPushButton("Delete")
        for btn in (self._new_doc_btn, self._edit_doc_btn, self._delete_doc_btn):
            doc_buttons.addWidget(btn)
        doc_buttons.addStretch()
        self._doc_count = QLabel("")
        self._doc_count.setStyleSheet("color: #888; font-size: 11px;")
        doc_buttons.addWidget(self._doc_count)
        top_layout.addLayout(doc_buttons)
        splitter.addWidget(top)

        detail = QWidget()
        detail_layout = QVBoxLayout(detail)
        detail_layout.setContentsMargins(0, 0, 0, 0)
        self._detail_title = QLabel("Select a document")
        self._detail_title.setStyleSheet("font-weight: bold;")
        self._detail_title.setWordWrap(True)
        detail_layout.addWidget(self._detail_title)

        self._field_list = QListWidget()
        detail_layout.addWidget(self._field_list)

        field_buttons = QHBoxLayout()
        self._add_field_btn = QPushButton("Add field")
        self._edit_field_btn = QPushButton("Edit field")
        self._delete_field_btn = QPushButton("Delete field")
        field_buttons.addWidget(self._add_field_btn)
        field_buttons.addWidget(self._edit_field_btn)
        field_buttons.addWidget(self._delete_field_btn)
        field_buttons.addStretch()
        detail_layout.addLayout(field_buttons)

        self._doc_variables = QLabel("")
        self._doc_variables.setWordWrap(True)
        self._doc_variables.setStyleSheet("color: #616161; font-size: 11px;")
        detail_layout.addWidget(self._doc_variables)
        splitter.addWidget(detail)

        layout.addWidget(splitter, 1)
        self._doc_loading = LoadingOverlay(self._doc_list)
        self._update_document_actions()
        return tab

    def _build_variables_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.setSpacing(4)

        self._var_search = QLineEdit()
        self._var_search.setPlaceholderText("Search variables...")
        self._var_search.setClearButtonEnabled(True)
        layout.addWidget(self._var_search)

        filter_row = QHBoxLayout()
        filter_row.addWidget(QLabel("Document:"))
        self._var_filter = QComboBox()
        self._var_filter.addItem("All", None)
        filter_row.addWidget(self._var_filter, 1)
        layout.addLayout(filter_row)

        self._var_model = QStandardItemModel(self)
        self._var_list = QListView()
        self._var_list.setModel(self._var_model)
        self._var_list.setEditTriggers(QListView.EditTrigger.NoEditTriggers)
        layout.addWidget(self._var_list, 1)

        buttons = QHBoxLayout()
        self._new_var_btn = QPushButton("New")
        self._edit_var_btn = QPushButton("Edit")
        self._delete_var_btn = QPushButton("Delete")
        for btn in (self._new_var_btn, self._edit_var_btn, self._delete_var_btn):
            buttons.addWidget(btn)
        buttons.addStretch()
        self._var_count = QLabel("")
        self._var_count.setStyleSheet("color: #888; font-size: 11px;")
        buttons.addWidget(self._var_count)
        layout.addLayout(buttons)

        self._var_loading = LoadingOverlay(self._var_list)
        return tab

    # ------------------------------------------------------------------
    # Signal wiring
    # ------------------------------------------------------------------

    def _connect_signals(self) -> None:
        self._doc_search_timer = QTimer(self)
        self._doc_search_timer.setSingleShot(True)
        self._doc_search_timer.setInterval(SEARCH_DEBOUNCE_MS)
        self._doc_search_timer.timeout.connect(self._search_documents)
        self._doc_search.textChanged.connect(lambda _: self._doc_search_timer.start())

        self._var_search_timer = QTimer(self)
        self._var_search_timer.setSingleShot(True)
        self._var_search_timer.setInterval(SEARCH_DEBOUNCE_MS)
        self._var_search_timer.timeout.connect(self._search_variables)
        self._var_search.textChanged.connect(lambda _: self._var_search_timer.start())
        self._var_filter.currentIndexChanged.connect(lambda _: self._search_variables())

        self._doc_list.selectionModel().currentChanged.connect(self._on_document_selected)

        self._new_doc_btn.clicked.connect(self.create_document)
        self._edit_doc_btn.clicked.connect(self.edit_document)
        self._delete_doc_btn.clicked.connect(self.delete_document)
        self._add_field_btn.clicked.connect(self.create_field)
        self._edit_field_btn.clicked.connect(self.edit_field)
        self._field_list.itemDoubleClicked.connect(lambda _item: self.edit_field())
        self._delete_field_btn.clicked.connect(self.delete_field)
        self._new_var_btn.clicked.connect(self.create_variable)
        self._edit_var_btn.clicked.connect(self.edit_variable)
        self._delete_var_btn.clicked.connect(self.delete_variable)

    # ------------------------------------------------------------------
    # Accessors (tests and the main window)
    # ------------------------------------------------------------------

    @property
    def documents(self) -> list:
        return list(self._documents)

    @property
    def variables(self) -> list:
        return list(self._variables)

    @property
    def fields(self) -> list:
        return list(self._fields)

    @property
    def current_document_id(self) -> Optional[str]:
        return self._current_document_id

    def document_rows(self) -> list[str]:
        return [self._doc_model.item(r).text() for r in range(self._doc_model.rowCount())]

    def variable_rows(self) -> list[str]:
        return [self._var_model.item(r).text() for r in range(self._var_model.rowCount())]

    def focus_search(self) -> None:
        self._tabs.setCurrentIndex(0)
        self._doc_search.setFocus()
        self._doc_search.selectAll()

    def set_document_query(self, text: str) -> None:
        self._doc_search.setText(text)

    def set_variable_query(self, text: str) -> None:
        self._var_search.setText(text)

    def set_variable_document_filter(self, document_id: Optional[str]) -> None:
        index = self._var_filter.findData(document_id)
        self._var_filter.setCurrentIndex(max(0, index))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Reload both lists from the store."""
        self._doc_loading.show_loading("Loading documents")
        self._var_loading.show_loading("Loading variables")
        StoreCall.launch(
            _fetch_catalog,
            self._store,
            on_success=self._on_catalog_loaded,
            on_failure=self._on_store_error,
        )

    def _on_catalog_loaded(self, result: object) -> None:
        self._documents, self._variables, self._field_counts = result
        self._fill_documents(self._matching_documents())
        self._fill_variable_filter()
        self._fill_variables(self._matching_variables())
        self._doc_loading.hide_loading()
        self._var_loading.hide_loading()
        if self._current_document_id is not None:
            self._load_document_detail(self._current_document_id)
        self.loaded.emit()

    def _matching_documents(self) -> list:
        query = self._doc_search.text().strip().casefold()
        return [d for d in self._documents if query in d.name.casefold()]

    def _matching_variables(self) -> list:
        query = self._var_search.text().strip().casefold()
        document_id = self._var_filter.currentData()
        return [
            v for v in self._variables
            if query in v.name.casefold()
            and (document_id is None or document_id in v.document_ids)
        ]

    def _fill_documents(self, documents: list) -> None:
        self._doc_model.removeRows(0, self._doc_model.rowCount())
        for doc in documents:
            item = QStandardItem(document_icon(doc.icon), document_label(doc, self._field_counts.get(doc.id, 0)))
            item.setData(doc.id, ENTITY_ID_ROLE)
            item.setToolTip(doc.description or doc.name)
            if doc.is_external:
                item.setForeground(Qt.GlobalColor.darkGray)
            self._doc_model.appendRow(item)
        self._doc_count.setText(f"{len(documents)} of {len(self._documents)}")
        self._restore_document_selection()

    def _fill_variables(self, variables: list) -> None:
        self._var_model.removeRows(0, self._var_model.rowCount())
        for var in variables:
            pixmap = AUTO_SEARCH_PIXMAP if is_auto_search(var) else VARIABLE_PIXMAP
            item = QStandardItem(standard_icon(pixmap), variable_label(var))
            item.setData(var.id, ENTITY_ID_ROLE)
            item.setToolTip(self._variable_tooltip(var))
            self._var_model.appendRow(item)
        self._var_count.setText(f"{len(variables)} of {len(self._variables)}")

    def _variable_tooltip(self, variable) -> str:
        if is_auto_search(variable):
            where = "searched in every document"
        else:
            names = {d.id: d.name for d in self._documents}
            where = ", ".join(names.get(doc_id, doc_id) for doc_id in variable.document_ids)
        description = f"{variable.description}\n" if variable.description else ""
        return f"{description}{where}"

    def _fill_variable_filter(self) -> None:
        current = self._var_filter.currentData()
        self._var_filter.blockSignals(True)
        self._var_filter.clear()
        self._var_filter.addItem("All", None)
        for doc in self._documents:
            self._var_filter.addItem(document_icon(doc.icon), doc.name, doc.id)
        index = self._var_filter.findData(current)
        self._var_filter.setCurrentIndex(max(0, index))
        self._var_filter.blockSignals(False)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _search_documents(self) -> None:
        StoreCall.launch(
            self._store.search_documents,
            self._doc_search.text(),
            on_success=self._on_documents_found,
            on_failure=self._on_store_error,
        )

    def _on_documents_found(self, documents: object) -> None:
        self._fill_documents(list(documents))

    def _search_variables(self) -> None:
        StoreCall.launch(
            self._store.search_variables,
            self._var_search.text(),
            self._var_filter.currentData(),
            on_success=self._on_variables_found,
            on_failure=self._on_store_error,
        )

    def _on_variables_found(self, variables: object) -> None:
        self._fill_variables(list(variables))

    # ------------------------------------------------------------------
    # Document selection and detail
    # ------------------------------------------------------------------

    def _selected_id(self, view: QListView) -> Optional[str]:
        index = view.currentIndex()
        if not index.isValid():
            return None
        return index.data(ENTITY_ID_ROLE)

    def _document(self, document_id: Optional[str]):
        return next((d for d in self._documents if d.id == document_id), None)

    def _variable(self, variable_id: Optional[str]):
        return next((v for v in self._variables if v.id == variable_id), None)

    def select_document(self, document_id: str) -> None:
        for row in range(self._doc_model.rowCount()):
            if self._doc_model.item(row).data(ENTITY_ID_ROLE) == document_id:
                self._doc_list.setCurrentIndex(self._doc_model.index(row, 0))
                return

    def select_variable(self, variable_id: str) -> None:
        for row in range(self._var_model.rowCount()):
            if self._var_model.item(row).data(ENTITY_ID_ROLE) == variable_id:
                self._var_list.setCurrentIndex(self._var_model.index(row, 0))
                return

    def _restore_document_selection(self) -> None:
        if self._current_document_id is not None:
            self.select_document(self._current_document_id)

    def _on_document_selected(self, current, _previous) -> None:
        document_id = current.data(ENTITY_ID_ROLE) if current.isValid() else None
        if document_id == self._current_document_id and document_id is not None:
            return
        self._current_document_id = document_id
        self._fields = []
        self._field_list.clear()
        self._update_document_actions()
        if document_id is None:
            self._detail_title.setText("Select a document")
            self._doc_variables.setText("")
            return
        self._load_document_detail(document_id)

    def _load_document_detail(self, document_id: str) -> None:
        StoreCall.launch(
            _fetch_document_detail,
            self._store,
            document_id,
            on_success=self._on_document_detail,
            on_failure=self._on_store_error,
        )

    def _on_document_detail(self, result: object) -> None:
        document_id, fields, variables = result
        if document_id != self._current_document_id:
            return
        doc = self._document(document_id)
        if doc is None:
            self._detail_title.setText("Document not found")
            self._field_list.clear()
            self._doc_variables.setText("")
            self._update_document_actions()
            return

        title = doc.name
        if doc.is_external:
            title += f" ({EXTERNAL_BADGE.lower()}, read-only)"
            depends = ", ".join(
                (self._variable(vid).name if self._variable(vid) else vid) for vid in doc.depends_on
            )
            if depends:
                title += f"\nSearch keys: {depends}"
        self._detail_title.setText(title)

        self._fields = list(fields)
        self._field_list.clear()
        for f in self._fields:
            label = f"{f.name} *" if f.required else f.name
            item = QListWidgetItem(label)
            item.setData(ENTITY_ID_ROLE, f.id)
            item.setToolTip(f.description or "")
            self._field_list.addItem(item)
        if not self._fields:
            placeholder = QListWidgetItem("No fields yet")
            placeholder.setFlags(Qt.ItemFlag.NoItemFlags)
            self._field_list.addItem(placeholder)

        names = ", ".join(v.name for v in variables)
        self._doc_variables.setText(f"Variables: {names}" if names else "No variable attached")
        self._update_document_actions()

    def _update_document_actions(self) -> None:
        doc = self._document(self._current_document_id)
        editable = doc is not None and not doc.is_external
        self._edit_doc_btn.setEnabled(editable)
        self._delete_doc_btn.setEnabled(editable)
        self._add_field_btn.setEnabled(editable)
        self._edit_field_btn.setEnabled(editable)
        self._delete_field_btn.setEnabled(editable)

    # ------------------------------------------------------------------
    # Documents CRUD
    # ------------------------------------------------------------------

    def _name_index(self) -> NameIndex:
        return NameIndex(self._documents, self._variables)

    def document_dialog(self, document=None) -> EntityFormDialog:
        exclude_id = document.id if document is not None else None
        index = self._name_index()
        initial = None
        if document is not None:
            initial = {"name": document.name, "description": document.description, "icon": document.icon}
        return EntityFormDialog(
            "Edit document" if document is not None else "New document",
            lambda name: validate_document_input(index, name, exclude_id=exclude_id),
            self,
            with_icon=True,
            initial=initial,
        )

    def create_document(self) -> None:
        dialog = self.document_dialog()
        if dialog.exec():
            self.submit_new_document(dialog.values())

    def submit_new_document(self, values: dict) -> None:
        StoreCall.launch(
            self._store.create_document, values,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    def edit_document(self) -> None:
        doc = self._document(self._current_document_id)
        if doc is None or doc.is_external:
            return
        dialog = self.document_dialog(doc)
        if dialog.exec():
            StoreCall.launch(
                self._store.update_document, doc.id, **dialog.values(),
                on_success=self._on_catalog_mutated,
                on_failure=self._on_store_error,
            )

    def delete_document(self, confirm: bool = True) -> None:
        doc = self._document(self._current_document_id)
        if doc is None:
            return
        if confirm and QMessageBox.question(
            self, "Delete document",
            f"Delete '{doc.name}' and all its fields?\n"
            "Mentions of it in the rules will show its id.",
        ) != QMessageBox.StandardButton.Yes:
            return
        StoreCall.launch(
            self._store.delete_document, doc.id,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    # ------------------------------------------------------------------
    # Fields CRUD
    # ------------------------------------------------------------------

    def field_dialog(self, field=None) -> EntityFormDialog:
        initial = None
        if field is not None:
            initial = {"name": field.name, "description": field.description, "required": field.required}
        return EntityFormDialog(
            "Edit field" if field is not None else "New field",
            validate_field_input,
            self,
            with_required=True,
            initial=initial,
        )

    def _selected_field(self):
        item = self._field_list.currentItem()
        field_id = item.data(ENTITY_ID_ROLE) if item is not None else None
        return next((f for f in self._fields if f.id == field_id), None)

    def edit_field(self) -> None:
        doc = self._document(self._current_document_id)
        if doc is None or doc.is_external:
            return
        field = self._selected_field()
        if field is None:
            return
        dialog = self.field_dialog(field)
        if dialog.exec():
            self.submit_field_changes(field.id, dialog.values())

    def submit_field_changes(self, field_id: str, values: dict) -> None:
        StoreCall.launch(
            self._store.update_field, field_id, **values,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    def create_field(self) -> None:
        if self._current_document_id is None:
            return
        dialog = self.field_dialog()
        if dialog.exec():
            self.submit_new_field(dialog.values())

    def submit_new_field(self, values: dict) -> None:
        if self._current_document_id is None:
            return
        payload = dict(values, document_type_id=self._current_document_id)
        StoreCall.launch(
            self._store.create_field, payload,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    def delete_field(self) -> None:
        item = self._field_list.currentItem()
        field_id = item.data(ENTITY_ID_ROLE) if item is not None else None
        if not field_id:
            return
        StoreCall.launch(
            self._store.delete_field, field_id,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    # ------------------------------------------------------------------
    # Variables CRUD
    # ------------------------------------------------------------------

    def variable_dialog(self, variable=None) -> EntityFormDialog:
        exclude_id = variable.id if variable is not None else None
        index = self._name_index()
        initial = None
        if variable is not None:
            initial = {
                "name": variable.name,
                "description": variable.description,
                "document_ids": variable.document_ids,
            }
        return EntityFormDialog(
            "Edit variable" if variable is not None else "New variable",
            lambda name: validate_variable_input(index, name, exclude_id=exclude_id),
            self,
            documents=self._documents,
            initial=initial,
        )

    def create_variable(self) -> None:
        dialog = self.variable_dialog()
        if dialog.exec():
            self.submit_new_variable(dialog.values())

    def submit_new_variable(self, values: dict) -> None:
        StoreCall.launch(
            self._store.create_variable, values,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    def edit_variable(self) -> None:
        var = self._variable(self._selected_id(self._var_list))
        if var is None:
            return
        dialog = self.variable_dialog(var)
        if dialog.exec():
            StoreCall.launch(
                self._store.update_variable, var.id, **dialog.values(),
                on_success=self._on_catalog_mutated,
                on_failure=self._on_store_error,
            )

    def delete_variable(self, confirm: bool = True) -> None:
        var = self._variable(self._selected_id(self._var_list))
        if var is None:
            return
        if confirm and QMessageBox.question(
            self, "Delete variable", f"Delete '{var.name}'?",
        ) != QMessageBox.StandardButton.Yes:
            return
        StoreCall.launch(
            self._store.delete_variable, var.id,
            on_success=self._on_catalog_mutated,
            on_failure=self._on_store_error,
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _on_catalog_mutated(self, result: object) -> None:
        if result is None or result is False:
            self._bus.status_message.emit("No change: the entry is read-only or no longer exists")
            return
        name = getattr(result, "name", None)
        self._bus.status_message.emit(f"Saved '{name}'" if name else "Deleted")
        self.refresh()
        self._bus.catalog_changed.emit()

    def _on_store_error(self, message: str) -> None:
        self._doc_loading.hide_loading()
        self._var_loading.hide_loading()
        self._bus.error_occurred.emit(message)
