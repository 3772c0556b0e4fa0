"""
rulebook_ui/widgets/form_dialog.py -- Create/edit dialogs for catalogue entities.

One dialog class serves documents, fields and variables; the optional
rows (icon, required flag, document checklist) are switched on per kind.
Validation runs on OK through a callable returning ``{field: message}``
(see ``rulebook.models.validators``); the dialog stays open and marks
the offending row while the mapping is non-empty.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from rulebook.models.icons import DEFAULT_ICON, DocumentIcon
from rulebook_ui.widgets.icons import document_icon

logger = logging.getLogger(__name__)

Validator = Callable[[str], dict]

AUTO_SEARCH_HINT = "No document selected: the variable is searched in every document."


class _ValidatedLine(QWidget):
    """Line edit with an inline validation indicator."""

    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)
        self.edit = QLineEdit()
        layout.addWidget(self.edit, 1)
        self._indicator = QLabel("")
        self._indicator.setFixedWidth(20)
        self._indicator.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._indicator)

    def set_error(self, message: str = "") -> None:
        if message:
            self._indicator.setText("X")
            self._indicator.setStyleSheet("color: #F44336; font-weight: bold;")
        else:
            self._indicator.setText("")
        self._indicator.setToolTip(message)


class EntityFormDialog(QDialog):
    """Modal form for one catalogue entity.

    Parameters
    ----------
    title : str
        Window title ("New document", "Edit variable" ...).
    validate : callable
        ``validate(name) -> dict[str, str]``; empty means valid.
    with_icon : bool
        Show the icon picker (documents).
    with_required : bool
        Show the "required" checkbox (fields).
    documents : iterable of DocumentType, optional
        Show a document checklist (variables).
    initial : dict, optional
        Values to pre-fill, keyed like :meth:`values`.
    """

    def __init__(
        self,
        title: str,
        validate: Validator,
        parent: QWidget | None = None,
        *,
        with_icon: bool = False,
        with_required: bool = False,
        documents: Iterable | None = None,
        initial: dict[str, Any] | None = None,
    ):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setMinimumWidth(420)
        self._validate = validate
        initial = initial or {}

        layout = QVBoxLayout(self)
        form = QFormLayout()
        layout.addLayout(form)

        self._name = _ValidatedLine()
        self._name.edit.setText(initial.get("name", ""))
        self._name.edit.textChanged.connect(self._clear_errors)
        form.addRow("Name *", self._name)

        self._description = QPlainTextEdit()
        self._description.setMaximumHeight(80)
        self._description.setPlainText(initial.get("description") or "")
        form.addRow("Description", self._description)

        self._icon: QComboBox | None = None
        if with_icon:
            self._icon = QComboBox()
            for icon in DocumentIcon:
                self._icon.addItem(document_icon(icon), icon.value, icon.value)
            current = initial.get("icon", DEFAULT_ICON)
            self._icon.setCurrentIndex(max(0, self._icon.findData(DocumentIcon(current).value)))
            form.addRow("Icon", self._icon)

        self._required: QCheckBox | None = None
        if with_required:
            self._required = QCheckBox("Required")
            self._required.setChecked(bool(initial.get("required", False)))
            form.addRow("", self._required)

        self._documents: QListWidget | None = None
        self._auto_hint: QLabel | None = None
        if documents is not None:
            selected = set(initial.get("document_ids", []))
            self._documents = QListWidget()
            self._documents.setMaximumHeight(180)
            for doc in documents:
                item = QListWidgetItem(document_icon(doc.icon), doc.name)
                item.setData(Qt.ItemDataRole.UserRole, doc.id)
                item.setFlags(item.flags() | Qt.ItemFlag.ItemIsUserCheckable)
                item.setCheckState(
                    Qt.CheckState.Checked if doc.id in selected else Qt.CheckState.Unchecked
                )
                self._documents.addItem(item)
            self._documents.itemChanged.connect(self._update_auto_hint)
            form.addRow("Documents", self._documents)
            self._auto_hint = QLabel(AUTO_SEARCH_HINT)
            self._auto_hint.setWordWrap(True)
            self._auto_hint.setStyleSheet("color: #757575; font-size: 11px;")
            form.addRow("", self._auto_hint)
            self._update_auto_hint()

        self._error = QLabel("")
        self._error.setStyleSheet("color: #F44336;")
        self._error.setVisible(False)
        layout.addWidget(self._error)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def set_name(self, name: str) -> None:
        self._name.edit.setText(name)

    def set_checked_documents(self, document_ids: Iterable[str]) -> None:
        if self._documents is None:
            return
        wanted = set(document_ids)
        for row in range(self._documents.count()):
            item = self._documents.item(row)
            item.setCheckState(
                Qt.CheckState.Checked
                if item.data(Qt.ItemDataRole.UserRole) in wanted
                else Qt.CheckState.Unchecked
            )

    def checked_documents(self) -> list[str]:
        if self._documents is None:
            return []
        return [
            self._documents.item(row).data(Qt.ItemDataRole.UserRole)
            for row in range(self._documents.count())
            if self._documents.item(row).checkState() == Qt.CheckState.Checked
        ]

    def values(self) -> dict[str, Any]:
        values: dict[str, Any] = {
            "name": self._name.edit.text().strip(),
            "description": self._description.toPlainText().strip() or None,
        }
        if self._icon is not None:
            values["icon"] = self._icon.currentData()
        if self._required is not None:
            values["required"] = self._required.isChecked()
        if self._documents is not None:
            values["document_ids"] = self.checked_documents()
        return values

    @property
    def error_text(self) -> str:
        return self._error.text()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def accept(self) -> None:
        errors = self._validate(self._name.edit.text())
        if errors:
            message = errors.get("name", "")
            self._name.set_error(message)
            self._error.setText(message)
            self._error.setVisible(True)
            logger.debug("Form rejected: %s", errors)
            return
        super().accept()

    def _clear_errors(self) -> None:
        self._name.set_error()
        self._error.setText("")
        self._error.setVisible(False)

    def _update_auto_hint(self, *_args) -> None:
        if self._auto_hint is not None:
            self._auto_hint.setVisible(not self.checked_documents())
