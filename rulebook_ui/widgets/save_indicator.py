"""
rulebook_ui/widgets/save_indicator.py -- Autosave status label.
"""

from __future__ import annotations

from datetime import datetime

from PySide6.QtWidgets import QLabel, QWidget

from rulebook_ui.services.autosave import SaveStatus

STATUS_TEXT = {
    SaveStatus.SAVED: "Saved",
    SaveStatus.SAVING: "Saving...",
    SaveStatus.UNSAVED: "Unsaved changes",
}

_STATUS_STYLE = {
    SaveStatus.SAVED: "color: #2e7d32;",
    SaveStatus.SAVING: "color: #757575; font-style: italic;",
    SaveStatus.UNSAVED: "color: #ef6c00; font-weight: bold;",
}


class SaveIndicator(QLabel):
    """Shows the AutosaveController status; connect ``status_changed`` to
    :meth:`set_status`."""

    def __init__(self, parent: QWidget | None = None):
        super().__init__(parent)
        self.setObjectName("saveIndicator")
        self._status = SaveStatus.SAVED
        self._last_saved: datetime | None = None
        self._render()

    @property
    def status(self) -> SaveStatus:
        return self._status

    def set_status(self, status: str) -> None:
        self._status = SaveStatus(status)
        self._render()

    def set_last_saved(self, when: datetime | None) -> None:
        self._last_saved = when
        self._render()

    def _render(self) -> None:
        self.setText(STATUS_TEXT[self._status])
        self.setStyleSheet(_STATUS_STYLE[self._status])
        if self._last_saved is not None:
            local = self._last_saved.astimezone()
            self.setToolTip(f"Last saved {local:%d/%m/%Y %H:%M:%S}")
        else:
            self.setToolTip("")
