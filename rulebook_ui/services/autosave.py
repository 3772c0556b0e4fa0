"""
rulebook_ui/services/autosave.py -- Debounced autosave for the rules document.

The editor reports every change with ``content_changed(text)``.  The
controller restarts a single-shot QTimer on each change that differs from
the last saved text (trailing-edge debounce), and when the editor has been
quiet for ``interval_ms`` it hands the latest text to ``saver`` on a
StoreCall thread.

    SAVED --edit--> UNSAVED --quiet--> SAVING --ok--> SAVED
                                              --error--> UNSAVED

Only one save runs at a time.  Text typed while a save is in flight is
kept and saved after it, if it still differs from what was just saved.
``flush_and_wait()`` drains both before the window closes.
Content equal to the saved baseline never starts the timer, so a
formatting-only round trip through the editor does not save.

Usage::

    autosave = AutosaveController(store.save_rules, interval_ms=1000,
                                  initial_content=rules.content)
    editor.contentChanged.connect(autosave.content_changed)
    autosave.status_changed.connect(indicator.set_status)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from PySide6.QtCore import QCoreApplication, QObject, QTimer, Signal, Slot

from rulebook_ui.services.store_worker import StoreCall

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    SAVED = "saved"
    UNSAVED = "unsaved"
    SAVING = "saving"


class AutosaveController(QObject):
    """Debounces edits and serializes writes through *saver*.

    Signals
    -------
    status_changed(str)
        Emitted with the ``SaveStatus`` value whenever the status changes.
    saved(str)
        Emitted with the text that was just persisted.
    save_failed(str)
        Emitted with the error message of a failed save.
    """

    status_changed = Signal(str)
    saved = Signal(str)
    save_failed = Signal(str)

    def __init__(
        self,
        saver: Callable[[str], Any],
        interval_ms: int = 1000,
        initial_content: str = "",
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self._saver = saver
        self._baseline = initial_content
        self._pending: Optional[str] = None
        self._in_flight: Optional[str] = None
        self._call: Optional[StoreCall] = None
        self._status = SaveStatus.SAVED
        self._detached = False

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._start_save)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def baseline(self) -> str:
        """The last content known to be persisted."""
        return self._baseline

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    @property
    def is_pending(self) -> bool:
        """True while the debounce timer is running."""
        return self._timer.isActive()

    @property
    def is_saving(self) -> bool:
        return self._in_flight is not None

    def _set_status(self, status: SaveStatus) -> None:
        if self._detached or status is self._status:
            return
        self._status = status
        self.status_changed.emit(status.value)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def reset(self, content: str) -> None:
        """Adopt *content* as the saved baseline (after a fresh load)."""
        self._timer.stop()
        self._pending = None
        self._baseline = content
        if self._in_flight is None:
            self._set_status(SaveStatus.SAVED)

    @Slot(str)
    def content_changed(self, content: str) -> None:
        if self._detached:
            return
        if content == self._baseline and self._in_flight is None:
            if self._timer.isActive() or self._pending is not None:
                self._timer.stop()
                self._pending = None
                self._set_status(SaveStatus.SAVED)
            return

        self._pending = content
        if self._in_flight is None:
            self._set_status(SaveStatus.UNSAVED)
        self._timer.start()

    def flush(self) -> None:
        """Save pending content now instead of waiting for the timer."""
        if self._detached:
            return
        self._timer.stop()
        self._start_save()

    def flush_and_wait(self, timeout_ms: int = 5000) -> bool:
        """Save everything the editor holds and block until it is persisted.

        Used when the window closes.  Text typed while a save was in flight
        is saved right after it, so this loops until nothing is pending or
        in flight.  Returns False on a failed save or a timeout.
        """
        if self._detached:
            return False
        self._timer.stop()
        self._start_save()
        while self._call is not None:
            call = self._call
            if not call.wait(timeout_ms):
                logger.warning("Autosave still running after %d ms", timeout_ms)
                return False
            # Results are queued to this object; deliver them now.
            QCoreApplication.sendPostedEvents(self, 0)
            if self._call is call:
                return False
        return self._pending is None and self._in_flight is None

    def detach(self) -> None:
        """Stop scheduling saves and go silent.

        A save already in flight still completes; its result is not
        reported.
        """
        self._timer.stop()
        self._detached = True

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    @Slot()
    def _start_save(self) -> None:
        if self._in_flight is not None or self._pending is None:
            return
        if self._pending == self._baseline:
            self._pending = None
            self._set_status(SaveStatus.SAVED)
            return

        content, self._pending = self._pending, None
        self._in_flight = content
        self._set_status(SaveStatus.SAVING)
        logger.debug("Autosaving %d chars", len(content))
        self._call = StoreCall.launch(
            self._saver,
            content,
            on_success=self._on_save_succeeded,
            on_failure=self._on_save_failed,
        )

    @Slot(object)
    def _on_save_succeeded(self, _result: object) -> None:
        content, self._in_flight = self._in_flight, None
        self._call = None
        self._baseline = content
        if self._detached:
            return
        self.saved.emit(content)

        if self._pending is not None and self._pending != self._baseline:
            if self._timer.isActive():
                self._set_status(SaveStatus.UNSAVED)
            else:
                self._start_save()
            return
        # Nothing newer, or the editor is back at what was just saved.
        self._timer.stop()
        self._pending = None
        self._set_status(SaveStatus.SAVED)

    @Slot(str)
    def _on_save_failed(self, message: str) -> None:
        content, self._in_flight = self._in_flight, None
        self._call = None
        logger.warning("Autosave failed, content kept as unsaved: %s", message)
        if self._detached:
            return
        newer = self._pending is not None
        if not newer:
            self._pending = content
        self._set_status(SaveStatus.UNSAVED)
        self.save_failed.emit(message)
        if newer and not self._timer.isActive():
            self._start_save()
