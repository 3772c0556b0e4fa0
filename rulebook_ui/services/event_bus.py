"""
rulebook_ui/services/event_bus.py -- Application-wide event bus using Qt signals.

Singleton that provides typed signals for cross-panel communication.
The catalogue panel and the rules panel never talk to each other
directly; a catalogue edit is announced on the bus and the rules panel
refreshes its mention labels.

Usage::

    from rulebook_ui.services.event_bus import EventBus

    bus = EventBus.instance()
    bus.catalog_changed.connect(my_handler)
    bus.catalog_changed.emit()
"""

from __future__ import annotations

import threading

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """Application-wide signal bus for cross-panel communication.

    Signals
    -------
    catalog_changed()
        A document, field or variable was created, renamed or deleted.
    rules_saved(str)
        The rules document was persisted. Payload is the storage text.
    status_message(str)
        Fired to update the status bar message.
    error_occurred(str)
        Fired when an error needs to be shown to the user.
    """

    catalog_changed = Signal()
    rules_saved = Signal(str)

    status_message = Signal(str)
    error_occurred = Signal(str)

    # Singleton
    _instance: EventBus | None = None
    _lock = threading.Lock()

    @classmethod
    def instance(cls) -> EventBus:
        """Return the singleton EventBus instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.deleteLater()
            cls._instance = None
