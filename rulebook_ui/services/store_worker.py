"""
rulebook_ui/services/store_worker.py -- QThread worker for EntityStore calls.

The store sleeps for its configured latency on every call, so the UI never
calls it on the main thread.  A StoreCall runs exactly one call in a
background thread and reports back through signals, which Qt delivers on
the main thread as long as the receivers are QObject methods.

Usage::

    StoreCall.launch(
        store.rules_context,
        on_success=self._on_loaded,      # bound method of a QObject
        on_failure=self._on_load_failed,
    )
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QThread, Signal, Slot

logger = logging.getLogger(__name__)


class StoreCall(QThread):
    """Background thread running one store call.

    Signals
    -------
    succeeded(object)
        Emitted with the call's return value.
    failed(str)
        Emitted with the error message when the call raised.
    """

    succeeded = Signal(object)
    failed = Signal(str)

    def __init__(self, fn: Callable[..., Any], *args: Any, parent=None, **kwargs: Any):
        super().__init__(parent)
        self._fn = fn
        self._args = args
        self._kwargs = kwargs

    @property
    def name(self) -> str:
        return getattr(self._fn, "__name__", repr(self._fn))

    def run(self) -> None:
        """Thread entry point."""
        try:
            result = self._fn(*self._args, **self._kwargs)
        except Exception as e:
            logger.exception("Store call %s failed", self.name)
            self.failed.emit(str(e) or type(e).__name__)
            return
        self.succeeded.emit(result)

    # ------------------------------------------------------------------
    # Fire-and-forget helpers
    # ------------------------------------------------------------------

    @classmethod
    def launch(
        cls,
        fn: Callable[..., Any],
        *args: Any,
        on_success: Optional[Callable[[Any], None]] = None,
        on_failure: Optional[Callable[[str], None]] = None,
        **kwargs: Any,
    ) -> "StoreCall":
        """Start *fn* on a new thread; the call is kept alive until it ends."""
        call = cls(fn, *args, **kwargs)
        if on_success is not None:
            call.succeeded.connect(on_success)
        if on_failure is not None:
            call.failed.connect(on_failure)
        _CallRegistry.instance().track(call)
        call.start()
        return call

    @classmethod
    def wait_all(cls, timeout_ms: int = 5000) -> bool:
        """Block until every launched call has finished (used at shutdown)."""
        return _CallRegistry.instance().wait_all(timeout_ms)

    @classmethod
    def running_count(cls) -> int:
        return _CallRegistry.instance().count()


class _CallRegistry(QObject):
    """Holds launched calls until their thread has finished."""

    _instance: _CallRegistry | None = None
    _lock = threading.Lock()

    def __init__(self):
        super().__init__()
        self._calls: set[StoreCall] = set()

    @classmethod
    def instance(cls) -> _CallRegistry:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def track(self, call: StoreCall) -> None:
        self._calls.add(call)
        call.finished.connect(self._release)

    def count(self) -> int:
        return sum(1 for call in self._calls if call.isRunning())

    def wait_all(self, timeout_ms: int) -> bool:
        ok = True
        for call in list(self._calls):
            ok = call.wait(timeout_ms) and ok
        return ok

    @Slot()
    def _release(self) -> None:
        call = self.sender()
        if isinstance(call, StoreCall):
            call.wait()
            self._calls.discard(call)
