"""
rulebook_ui/widgets/loading_overlay.py -- Loading overlay for panels.

Covers a widget with a translucent layer and an animated message while a
StoreCall is running, so the panel reads as "pending" instead of empty.
"""

from __future__ import annotations

from PySide6.QtCore import QEvent, Qt, QTimer
from PySide6.QtGui import QColor, QPainter
from PySide6.QtWidgets import QLabel, QVBoxLayout, QWidget


class LoadingOverlay(QWidget):
    """Translucent overlay tracking its parent's geometry.

    Usage::

        overlay = LoadingOverlay(self._list)
        overlay.show_loading("Loading documents...")
        # ... in the StoreCall callback ...
        overlay.hide_loading()
    """

    _FRAMES = ["", ".", "..", "..."]

    def __init__(self, parent: QWidget):
        super().__init__(parent)
        self.setVisible(False)
        parent.installEventFilter(self)

        layout = QVBoxLayout(self)
        layout.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._label = QLabel("")
        self._label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._label.setStyleSheet(
            "color: #424242; font-size: 13px; background: transparent;"
        )
        layout.addWidget(self._label)

        self._message = ""
        self._frame = 0
        self._timer = QTimer(self)
        self._timer.setInterval(300)
        self._timer.timeout.connect(self._tick)

    @property
    def message(self) -> str:
        return self._message

    def is_loading(self) -> bool:
        return self._timer.isActive()

    def show_loading(self, message: str = "Loading") -> None:
        self._message = message
        self._frame = 0
        self._update_text()
        self.setGeometry(self.parent().rect())
        self.setVisible(True)
        self.raise_()
        self._timer.start()

    def hide_loading(self) -> None:
        self._timer.stop()
        self.setVisible(False)

    def _tick(self) -> None:
        self._frame = (self._frame + 1) % len(self._FRAMES)
        self._update_text()

    def _update_text(self) -> None:
        self._label.setText(f"{self._message}{self._FRAMES[self._frame]}")

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(255, 255, 255, 170))
        painter.end()
        super().paintEvent(event)

    def eventFilter(self, obj, event) -> bool:
        if obj is self.parent() and event.type() == QEvent.Type.Resize and self.isVisible():
            self.setGeometry(self.parent().rect())
        return super().eventFilter(obj, event)
