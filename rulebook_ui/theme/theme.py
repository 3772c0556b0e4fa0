"""
rulebook_ui/theme/theme.py -- Application theme.

Applies qt-material's light_blue theme with a few QSS overrides for the
rules editor and catalogue lists.  Falls back to the Fusion style when
qt-material cannot be applied.

Usage::

    from rulebook_ui.theme.theme import apply_theme
    apply_theme(app)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PySide6.QtWidgets import QApplication

logger = logging.getLogger(__name__)

# Mention pill colours, shared by the editor and the previews.
DOCUMENT_COLOR = "#2e7d32"
DOCUMENT_BACKGROUND = "#e8f5e9"
VARIABLE_COLOR = "#1565c0"
VARIABLE_BACKGROUND = "#e3f2fd"
MUTED_COLOR = "#757575"

_CUSTOM_QSS = """
/* Rules editor */
QTextEdit#rulesEditor {
    font-size: 14px;
    padding: 8px;
}

/* Save indicator */
QLabel#saveIndicator {
    font-size: 12px;
    padding: 2px 8px;
}

/* Catalogue lists */
QListView {
    font-size: 13px;
}

QStatusBar {
    font-size: 12px;
}

QToolTip {
    padding: 4px 8px;
    font-size: 12px;
}

QLineEdit[placeholderText] {
    font-style: italic;
}
"""


def apply_theme(app: "QApplication") -> None:
    """Apply the material theme with custom overrides.

    Parameters
    ----------
    app : QApplication
        The application instance to theme.
    """
    try:
        from qt_material import apply_stylesheet
        apply_stylesheet(app, theme="light_blue.xml", invert_secondary=True)
        logger.info("Applied qt-material light_blue theme")
    except Exception:
        logger.warning("qt-material theme failed, falling back to Fusion", exc_info=True)
        from PySide6.QtWidgets import QApplication
        QApplication.setStyle("Fusion")

    existing = app.styleSheet() or ""
    app.setStyleSheet(existing + _CUSTOM_QSS)
