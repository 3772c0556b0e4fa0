"""
rulebook_ui/main_window.py -- Main application window.

The rules editor fills the centre; the catalogue panel sits in a dock on
the left.  Layout is saved/restored across sessions via QSettings.  Status
and error messages arrive through the EventBus.
"""

from __future__ import annotations

import logging
from typing import Any

from PySide6.QtCore import QSettings, Qt
from PySide6.QtGui import QAction, QCloseEvent, QKeySequence
from PySide6.QtWidgets import (
    QDockWidget,
    QMainWindow,
    QMessageBox,
    QStatusBar,
    QWidget,
)

from rulebook import __version__
from rulebook_ui.panels.catalog_panel import CatalogPanel
from rulebook_ui.panels.rules_panel import RulesPanel
from rulebook_ui.services.event_bus import EventBus
from rulebook_ui.settings import Settings

logger = logging.getLogger(__name__)

_ORG_NAME = "Rulebook"
_APP_NAME = "RulebookConsole"


class MainWindow(QMainWindow):
    """Main application window.

    Layout
    ------
    Default arrangement::

        +-----------+-------------------------------+
        | Catalogue |                               |
        | (Left)    |  Rules editor (Center)        |
        |           |                               |
        +-----------+-------------------------------+
    """

    def __init__(
        self,
        store: Any,
        settings: Settings | None = None,
        parent: QWidget | None = None,
        *,
        restore_layout: bool = True,
    ):
        super().__init__(parent)
        self._store = store
        self._app_settings = settings or Settings()
        self._settings = QSettings(_ORG_NAME, _APP_NAME)

        self.setWindowTitle("Validation Rules Console")
        self.setMinimumSize(1024, 700)

        self._rules_panel = RulesPanel(store, self._app_settings)
        self._catalog_panel = CatalogPanel(store)

        self.setCentralWidget(self._rules_panel)
        self._catalog_dock = self._create_dock(
            "Catalogue", self._catalog_panel, Qt.DockWidgetArea.LeftDockWidgetArea
        )

        self._build_menus()

        self._status_bar = QStatusBar()
        self.setStatusBar(self._status_bar)
        self._status_bar.showMessage("Ready")

        self._bus = bus = EventBus.instance()
        bus.status_message.connect(self._on_status_message)
        bus.error_occurred.connect(self._on_error)
        bus.rules_saved.connect(self._on_rules_saved)

        if restore_layout:
            self._restore_layout()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def rules_panel(self) -> RulesPanel:
        return self._rules_panel

    @property
    def catalog_panel(self) -> CatalogPanel:
        return self._catalog_panel

    @property
    def catalog_dock(self) -> QDockWidget:
        return self._catalog_dock

    def start(self) -> None:
        """Load the rules and the catalogue."""
        self._rules_panel.load()
        self._catalog_panel.refresh()

    # ------------------------------------------------------------------
    # Dock creation helper
    # ------------------------------------------------------------------

    def _create_dock(
        self,
        title: str,
        widget: QWidget,
        area: Qt.DockWidgetArea,
    ) -> QDockWidget:
        dock = QDockWidget(title, self)
        dock.setObjectName(f"dock_{title.lower().replace(' ', '_')}")
        dock.setWidget(widget)
        dock.setAllowedAreas(
            Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea
        )
        self.addDockWidget(area, dock)
        return dock

    # ------------------------------------------------------------------
    # Menu bar
    # ------------------------------------------------------------------

    def _build_menus(self) -> None:
        menubar = self.menuBar()

        # --- File menu ---
        file_menu = menubar.addMenu("&File")

        save_action = QAction("Save Rules Now", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self._rules_panel.save_now)
        file_menu.addAction(save_action)

        reload_action = QAction("Reload Catalogue", self)
        reload_action.setShortcut(QKeySequence("F5"))
        reload_action.triggered.connect(self._catalog_panel.refresh)
        file_menu.addAction(reload_action)

        file_menu.addSeparator()

        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # --- View menu ---
        view_menu = menubar.addMenu("&View")
        view_menu.addAction(self._catalog_dock.toggleViewAction())

        search_action = QAction("Search Catalogue", self)
        search_action.setShortcut(QKeySequence("Ctrl+F"))
        search_action.triggered.connect(self._focus_catalog_search)
        view_menu.addAction(search_action)

        view_menu.addSeparator()

        reset_action = QAction("Reset Layout", self)
        reset_action.triggered.connect(self._reset_layout)
        view_menu.addAction(reset_action)

        # --- Help menu ---
        help_menu = menubar.addMenu("&Help")

        about_action = QAction("About", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    def _focus_catalog_search(self) -> None:
        self._catalog_dock.setVisible(True)
        self._catalog_dock.raise_()
        self._catalog_panel.focus_search()

    # ------------------------------------------------------------------
    # Layout save / restore
    # ------------------------------------------------------------------

    def _save_layout(self) -> None:
        self._settings.setValue("geometry", self.saveGeometry())
        self._settings.setValue("windowState", self.saveState())

    def _restore_layout(self) -> None:
        geometry = self._settings.value("geometry")
        if geometry:
            self.restoreGeometry(geometry)

        state = self._settings.value("windowState")
        if state:
            self.restoreState(state)

    def _reset_layout(self) -> None:
        self.removeDockWidget(self._catalog_dock)
        self.addDockWidget(Qt.DockWidgetArea.LeftDockWidgetArea, self._catalog_dock)
        self._catalog_dock.setVisible(True)
        self._status_bar.showMessage("Layout reset to default", 3000)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_status_message(self, message: str) -> None:
        self._status_bar.showMessage(message, 5000)

    def _on_error(self, message: str) -> None:
        logger.error("%s", message)
        self._status_bar.showMessage(f"Error: {message}", 10000)

    def _on_rules_saved(self, _content: str) -> None:
        self._status_bar.showMessage("Rules saved", 3000)

    def _show_about(self) -> None:
        QMessageBox.about(
            self,
            "Validation Rules Console",
            f"Version {__version__}\n\n"
            "Write the rules the document-validation agent applies, and\n"
            "manage the document types, fields and variables they mention.",
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def closeEvent(self, event: QCloseEvent) -> None:
        """Flush the rules, save layout and close."""
        self._rules_panel.shutdown()
        self._save_layout()
        logger.info("Main window closing, layout saved")
        super().closeEvent(event)
