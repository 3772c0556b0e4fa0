"""
rulebook_ui/main.py -- Application entry point.

Builds the EntityStore, initializes the QApplication, applies the theme,
creates the MainWindow, and runs the event loop.

Usage::

    python -m rulebook_ui.main
    python -m rulebook_ui.main --in-memory --latency 0
    rulebook-console --data-dir ~/rules-catalog
"""

from __future__ import annotations

import os
os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")

import argparse
import logging
import sys
import traceback
from typing import Sequence

from rulebook.entity_store import EntityStore
from rulebook_ui.paths import get_catalog_dir
from rulebook_ui.settings import Settings


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the desktop application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _global_exception_hook(exc_type, exc_value, exc_tb):
    """Last-resort handler for uncaught exceptions.

    Logs the traceback and shows a message box (if a QApplication exists).
    """
    logger = logging.getLogger("rulebook_ui")
    logger.critical(
        "Uncaught exception: %s",
        "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
    )

    from PySide6.QtWidgets import QApplication, QMessageBox
    if QApplication.instance() is not None:
        QMessageBox.critical(
            None,
            "Unexpected Error",
            f"An unexpected error occurred:\n\n{exc_value}\n\n"
            "The application will attempt to continue.\n"
            "Please check the logs for details.",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rulebook-console",
        description="Edit the validation rules and the document/variable catalogue.",
    )
    parser.add_argument("--data-dir", help="catalogue directory (default: per-user data dir)")
    parser.add_argument(
        "--in-memory", action="store_true",
        help="keep the catalogue in memory; nothing is written to disk",
    )
    parser.add_argument(
        "--latency", type=float, default=None,
        help="simulated store latency in seconds",
    )
    parser.add_argument(
        "--autosave-ms", type=int, default=None,
        help="autosave debounce window in milliseconds",
    )
    parser.add_argument("--no-seed", action="store_true", help="start from an empty catalogue")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line flags applied on top."""
    settings = Settings.from_env()
    if args.latency is not None:
        settings.store_latency = max(0.0, args.latency)
    if args.autosave_ms is not None:
        settings.autosave_ms = max(0, args.autosave_ms)
    if args.data_dir:
        settings.data_dir = args.data_dir
    return settings


def build_store(args: argparse.Namespace, settings: Settings) -> EntityStore:
    seed = not args.no_seed
    if args.in_memory:
        return EntityStore.in_memory(seed=seed, latency=settings.store_latency)
    return EntityStore.from_directory(
        get_catalog_dir(settings.data_dir), seed=seed, latency=settings.store_latency
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Launch the Validation Rules Console."""
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    logger = logging.getLogger("rulebook_ui")
    logger.info("Starting Validation Rules Console")

    sys.excepthook = _global_exception_hook

    settings = resolve_settings(args)
    store = build_store(args, settings)
    logger.info(
        "Store ready (%s, latency %.2fs, autosave %dms)",
        "in memory" if args.in_memory else get_catalog_dir(settings.data_dir),
        settings.store_latency,
        settings.autosave_ms,
    )

    # Must create QApplication before anything else Qt-related
    from PySide6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication(sys.argv[:1])

    from rulebook_ui.theme.theme import apply_theme
    apply_theme(app)

    from rulebook_ui.main_window import MainWindow
    window = MainWindow(store, settings)
    window.show()
    window.start()
    logger.info("Main window displayed")

    exit_code = app.exec()

    logger.info("Goodbye!")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
