"""
rulebook_ui/paths.py -- Data directory resolution.

Uses platformdirs for the per-user data directory; ``RULEBOOK_DATA_DIR``
and the ``--data-dir`` flag override it.
"""

from __future__ import annotations

import os

from platformdirs import user_data_dir

_APP_NAME = "RulebookConsole"
_APP_AUTHOR = "Rulebook"


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory."""
    path = user_data_dir(_APP_NAME, _APP_AUTHOR)
    os.makedirs(path, exist_ok=True)
    return path


def get_catalog_dir(override: str | None = None) -> str:
    """Return the directory holding the catalogue JSON files.

    Resolution order: explicit *override*, then ``RULEBOOK_DATA_DIR``,
    then ``<user data dir>/catalog``.
    """
    path = override or os.environ.get("RULEBOOK_DATA_DIR") or os.path.join(
        get_user_data_dir(), "catalog"
    )
    path = os.path.abspath(os.path.expanduser(path))
    os.makedirs(path, exist_ok=True)
    return path
