"""
rulebook/models/icons.py -- Closed set of document icon identifiers.

Document types carry a symbolic icon name.  Instead of resolving the name
against an icon library at runtime, the catalogue uses this explicit enum
and every renderer maps it through its own table with a default entry.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class DocumentIcon(str, Enum):
    FILE_TEXT = "file-text"
    BUILDING = "building-2"
    LANDMARK = "landmark"
    ID_CARD = "id-card"
    FILE_CHECK = "file-check"
    CHECK_CIRCLE = "check-circle"
    PEN_TOOL = "pen-tool"
    RECEIPT = "receipt"
    SHIELD_CHECK = "shield-check"
    CREDIT_CARD = "credit-card"
    PLUG = "plug"
    FILE_MINUS = "file-minus"


DEFAULT_ICON = DocumentIcon.FILE_TEXT


def resolve_icon(name) -> DocumentIcon:
    """Return the icon for *name*, or the default icon when it is unknown."""
    if isinstance(name, DocumentIcon):
        return name
    try:
        return DocumentIcon(str(name or "").strip().lower())
    except ValueError:
        logger.debug("Unknown icon %r, using %s", name, DEFAULT_ICON.value)
        return DEFAULT_ICON
