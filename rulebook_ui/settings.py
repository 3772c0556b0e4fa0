"""
rulebook_ui/settings.py -- Tunables with environment overrides.

    RULEBOOK_AUTOSAVE_MS      debounce window of the rules autosave (1000)
    RULEBOOK_STORE_LATENCY    simulated store latency in seconds (0.4)
    RULEBOOK_TRIGGER_CHAR     character that opens the mention picker (@)
    RULEBOOK_DATA_DIR         catalogue directory (see paths.py)

Command-line flags in ``main.py`` take precedence over these.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_MS = 1000
DEFAULT_STORE_LATENCY = 0.4
DEFAULT_TRIGGER_CHAR = "@"
SEARCH_DEBOUNCE_MS = 200


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return max(0, int(raw))
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer)", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        logger.warning("Ignoring %s=%r (not a number)", name, raw)
        return default


@dataclass
class Settings:
    autosave_ms: int = DEFAULT_AUTOSAVE_MS
    store_latency: float = DEFAULT_STORE_LATENCY
    trigger_char: str = DEFAULT_TRIGGER_CHAR
    data_dir: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        trigger = os.environ.get("RULEBOOK_TRIGGER_CHAR", DEFAULT_TRIGGER_CHAR)
        if len(trigger) != 1:
            logger.warning("RULEBOOK_TRIGGER_CHAR must be one character, using %r", DEFAULT_TRIGGER_CHAR)
            trigger = DEFAULT_TRIGGER_CHAR
        return cls(
            autosave_ms=_env_int("RULEBOOK_AUTOSAVE_MS", DEFAULT_AUTOSAVE_MS),
            store_latency=_env_float("RULEBOOK_STORE_LATENCY", DEFAULT_STORE_LATENCY),
            trigger_char=trigger,
            data_dir=os.environ.get("RULEBOOK_DATA_DIR") or None,
        )
