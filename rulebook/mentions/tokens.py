"""
rulebook/mentions/tokens.py -- Lexical layer of the rules storage format.

    @[doc:ID]   mention of a document type
    @[var:ID]   mention of a variable
    # Title     header line (hash, space, text)

IDs are opaque and never contain ``]``.
"""

from __future__ import annotations

import re
from enum import Enum


class MentionType(str, Enum):
    DOC = "doc"
    VAR = "var"


HEADER_PREFIX = "# "

# One token anywhere in a line; group 1 is the type, group 2 the id.
MENTION_PATTERN = re.compile(r"@\[(doc|var):([^\]\n]+)\]")


def create_mention_token(mention_type, mention_id: str) -> str:
    return f"@[{MentionType(mention_type).value}:{mention_id}]"


def is_header_line(line: str) -> bool:
    """True for ``# Title`` lines.  The prefix must start the line."""
    return line.startswith(HEADER_PREFIX)


def extract_header_text(line: str) -> str:
    if is_header_line(line):
        return line[len(HEADER_PREFIX):]
    return line
