"""
rulebook/mentions/ -- The rules text model.

Submodules:
    tokens      Token grammar (``@[doc:ID]``, ``@[var:ID]``, ``# `` headers).
    resolver    Token -> named descriptor, content scanning, dangling refs.
    codec       Storage text <-> rich block/inline tree, mention insertion.
"""

from rulebook.mentions.codec import (
    Block,
    BlockKind,
    Caret,
    MentionNode,
    RichContent,
    TextNode,
    insert_mention,
    normalize,
    parse,
    relabel,
    serialize,
)
from rulebook.mentions.resolver import (
    ContentPart,
    ParsedMention,
    dangling_mentions,
    find_mentions,
    parse_mention_token,
    scan_content,
)
from rulebook.mentions.tokens import (
    MentionType,
    create_mention_token,
    extract_header_text,
    is_header_line,
)

__all__ = [
    "Block",
    "BlockKind",
    "Caret",
    "ContentPart",
    "MentionNode",
    "MentionType",
    "ParsedMention",
    "RichContent",
    "TextNode",
    "create_mention_token",
    "dangling_mentions",
    "extract_header_text",
    "find_mentions",
    "insert_mention",
    "is_header_line",
    "normalize",
    "parse",
    "parse_mention_token",
    "relabel",
    "scan_content",
    "serialize",
]
