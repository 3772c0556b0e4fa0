"""
rulebook/mentions/resolver.py -- Resolve mention tokens against the catalogue.

Mentions are weak references: the entity they name may have been renamed
or deleted since the rules were written.  A dangling mention is a normal
condition here, never an error; it resolves with the raw id standing in
for the name.  Only a token that is not ``@[doc:ID]``/``@[var:ID]`` at all
fails to resolve.

Usage:
    from rulebook.mentions.resolver import scan_content

    for part in scan_content(rules.content, documents, variables):
        if part.mention is None:
            print(part.text, end="")
        else:
            print(f"[{part.mention.name}]", end="")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from rulebook.mentions.tokens import MENTION_PATTERN, MentionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedMention:
    """A mention token resolved against the current catalogue."""
    type: MentionType
    id: str
    name: str
    dangling: bool = False


@dataclass(frozen=True)
class ContentPart:
    """One segment of scanned content: plain text, or a mention."""
    text: str
    mention: Optional[ParsedMention] = None

    @property
    def is_mention(self) -> bool:
        return self.mention is not None


def _names_by_id(entities: Iterable) -> dict[str, str]:
    return {entity.id: entity.name for entity in entities}


class NameLookup:
    """Id to name tables for both mention kinds.

    Build once per render pass and reuse; the tables are a snapshot of the
    entity lists passed in.
    """

    def __init__(self, documents: Iterable = (), variables: Iterable = ()):
        self._tables = {
            MentionType.DOC: _names_by_id(documents),
            MentionType.VAR: _names_by_id(variables),
        }

    def name(self, mention_type, mention_id: str) -> Optional[str]:
        return self._tables[MentionType(mention_type)].get(mention_id)

    def resolve(self, mention_type, mention_id: str) -> ParsedMention:
        mention_type = MentionType(mention_type)
        name = self.name(mention_type, mention_id)
        if name is None:
            return ParsedMention(mention_type, mention_id, mention_id, dangling=True)
        return ParsedMention(mention_type, mention_id, name)


def parse_mention_token(
    token: str,
    documents: Iterable = (),
    variables: Iterable = (),
) -> Optional[ParsedMention]:
    """Resolve a single ``@[type:id]`` token.

    Returns ``None`` when *token* is not exactly one well-formed token.
    """
    match = MENTION_PATTERN.fullmatch(token or "")
    if match is None:
        return None
    return NameLookup(documents, variables).resolve(match.group(1), match.group(2))


def scan_content(
    content: str,
    documents: Iterable = (),
    variables: Iterable = (),
) -> list[ContentPart]:
    """Split storage text into alternating text and mention parts.

    Text parts keep newlines and header markers verbatim; read-only
    previews decide how to render them.
    """
    lookup = NameLookup(documents, variables)
    parts: list[ContentPart] = []
    last = 0
    for match in MENTION_PATTERN.finditer(content or ""):
        if match.start() > last:
            parts.append(ContentPart(content[last:match.start()]))
        mention = lookup.resolve(match.group(1), match.group(2))
        parts.append(ContentPart(mention.name, mention))
        last = match.end()
    if last < len(content or ""):
        parts.append(ContentPart(content[last:]))
    return parts


def find_mentions(content: str) -> list[tuple[MentionType, str]]:
    """Every ``(type, id)`` pair in *content*, in order, repeats included."""
    return [
        (MentionType(m.group(1)), m.group(2))
        for m in MENTION_PATTERN.finditer(content or "")
    ]


def dangling_mentions(
    content: str,
    documents: Iterable = (),
    variables: Iterable = (),
) -> list[tuple[MentionType, str]]:
    """Distinct mentions whose id matches no current entity, in first-seen order."""
    lookup = NameLookup(documents, variables)
    seen: set[tuple[MentionType, str]] = set()
    result = []
    for pair in find_mentions(content):
        if pair in seen:
            continue
        seen.add(pair)
        if lookup.name(*pair) is None:
            result.append(pair)
    return result
