"""
rulebook/mentions/codec.py -- Storage text <-> rich content tree.

The rules document is persisted as flat text (the storage format):

    # Documents obligatoires
    Le @[doc:kbis] doit dater de moins de 3 mois.
    Comparer @[var:siren] entre les documents.

and edited as a tree of blocks (paragraphs and single-level headers)
holding text runs and mention atoms.  ``parse`` builds the tree with
labels looked up live from the catalogue; ``serialize`` writes it back
from the stored ids only, so a renamed entity never changes the output.

Round trip:  ``serialize(parse(S)) == normalize(S)``.

Offsets inside a block count one per character of text and one per
mention, which is also how the editor sees a mention: a single atom.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Union

from rulebook.mentions.resolver import NameLookup
from rulebook.mentions.tokens import (
    HEADER_PREFIX,
    MENTION_PATTERN,
    MentionType,
    create_mention_token,
    extract_header_text,
    is_header_line,
)

_BLANK_RUN = re.compile(r"\n{3,}")


class BlockKind(Enum):
    PARAGRAPH = "paragraph"
    HEADER = "header"


@dataclass
class TextNode:
    text: str


@dataclass
class MentionNode:
    type: MentionType
    id: str
    label: str

    @property
    def token(self) -> str:
        return create_mention_token(self.type, self.id)


Inline = Union[TextNode, MentionNode]


@dataclass
class Block:
    kind: BlockKind = BlockKind.PARAGRAPH
    inlines: list = field(default_factory=list)

    @property
    def is_header(self) -> bool:
        return self.kind is BlockKind.HEADER

    @property
    def length(self) -> int:
        """Block length in atoms (characters plus mentions)."""
        return sum(len(n.text) if isinstance(n, TextNode) else 1 for n in self.inlines)

    def atoms(self) -> list:
        """Flatten to a list of single characters and MentionNodes."""
        result: list = []
        for node in self.inlines:
            if isinstance(node, TextNode):
                result.extend(node.text)
            else:
                result.append(node)
        return result

    def set_atoms(self, atoms: Iterable) -> None:
        """Rebuild ``inlines`` from atoms, merging adjacent characters."""
        inlines: list = []
        buffer: list[str] = []
        for atom in atoms:
            if isinstance(atom, MentionNode):
                if buffer:
                    inlines.append(TextNode("".join(buffer)))
                    buffer = []
                inlines.append(atom)
            else:
                buffer.append(atom)
        if buffer:
            inlines.append(TextNode("".join(buffer)))
        self.inlines = inlines

    def mentions(self) -> list[MentionNode]:
        return [n for n in self.inlines if isinstance(n, MentionNode)]


@dataclass
class RichContent:
    blocks: list = field(default_factory=list)

    def mentions(self) -> list[MentionNode]:
        return [m for block in self.blocks for m in block.mentions()]


@dataclass(frozen=True)
class Caret:
    """Position inside a RichContent: block index and atom offset."""
    block: int
    offset: int


# ---------------------------------------------------------------------------
# Parse / serialize
# ---------------------------------------------------------------------------

def normalize(text: str) -> str:
    """Collapse runs of three or more newlines to two and trim the document."""
    return _BLANK_RUN.sub("\n\n", text or "").strip()


def _parse_inlines(line: str, lookup: NameLookup) -> list:
    inlines: list = []
    last = 0
    for match in MENTION_PATTERN.finditer(line):
        if match.start() > last:
            inlines.append(TextNode(line[last:match.start()]))
        resolved = lookup.resolve(match.group(1), match.group(2))
        inlines.append(MentionNode(resolved.type, resolved.id, resolved.name))
        last = match.end()
    if last < len(line):
        inlines.append(TextNode(line[last:]))
    return inlines


def parse(storage: str, documents: Iterable = (), variables: Iterable = ()) -> RichContent:
    """Build the rich tree for *storage*.

    Every line becomes one block.  Unknown ids keep their token and get
    the raw id as label; this never raises.
    """
    lookup = NameLookup(documents, variables)
    blocks = []
    for line in (storage or "").split("\n"):
        if is_header_line(line):
            blocks.append(Block(BlockKind.HEADER, _parse_inlines(extract_header_text(line), lookup)))
        else:
            blocks.append(Block(BlockKind.PARAGRAPH, _parse_inlines(line, lookup)))
    return RichContent(blocks)


def _serialize_inlines(inlines: Iterable) -> str:
    return "".join(n.text if isinstance(n, TextNode) else n.token for n in inlines)


def serialize(content: RichContent) -> str:
    lines = []
    for block in content.blocks:
        text = _serialize_inlines(block.inlines)
        lines.append(HEADER_PREFIX + text if block.is_header else text)
    return normalize("\n".join(lines))


def relabel(content: RichContent, documents: Iterable = (), variables: Iterable = ()) -> RichContent:
    """Copy of *content* with every mention label refreshed from the catalogue."""
    lookup = NameLookup(documents, variables)
    blocks = []
    for block in content.blocks:
        inlines = []
        for node in block.inlines:
            if isinstance(node, MentionNode):
                inlines.append(MentionNode(node.type, node.id, lookup.resolve(node.type, node.id).name))
            else:
                inlines.append(TextNode(node.text))
        blocks.append(Block(block.kind, inlines))
    return RichContent(blocks)


# ---------------------------------------------------------------------------
# Insertion
# ---------------------------------------------------------------------------

def insert_mention(content: RichContent, block_index: int, start: int, end: int, item) -> Caret:
    """Replace atoms ``[start, end)`` of a block with a mention and one space.

    *item* is anything with ``id``, ``name`` and ``type`` (a MentionItem
    from the suggestion session).  The range normally covers the trigger
    character and the typed query.  A space already following the range
    is consumed so that exactly one space follows the mention.  Returns
    the caret right after that space.  *content* is modified in place.
    """
    block = content.blocks[block_index]
    atoms = block.atoms()
    start = max(0, min(start, len(atoms)))
    end = max(start, min(end, len(atoms)))
    if end < len(atoms) and atoms[end] == " ":
        end += 1
    mention = MentionNode(MentionType(item.type), item.id, item.name)
    atoms[start:end] = [mention, " "]
    block.set_atoms(atoms)
    return Caret(block_index, start + 2)
