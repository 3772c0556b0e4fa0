"""
Tests for rulebook/mentions/codec.py -- Storage text <-> rich content.

Validates:
    - Round trip serialize(parse(S)) == normalize(S), including random input
    - Labels come from the catalogue but never reach the storage text
    - Dangling mentions keep their token and show the raw id
    - Header detection
    - Mention insertion and the single trailing space
"""

import random

import pytest

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
from rulebook.mentions.tokens import MentionType
from rulebook.models.base import DocumentType, Variable
from rulebook.suggestions import MentionItem


SAMPLE = (
    "# Documents obligatoires\n"
    "Le @[doc:kbis] doit dater de moins de 3 mois.\n"
    "\n"
    "Comparer @[var:siren] entre @[doc:kbis] et @[doc:pappers]."
)


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_collapses_blank_runs(self):
        assert normalize("a\n\n\n\nb") == "a\n\nb"

    def test_trims_document(self):
        assert normalize("\n\n  a\nb  \n\n") == "a\nb"

    def test_keeps_single_blank_line(self):
        assert normalize("a\n\nb") == "a\n\nb"

    def test_idempotent(self):
        text = "\n\n# t\n\n\n\nx  \n\n\n"
        assert normalize(normalize(text)) == normalize(text)

    def test_empty(self):
        assert normalize("") == ""
        assert normalize(None) == ""


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------

class TestParse:
    def test_blocks_and_kinds(self, sample_documents, sample_variables):
        content = parse(SAMPLE, sample_documents, sample_variables)
        kinds = [b.kind for b in content.blocks]
        assert kinds == [BlockKind.HEADER, BlockKind.PARAGRAPH, BlockKind.PARAGRAPH, BlockKind.PARAGRAPH]
        assert content.blocks[0].inlines == [TextNode("Documents obligatoires")]
        assert content.blocks[2].inlines == []

    def test_mentions_get_catalogue_labels(self, sample_documents, sample_variables):
        content = parse(SAMPLE, sample_documents, sample_variables)
        labels = [(m.type, m.id, m.label) for m in content.mentions()]
        assert labels == [
            (MentionType.DOC, "kbis", "Extrait KBIS"),
            (MentionType.VAR, "siren", "SIREN"),
            (MentionType.DOC, "kbis", "Extrait KBIS"),
            (MentionType.DOC, "pappers", "Pappers"),
        ]

    def test_dangling_mention_uses_raw_id(self):
        content = parse("Voir @[var:ancien_id].")
        mention = content.mentions()[0]
        assert mention.label == "ancien_id"
        assert serialize(content) == "Voir @[var:ancien_id]."

    def test_header_requires_hash_and_space(self):
        content = parse("#Titre\n# Titre\n ## x")
        assert [b.kind for b in content.blocks] == [
            BlockKind.PARAGRAPH, BlockKind.HEADER, BlockKind.PARAGRAPH,
        ]

    def test_mention_inside_header(self, sample_documents):
        content = parse("# Pièces @[doc:rib]", sample_documents)
        header = content.blocks[0]
        assert header.is_header
        assert header.inlines[1] == MentionNode(MentionType.DOC, "rib", "RIB")

    def test_malformed_tokens_stay_text(self):
        text = "@[doc:] @[file:x] @doc:kbis @[var:open"
        content = parse(text)
        assert content.mentions() == []
        assert serialize(content) == text

    def test_block_length_counts_mentions_as_one(self, sample_documents):
        block = parse("ab @[doc:kbis] c", sample_documents).blocks[0]
        assert block.length == 6


# ---------------------------------------------------------------------------
# serialize / round trip
# ---------------------------------------------------------------------------

_PIECES = [
    "Le ", "dossier", " ", "é", "\n", "\n\n\n", "# ", "#", "@", "[", "]", ":",
    "@[doc:kbis]", "@[var:siren]", "@[doc:gone]", "@[var:a b]", "@[doc:", "\t",
]


def _random_storage(rng: random.Random) -> str:
    return "".join(rng.choice(_PIECES) for _ in range(rng.randint(0, 40)))


class TestRoundTrip:
    def test_sample(self, sample_documents, sample_variables):
        assert serialize(parse(SAMPLE, sample_documents, sample_variables)) == SAMPLE

    def test_random_documents(self, sample_documents, sample_variables):
        rng = random.Random(20240117)
        for _ in range(500):
            storage = _random_storage(rng)
            content = parse(storage, sample_documents, sample_variables)
            assert serialize(content) == normalize(storage), repr(storage)

    def test_round_trip_without_catalogue(self):
        rng = random.Random(7)
        for _ in range(200):
            storage = _random_storage(rng)
            assert serialize(parse(storage)) == normalize(storage)

    def test_renaming_never_changes_storage(self, sample_documents, sample_variables):
        content = parse(SAMPLE, sample_documents, sample_variables)
        renamed_docs = [d.model_copy(update={"name": d.name + " (v2)"}) for d in sample_documents]
        renamed_vars = [v.model_copy(update={"name": "Numéro SIREN"}) for v in sample_variables]
        relabelled = relabel(content, renamed_docs, renamed_vars)

        assert relabelled.mentions()[0].label == "Extrait KBIS (v2)"
        assert relabelled.mentions()[1].label == "Numéro SIREN"
        assert serialize(relabelled) == serialize(content) == SAMPLE

    def test_deleted_entity_relabels_to_id(self, sample_documents, sample_variables):
        content = parse(SAMPLE, sample_documents, sample_variables)
        remaining = [d for d in sample_documents if d.id != "kbis"]
        relabelled = relabel(content, remaining, sample_variables)
        assert relabelled.mentions()[0].label == "kbis"
        assert serialize(relabelled) == SAMPLE

    def test_serialize_normalizes(self):
        content = RichContent([
            Block(BlockKind.PARAGRAPH, []),
            Block(BlockKind.HEADER, [TextNode("Titre")]),
            Block(BlockKind.PARAGRAPH, []),
            Block(BlockKind.PARAGRAPH, []),
            Block(BlockKind.PARAGRAPH, []),
            Block(BlockKind.PARAGRAPH, [TextNode("x")]),
            Block(BlockKind.PARAGRAPH, []),
        ])
        assert serialize(content) == "# Titre\n\nx"


# ---------------------------------------------------------------------------
# insert_mention
# ---------------------------------------------------------------------------

class TestInsertMention:
    ITEM = MentionItem("kbis", "Extrait KBIS", MentionType.DOC)

    def test_replaces_trigger_and_query(self):
        content = parse("Le @kb doit dater")
        caret = insert_mention(content, 0, 3, 6, self.ITEM)
        assert serialize(content) == "Le @[doc:kbis] doit dater"
        assert caret == Caret(0, 5)

    def test_at_end_of_line_adds_one_space(self):
        content = parse("Voir @")
        caret = insert_mention(content, 0, 5, 6, self.ITEM)
        assert content.blocks[0].atoms()[-1] == " "
        assert caret == Caret(0, 7)
        assert caret.offset == content.blocks[0].length

    def test_consumes_only_one_following_space(self):
        content = parse("a @  b")
        insert_mention(content, 0, 2, 3, self.ITEM)
        assert serialize(content) == "a @[doc:kbis]  b"

    def test_clamps_out_of_range(self):
        content = parse("abc")
        caret = insert_mention(content, 0, 10, 20, self.ITEM)
        assert serialize(content) == "abc@[doc:kbis]"
        assert caret == Caret(0, 5)

    def test_keeps_other_blocks(self, sample_documents):
        content = parse("# Titre\n@", sample_documents)
        insert_mention(content, 1, 0, 1, MentionItem("rib", "RIB", MentionType.DOC))
        assert serialize(content) == "# Titre\n@[doc:rib]"
        assert content.blocks[1].inlines[0].label == "RIB"

    def test_item_type_may_be_a_string(self):
        content = parse("@")
        insert_mention(content, 0, 0, 1, MentionItem("siren", "SIREN", "var"))
        assert serialize(content) == "@[var:siren]"

    @pytest.mark.parametrize("start,end", [(0, 0), (1, 1)])
    def test_empty_range_inserts(self, start, end):
        content = parse("xy")
        insert_mention(content, 0, start, end, self.ITEM)
        assert len(content.mentions()) == 1


class TestBlockAtoms:
    def test_set_atoms_merges_text(self):
        block = Block()
        mention = MentionNode(MentionType.VAR, "siren", "SIREN")
        block.set_atoms(["a", "b", mention, " ", "c"])
        assert block.inlines == [TextNode("ab"), mention, TextNode(" c")]

    def test_atoms_round_trip(self, sample_documents, sample_variables):
        block = parse(SAMPLE, sample_documents, sample_variables).blocks[3]
        again = Block(block.kind)
        again.set_atoms(block.atoms())
        assert again.inlines == block.inlines


def test_document_and_variable_fixtures_are_models(sample_documents, sample_variables):
    assert all(isinstance(d, DocumentType) for d in sample_documents)
    assert all(isinstance(v, Variable) for v in sample_variables)
