"""
Tests for rulebook/suggestions.py -- Two-step mention picker state machine.
"""

from unittest.mock import MagicMock

import pytest

from rulebook.mentions.tokens import MentionType
from rulebook.suggestions import (
    TYPE_OPTIONS,
    MentionItem,
    SuggestionKey,
    SuggestionOutcome,
    SuggestionSession,
    SuggestionStep,
)


@pytest.fixture
def session(sample_documents, sample_variables):
    return SuggestionSession(sample_documents, sample_variables)


# ------------------------------------------------------------------
# Type step
# ------------------------------------------------------------------


class TestSelectingType:
    def test_initial_state(self, session):
        assert session.step is SuggestionStep.SELECTING_TYPE
        assert session.outcome is SuggestionOutcome.ACTIVE
        assert session.options == (MentionType.DOC, MentionType.VAR)
        assert session.highlighted == 0
        assert session.filtered_items == []
        assert not session.is_empty

    def test_navigation_wraps_between_two_options(self, session):
        assert session.handle_key(SuggestionKey.DOWN)
        assert session.highlighted == 1
        session.handle_key(SuggestionKey.DOWN)
        assert session.highlighted == 0
        session.handle_key(SuggestionKey.UP)
        assert session.highlighted == 1

    def test_enter_chooses_highlighted_type(self, session):
        session.handle_key(SuggestionKey.DOWN)
        session.handle_key(SuggestionKey.ENTER)
        assert session.step is SuggestionStep.SELECTING_ITEM
        assert session.kind is MentionType.VAR
        assert session.query == ""
        assert session.highlighted == 0

    def test_escape_cancels_interaction(self, session):
        assert session.handle_key(SuggestionKey.ESCAPE)
        assert session.outcome is SuggestionOutcome.CANCELLED
        assert not session.is_active

    def test_backspace_not_handled(self, session):
        assert session.handle_key(SuggestionKey.BACKSPACE) is False
        assert session.is_active

    def test_typing_ignored(self, session):
        assert session.type_text("abc") is False
        assert session.query == ""


# ------------------------------------------------------------------
# Item step
# ------------------------------------------------------------------


class TestSelectingItem:
    def test_documents_in_catalogue_order(self, session):
        session.choose_type(MentionType.DOC)
        assert [i.name for i in session.filtered_items] == ["Extrait KBIS", "RIB", "Pappers"]

    def test_query_filters_case_insensitively(self, session):
        session.choose_type("doc")
        session.type_text("i")
        assert [i.id for i in session.filtered_items] == ["kbis", "rib"]
        session.type_text("B")
        assert [i.id for i in session.filtered_items] == ["rib"]
        assert session.query == "iB"

    def test_typing_resets_highlight(self, session):
        session.choose_type(MentionType.DOC)
        session.handle_key(SuggestionKey.DOWN)
        assert session.highlighted == 1
        session.type_text("r")
        assert session.highlighted == 0

    def test_navigation_wraps_through_filtered_list(self, session):
        session.choose_type(MentionType.DOC)
        session.handle_key(SuggestionKey.UP)
        assert session.highlighted == 2
        session.handle_key(SuggestionKey.DOWN)
        assert session.highlighted == 0

    def test_empty_state(self, session):
        session.choose_type(MentionType.VAR)
        session.type_text("zzz")
        assert session.is_empty
        assert session.handle_key(SuggestionKey.ENTER) is False
        assert session.handle_key(SuggestionKey.DOWN) is False
        assert session.is_active

    def test_backspace_shortens_query(self, session):
        session.choose_type(MentionType.VAR)
        session.type_text("ib")
        session.handle_key(SuggestionKey.BACKSPACE)
        assert session.query == "i"
        assert session.step is SuggestionStep.SELECTING_ITEM

    def test_backspace_on_empty_query_goes_back(self, session):
        session.choose_type(MentionType.VAR)
        assert session.handle_key(SuggestionKey.BACKSPACE)
        assert session.step is SuggestionStep.SELECTING_TYPE
        assert session.kind is None
        assert session.is_active

    def test_escape_goes_back_not_out(self, session):
        session.choose_type(MentionType.DOC)
        session.type_text("ri")
        session.handle_key(SuggestionKey.ESCAPE)
        assert session.step is SuggestionStep.SELECTING_TYPE
        assert session.query == ""
        assert session.highlighted == 0
        assert session.is_active

    def test_hover_moves_highlight(self, session):
        session.choose_type(MentionType.DOC)
        session.hover(2)
        assert session.highlighted == 2
        session.hover(9)
        assert session.highlighted == 2


# ------------------------------------------------------------------
# Commit
# ------------------------------------------------------------------


class TestCommit:
    def test_full_keyboard_flow(self, sample_documents, sample_variables):
        on_commit = MagicMock()
        session = SuggestionSession(sample_documents, sample_variables, on_commit=on_commit)

        session.handle_key(SuggestionKey.DOWN)
        session.handle_key(SuggestionKey.ENTER)
        for ch in "sir":
            session.type_text(ch)
        assert [i.name for i in session.filtered_items] == ["SIREN"]
        assert session.handle_key(SuggestionKey.ENTER)

        expected = MentionItem("siren", "SIREN", MentionType.VAR)
        on_commit.assert_called_once_with(expected)
        assert session.outcome is SuggestionOutcome.COMMITTED
        assert session.committed_item == expected

    def test_choose_item_by_index(self, session):
        session.choose_type(MentionType.DOC)
        assert session.choose_item(1)
        assert session.committed_item.id == "rib"

    def test_choose_item_out_of_range(self, session):
        session.choose_type(MentionType.DOC)
        assert session.choose_item(5) is False
        assert session.is_active

    def test_choose_item_in_type_step(self, session):
        assert session.choose_item(0) is False

    def test_finished_session_ignores_input(self, session):
        session.cancel()
        assert session.handle_key(SuggestionKey.DOWN) is False
        session.choose_type(MentionType.DOC)
        assert session.step is SuggestionStep.SELECTING_TYPE

    def test_restart(self, session):
        session.choose_type(MentionType.DOC)
        session.choose_item(0)
        session.restart()
        assert session.is_active
        assert session.step is SuggestionStep.SELECTING_TYPE
        assert session.committed_item is None

    def test_set_catalog_replaces_candidates(self, session, sample_documents):
        session.set_catalog(sample_documents[:1], [])
        session.choose_type(MentionType.DOC)
        assert [i.id for i in session.filtered_items] == ["kbis"]
        assert len(TYPE_OPTIONS) == 2
