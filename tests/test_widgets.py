"""
Tests for rulebook_ui/widgets/ -- SaveIndicator, EntityFormDialog,
LoadingOverlay, MentionPopup, HelpDrawer, icon table.

All tests requiring a visible widget use the qtbot fixture from pytest-qt.
"""

from datetime import datetime, timezone

import pytest
from PySide6.QtWidgets import QDialog, QWidget

from rulebook.models.icons import DEFAULT_ICON, DocumentIcon
from rulebook.models.validators import (
    DUPLICATE_DOCUMENT_MESSAGE,
    REQUIRED_MESSAGE,
    NameIndex,
    validate_document_input,
    validate_field_input,
)
from rulebook.mentions.codec import BlockKind, parse
from rulebook.mentions.tokens import MentionType
from rulebook.suggestions import SuggestionSession
from rulebook_ui.services.autosave import SaveStatus
from rulebook_ui.services.event_bus import EventBus
from rulebook_ui.widgets.form_dialog import EntityFormDialog
from rulebook_ui.widgets.help_drawer import HelpDrawer, render_preview_html
from rulebook_ui.widgets.icons import ICON_PIXMAPS, pixmap_for
from rulebook_ui.widgets.loading_overlay import LoadingOverlay
from rulebook_ui.widgets.mention_popup import MentionPopup
from rulebook_ui.widgets.save_indicator import STATUS_TEXT, SaveIndicator


@pytest.fixture(autouse=True)
def _reset_event_bus():
    EventBus.reset()
    yield
    EventBus.reset()


# ==================================================================
# SaveIndicator
# ==================================================================


class TestSaveIndicator:
    def test_initially_saved(self, qtbot):
        indicator = SaveIndicator()
        qtbot.addWidget(indicator)
        assert indicator.status is SaveStatus.SAVED
        assert indicator.text() == "Saved"

    @pytest.mark.parametrize("status", list(SaveStatus))
    def test_every_status_has_text(self, qtbot, status):
        indicator = SaveIndicator()
        qtbot.addWidget(indicator)
        indicator.set_status(status.value)
        assert indicator.text() == STATUS_TEXT[status]

    def test_last_saved_tooltip(self, qtbot):
        indicator = SaveIndicator()
        qtbot.addWidget(indicator)
        indicator.set_last_saved(datetime(2024, 1, 17, 9, 30, tzinfo=timezone.utc))
        assert indicator.toolTip().startswith("Last saved ")


# ==================================================================
# EntityFormDialog
# ==================================================================


class TestEntityFormDialog:
    def _document_dialog(self, qtbot, sample_documents, **kwargs):
        index = NameIndex(sample_documents)
        dialog = EntityFormDialog(
            "New document",
            lambda name: validate_document_input(index, name, exclude_id=kwargs.get("exclude_id")),
            with_icon=True,
            initial=kwargs.get("initial"),
        )
        qtbot.addWidget(dialog)
        return dialog

    def test_blank_name_keeps_dialog_open(self, qtbot, sample_documents):
        dialog = self._document_dialog(qtbot, sample_documents)
        dialog.accept()
        assert dialog.result() != QDialog.DialogCode.Accepted
        assert dialog.error_text == REQUIRED_MESSAGE

    def test_duplicate_name_rejected(self, qtbot, sample_documents):
        dialog = self._document_dialog(qtbot, sample_documents)
        dialog.set_name("rib")
        dialog.accept()
        assert dialog.error_text == DUPLICATE_DOCUMENT_MESSAGE
        assert dialog.result() != QDialog.DialogCode.Accepted

    def test_typing_clears_error(self, qtbot, sample_documents):
        dialog = self._document_dialog(qtbot, sample_documents)
        dialog.accept()
        dialog.set_name("B")
        assert dialog.error_text == ""

    def test_valid_input_accepted(self, qtbot, sample_documents):
        dialog = self._document_dialog(qtbot, sample_documents)
        dialog.set_name("  Bail commercial ")
        dialog.accept()
        assert dialog.result() == QDialog.DialogCode.Accepted
        values = dialog.values()
        assert values["name"] == "Bail commercial"
        assert values["icon"] == DEFAULT_ICON.value
        assert values["description"] is None

    def test_initial_values(self, qtbot, sample_documents):
        dialog = self._document_dialog(
            qtbot, sample_documents, exclude_id="rib",
            initial={"name": "RIB", "description": "Compte", "icon": DocumentIcon.LANDMARK},
        )
        values = dialog.values()
        assert values == {"name": "RIB", "description": "Compte", "icon": "landmark"}
        dialog.accept()
        assert dialog.result() == QDialog.DialogCode.Accepted

    def test_field_dialog_has_required_flag(self, qtbot):
        dialog = EntityFormDialog("New field", validate_field_input, with_required=True,
                                  initial={"name": "BIC", "required": True})
        qtbot.addWidget(dialog)
        assert dialog.values() == {"name": "BIC", "description": None, "required": True}

    def test_variable_dialog_document_checklist(self, qtbot, sample_documents):
        dialog = EntityFormDialog(
            "New variable", lambda name: {}, documents=sample_documents,
            initial={"name": "SIREN", "document_ids": ["kbis"]},
        )
        qtbot.addWidget(dialog)
        assert dialog.checked_documents() == ["kbis"]
        dialog.set_checked_documents(["rib", "pappers"])
        assert dialog.values()["document_ids"] == ["rib", "pappers"]
        dialog.set_checked_documents([])
        assert dialog.values()["document_ids"] == []


# ==================================================================
# LoadingOverlay
# ==================================================================


class TestLoadingOverlay:
    def test_show_and_hide(self, qtbot):
        parent = QWidget()
        qtbot.addWidget(parent)
        parent.resize(300, 200)
        overlay = LoadingOverlay(parent)
        assert not overlay.is_loading()

        overlay.show_loading("Loading rules")
        assert overlay.is_loading()
        assert overlay.message == "Loading rules"
        assert overlay.geometry() == parent.rect()

        overlay.hide_loading()
        assert not overlay.is_loading()
        assert overlay.isHidden()


# ==================================================================
# MentionPopup
# ==================================================================


class TestMentionPopup:
    @pytest.fixture
    def popup(self, qtbot):
        parent = QWidget()
        qtbot.addWidget(parent)
        parent.resize(500, 400)
        yield MentionPopup(parent)

    def test_type_step(self, popup, sample_documents, sample_variables):
        session = SuggestionSession(sample_documents, sample_variables)
        popup.show_for(session, 10, 10)
        assert popup.row_texts() == ["Document", "Variable"]
        assert popup.current_row == 0

    def test_item_step_follows_session(self, popup, sample_documents, sample_variables):
        session = SuggestionSession(sample_documents, sample_variables)
        popup.show_for(session, 10, 10)
        session.choose_type(MentionType.DOC)
        session.type_text("i")
        popup.refresh()
        assert popup.title == "Documents: i"
        assert popup.row_texts() == ["Extrait KBIS", "RIB"]
        assert not popup.is_showing_empty_state()

    def test_empty_state(self, popup, sample_documents, sample_variables):
        session = SuggestionSession(sample_documents, sample_variables)
        popup.show_for(session, 0, 0)
        session.choose_type(MentionType.VAR)
        session.type_text("xyz")
        popup.refresh()
        assert popup.is_showing_empty_state()

    def test_click_commits_item(self, qtbot, popup, sample_documents, sample_variables):
        committed = []
        session = SuggestionSession(sample_documents, sample_variables, on_commit=committed.append)
        popup.show_for(session, 0, 0)
        with qtbot.waitSignal(popup.session_changed, timeout=1000):
            popup._list.itemClicked.emit(popup._list.item(1))
        assert session.kind is MentionType.VAR
        popup.refresh()
        with qtbot.waitSignal(popup.session_changed, timeout=1000):
            popup._list.itemClicked.emit(popup._list.item(0))
        assert [c.id for c in committed] == ["siren"]


# ==================================================================
# HelpDrawer
# ==================================================================


class TestHelpDrawer:
    def test_preview_resolves_names(self, qtbot, sample_documents, sample_variables):
        drawer = HelpDrawer("@")
        qtbot.addWidget(drawer)
        drawer.show_preview("# Titre\nLe @[doc:kbis] et @[var:gone]", sample_documents, sample_variables)
        text = drawer.preview_text()
        assert "Titre" in text
        assert "Extrait KBIS" in text
        assert "gone" in text
        assert "@[" not in text

    def test_render_escapes_html(self):
        html = render_preview_html("a <b> & c")
        assert "&lt;b&gt;" in html
        assert "&amp;" in html

    def test_header_rendered_as_heading(self):
        assert "<h3>Titre</h3>" in render_preview_html("# Titre")

    def test_indented_hash_matches_storage_parse(self):
        storage = "  # Titre"
        html = render_preview_html(storage)
        assert "<h3>" not in html
        assert html == "<p>  # Titre</p>"
        assert parse(storage).blocks[0].kind is BlockKind.PARAGRAPH


# ==================================================================
# Icons
# ==================================================================


class TestIconTable:
    def test_every_icon_mapped(self):
        assert set(ICON_PIXMAPS) == set(DocumentIcon)

    def test_unknown_icon_uses_default(self):
        assert pixmap_for("sparkles") == ICON_PIXMAPS[DEFAULT_ICON]
