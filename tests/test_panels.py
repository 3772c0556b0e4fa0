"""
Tests for rulebook_ui/panels/ and main_window.py -- Rules screen, catalogue
panel, and the main window wiring them together.

All tests use the qtbot fixture from pytest-qt and a seeded in-memory
store without latency; store calls still run on StoreCall threads.
"""

from unittest.mock import MagicMock

import pytest
from PySide6.QtGui import QTextCursor

from rulebook.entity_store import EntityStore
from rulebook.mentions import codec
from rulebook.models.base import DocumentType, Variable
from rulebook_ui.main_window import MainWindow
from rulebook_ui.panels.catalog_panel import CatalogPanel, document_label, variable_label
from rulebook_ui.panels.rules_panel import RulesPanel
from rulebook_ui.services.autosave import SaveStatus
from rulebook_ui.services.event_bus import EventBus
from rulebook_ui.services.store_worker import StoreCall
from rulebook_ui.settings import Settings


@pytest.fixture(autouse=True)
def _reset_singletons():
    EventBus.reset()
    yield
    StoreCall.wait_all(5000)
    EventBus.reset()


def _expected_storage(store) -> str:
    documents, variables, rules = store.rules_context()
    return codec.serialize(codec.parse(rules.content, documents, variables))


def _type_at_end(qtbot, editor, text):
    cursor = editor.textCursor()
    cursor.movePosition(QTextCursor.MoveOperation.End)
    editor.setTextCursor(cursor)
    qtbot.keyClicks(editor, text)


# ==================================================================
# RulesPanel
# ==================================================================


@pytest.fixture
def rules_panel(qtbot, store):
    panel = RulesPanel(store, Settings(autosave_ms=100))
    qtbot.addWidget(panel)
    with qtbot.waitSignal(panel.loaded, timeout=5000):
        panel.load()
    return panel


class TestRulesPanel:
    def test_load_fills_editor(self, rules_panel, store):
        assert rules_panel.is_loaded
        assert not rules_panel.is_loading()
        assert not rules_panel.editor.isReadOnly()
        assert rules_panel.editor.storage_text() == _expected_storage(store)
        assert rules_panel.autosave.baseline == rules_panel.editor.storage_text()
        assert rules_panel.indicator.status is SaveStatus.SAVED

    def test_seed_mentions_all_resolve(self, rules_panel):
        mentions = rules_panel.editor.rich_content().mentions()
        assert mentions
        assert not [m for m in mentions if m.label == m.id]

    def test_edit_is_autosaved(self, qtbot, rules_panel, store):
        bus = EventBus.instance()
        with qtbot.waitSignal(bus.rules_saved, timeout=5000) as blocker:
            _type_at_end(qtbot, rules_panel.editor, "Fin")
        assert blocker.args[0].endswith("Fin")
        assert store.get_rules().content.endswith("Fin")
        qtbot.waitUntil(lambda: rules_panel.indicator.status is SaveStatus.SAVED, timeout=3000)

    def test_catalog_change_relabels_mentions(self, qtbot, rules_panel, store):
        store.update_document("kbis", name="KBIS récent")
        before = rules_panel.editor.storage_text()
        EventBus.instance().catalog_changed.emit()

        def _relabelled():
            labels = {m.id: m.label for m in rules_panel.editor.rich_content().mentions()}
            return labels.get("kbis") == "KBIS récent"

        qtbot.waitUntil(_relabelled, timeout=3000)
        assert rules_panel.editor.storage_text() == before
        assert "KBIS récent" in rules_panel.help_drawer.preview_text()

    def test_shutdown_flushes_pending_edit(self, qtbot, store):
        panel = RulesPanel(store, Settings(autosave_ms=60000))
        qtbot.addWidget(panel)
        with qtbot.waitSignal(panel.loaded, timeout=5000):
            panel.load()
        _type_at_end(qtbot, panel.editor, "Fin")
        assert panel.autosave.is_pending

        panel.shutdown()
        assert store.get_rules().content.endswith("Fin")

    def test_shutdown_saves_text_typed_during_a_save(self, qtbot):
        slow_store = EntityStore.in_memory(seed=True, latency=0.3)
        panel = RulesPanel(slow_store, Settings(autosave_ms=60000))
        qtbot.addWidget(panel)
        with qtbot.waitSignal(panel.loaded, timeout=5000):
            panel.load()
        _type_at_end(qtbot, panel.editor, "Un")
        panel.autosave.flush()
        assert panel.autosave.is_saving
        _type_at_end(qtbot, panel.editor, "Deux")

        panel.shutdown()
        assert slow_store.get_rules().content.endswith("UnDeux")

    def test_load_failure_reported(self, qtbot):
        store = MagicMock()
        store.rules_context.side_effect = RuntimeError("offline")
        panel = RulesPanel(store, Settings())
        qtbot.addWidget(panel)

        with qtbot.waitSignal(EventBus.instance().error_occurred, timeout=3000) as blocker:
            panel.load()
        assert blocker.args == ["Could not load the rules: offline"]
        assert not panel.is_loaded
        assert not panel.is_loading()


# ==================================================================
# CatalogPanel
# ==================================================================


@pytest.fixture
def catalog_panel(qtbot, store):
    panel = CatalogPanel(store)
    qtbot.addWidget(panel)
    with qtbot.waitSignal(panel.loaded, timeout=5000):
        panel.refresh()
    return panel


def _mutation_signals(panel):
    return [EventBus.instance().catalog_changed, panel.loaded]


class TestCatalogLabels:
    def test_document_label(self):
        doc = DocumentType(id="rib", name="RIB")
        assert document_label(doc, 4) == "RIB  (4 fields)"
        external = DocumentType(id="p", name="Pappers", is_external=True)
        assert document_label(external) == "Pappers  [External]"

    def test_variable_label(self):
        assert variable_label(Variable(id="m", name="Montant")) == "Montant  [Auto-search]"
        assert variable_label(Variable(id="i", name="IBAN", document_ids=["rib"])) == "IBAN"


class TestCatalogPanel:
    def test_refresh_fills_lists(self, catalog_panel, store):
        rows = catalog_panel.document_rows()
        assert len(rows) == len(store.list_documents())
        assert rows[0] == "Extrait KBIS  (10 fields)"
        assert "Pappers  [External]" in rows
        assert len(catalog_panel.variable_rows()) == len(store.list_variables())

    def test_document_search(self, qtbot, catalog_panel):
        catalog_panel.set_document_query("contrat")
        qtbot.waitUntil(lambda: len(catalog_panel.document_rows()) == 2, timeout=3000)
        assert all(row.startswith("Contrat") for row in catalog_panel.document_rows())

    def test_variable_search(self, qtbot, catalog_panel):
        catalog_panel.set_variable_query("sir")
        qtbot.waitUntil(lambda: catalog_panel.variable_rows() == ["SIREN", "SIRET"], timeout=3000)

    def test_variable_document_filter(self, qtbot, catalog_panel, store):
        expected = [v.name for v in store.search_variables("", "rib")]
        catalog_panel.set_variable_document_filter("rib")
        qtbot.waitUntil(lambda: catalog_panel.variable_rows() == expected, timeout=3000)
        assert "IBAN" in expected

    def test_external_document_is_read_only(self, qtbot, catalog_panel):
        catalog_panel.select_document("pappers")
        assert catalog_panel.current_document_id == "pappers"
        assert not catalog_panel._edit_doc_btn.isEnabled()
        assert not catalog_panel._delete_doc_btn.isEnabled()

        catalog_panel.select_document("rib")
        assert catalog_panel._edit_doc_btn.isEnabled()

    def test_document_detail_lists_fields(self, qtbot, catalog_panel):
        catalog_panel.select_document("rib")
        qtbot.waitUntil(lambda: len(catalog_panel.fields) == 4, timeout=3000)
        assert [f.id for f in catalog_panel.fields][:2] == ["f11", "f12"]

    def test_create_document(self, qtbot, catalog_panel, store):
        with qtbot.waitSignals(_mutation_signals(catalog_panel), timeout=5000):
            catalog_panel.submit_new_document({"name": "Bail commercial", "icon": "receipt"})
        created = [d for d in store.list_documents() if d.name == "Bail commercial"]
        assert len(created) == 1
        assert "Bail commercial  (0 fields)" in catalog_panel.document_rows()

    def test_create_field_on_selected_document(self, qtbot, catalog_panel, store):
        catalog_panel.select_document("kbis")
        with qtbot.waitSignals(_mutation_signals(catalog_panel), timeout=5000):
            catalog_panel.submit_new_field({"name": "Greffe", "required": False})
        assert "Greffe" in [f.name for f in store.list_fields("kbis")]
        assert "Extrait KBIS  (11 fields)" in catalog_panel.document_rows()

    def test_field_dialog_prefills_existing_field(self, qtbot, catalog_panel):
        catalog_panel.select_document("rib")
        qtbot.waitUntil(lambda: len(catalog_panel.fields) == 4, timeout=3000)
        dialog = catalog_panel.field_dialog(catalog_panel.fields[1])
        assert dialog.windowTitle() == "Edit field"
        assert dialog.values() == {
            "name": "BIC",
            "description": "Code d'identification de la banque",
            "required": True,
        }

    def test_edit_field(self, qtbot, catalog_panel, store):
        catalog_panel.select_document("rib")
        qtbot.waitUntil(lambda: len(catalog_panel.fields) == 4, timeout=3000)
        with qtbot.waitSignals(_mutation_signals(catalog_panel), timeout=5000):
            catalog_panel.submit_field_changes(
                "f12", {"name": "Code BIC", "description": None, "required": False}
            )
        edited = store.get_field("f12")
        assert edited.name == "Code BIC"
        assert edited.required is False
        assert edited.document_type_id == "rib"
        qtbot.waitUntil(
            lambda: "Code BIC" in [f.name for f in catalog_panel.fields], timeout=3000
        )

    def test_external_document_fields_not_editable(self, catalog_panel):
        catalog_panel.select_document("pappers")
        assert not catalog_panel._edit_field_btn.isEnabled()
        catalog_panel.select_document("rib")
        assert catalog_panel._edit_field_btn.isEnabled()

    def test_delete_document_cascades(self, qtbot, catalog_panel, store):
        catalog_panel.select_document("rib")
        with qtbot.waitSignals(_mutation_signals(catalog_panel), timeout=5000):
            catalog_panel.delete_document(confirm=False)
        assert store.get_document("rib") is None
        assert store.list_fields("rib") == []
        assert not any(row.startswith("RIB") for row in catalog_panel.document_rows())

    def test_create_variable(self, qtbot, catalog_panel, store):
        with qtbot.waitSignals(_mutation_signals(catalog_panel), timeout=5000):
            catalog_panel.submit_new_variable({"name": "Numéro TVA", "document_ids": ["kbis"]})
        assert store.search_variables("TVA")[0].document_ids == ["kbis"]
        assert "Numéro TVA" in catalog_panel.variable_rows()

    def test_delete_variable(self, qtbot, catalog_panel, store):
        catalog_panel.select_variable("iban")
        with qtbot.waitSignals(_mutation_signals(catalog_panel), timeout=5000):
            catalog_panel.delete_variable(confirm=False)
        assert store.get_variable("iban") is None

    def test_refused_mutation_reports_no_change(self, catalog_panel):
        receiver = MagicMock()
        changed = MagicMock()
        EventBus.instance().status_message.connect(receiver)
        EventBus.instance().catalog_changed.connect(changed)
        catalog_panel._on_catalog_mutated(None)
        receiver.assert_called_once()
        assert receiver.call_args[0][0].startswith("No change")
        changed.assert_not_called()

    def test_dialog_validates_against_loaded_names(self, catalog_panel):
        dialog = catalog_panel.document_dialog()
        dialog.set_name("extrait kbis")
        dialog.accept()
        assert dialog.error_text
        dialog.set_name("Extrait KBIS bis")
        dialog.accept()
        assert dialog.error_text == ""


# ==================================================================
# MainWindow
# ==================================================================


class TestMainWindow:
    @pytest.fixture
    def window(self, qtbot, store):
        win = MainWindow(store, Settings(autosave_ms=100), restore_layout=False)
        qtbot.addWidget(win)
        return win

    def test_layout(self, window):
        assert window.centralWidget() is window.rules_panel
        assert window.catalog_dock.objectName() == "dock_catalogue"
        assert window.catalog_dock.widget() is window.catalog_panel

    def test_start_loads_both_panels(self, qtbot, window):
        with qtbot.waitSignals([window.rules_panel.loaded, window.catalog_panel.loaded], timeout=5000):
            window.start()
        assert window.rules_panel.is_loaded
        assert window.catalog_panel.document_rows()

    def test_bus_messages_reach_status_bar(self, window):
        EventBus.instance().status_message.emit("Catalogue reloaded")
        assert window.statusBar().currentMessage() == "Catalogue reloaded"
        EventBus.instance().error_occurred.emit("offline")
        assert window.statusBar().currentMessage() == "Error: offline"
