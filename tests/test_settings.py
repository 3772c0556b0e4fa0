"""
Tests for rulebook_ui/settings.py, paths.py and main.py -- Environment
overrides, data directory resolution, command-line parsing.
"""

import os

import pytest

from rulebook.entity_store import EntityStore
from rulebook_ui.main import build_parser, build_store, resolve_settings
from rulebook_ui.paths import get_catalog_dir
from rulebook_ui.settings import (
    DEFAULT_AUTOSAVE_MS,
    DEFAULT_STORE_LATENCY,
    DEFAULT_TRIGGER_CHAR,
    Settings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("RULEBOOK_AUTOSAVE_MS", "RULEBOOK_STORE_LATENCY",
                 "RULEBOOK_TRIGGER_CHAR", "RULEBOOK_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env()
        assert settings.autosave_ms == DEFAULT_AUTOSAVE_MS == 1000
        assert settings.store_latency == DEFAULT_STORE_LATENCY
        assert settings.trigger_char == DEFAULT_TRIGGER_CHAR == "@"
        assert settings.data_dir is None

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RULEBOOK_AUTOSAVE_MS", "250")
        monkeypatch.setenv("RULEBOOK_STORE_LATENCY", "0")
        monkeypatch.setenv("RULEBOOK_TRIGGER_CHAR", "/")
        monkeypatch.setenv("RULEBOOK_DATA_DIR", str(tmp_path))
        settings = Settings.from_env()
        assert settings.autosave_ms == 250
        assert settings.store_latency == 0.0
        assert settings.trigger_char == "/"
        assert settings.data_dir == str(tmp_path)

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("RULEBOOK_AUTOSAVE_MS", "soon")
        monkeypatch.setenv("RULEBOOK_STORE_LATENCY", "-3")
        monkeypatch.setenv("RULEBOOK_TRIGGER_CHAR", "@@")
        settings = Settings.from_env()
        assert settings.autosave_ms == DEFAULT_AUTOSAVE_MS
        assert settings.store_latency == 0.0
        assert settings.trigger_char == DEFAULT_TRIGGER_CHAR


class TestPaths:
    def test_override_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RULEBOOK_DATA_DIR", str(tmp_path / "env"))
        path = get_catalog_dir(str(tmp_path / "flag"))
        assert path == str(tmp_path / "flag")
        assert os.path.isdir(path)

    def test_environment_used_without_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RULEBOOK_DATA_DIR", str(tmp_path / "env"))
        assert get_catalog_dir() == str(tmp_path / "env")


class TestCommandLine:
    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("RULEBOOK_AUTOSAVE_MS", "250")
        args = build_parser().parse_args(["--latency", "0", "--autosave-ms", "50", "--in-memory"])
        settings = resolve_settings(args)
        assert settings.autosave_ms == 50
        assert settings.store_latency == 0.0

    def test_in_memory_store(self):
        args = build_parser().parse_args(["--in-memory", "--latency", "0"])
        store = build_store(args, resolve_settings(args))
        assert isinstance(store, EntityStore)
        assert store.get_document("kbis") is not None

    def test_no_seed(self):
        args = build_parser().parse_args(["--in-memory", "--no-seed", "--latency", "0"])
        store = build_store(args, resolve_settings(args))
        assert store.list_documents() == []

    def test_directory_store(self, tmp_path):
        args = build_parser().parse_args(["--data-dir", str(tmp_path), "--latency", "0"])
        store = build_store(args, resolve_settings(args))
        assert store.get_variable("siren").name == "SIREN"
        assert (tmp_path / "documents.json").exists()
