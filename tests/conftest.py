"""
Shared pytest fixtures for the Validation Rules Console test suite.

Provides:
    - project_root: path to the real project root
    - store: a seeded in-memory EntityStore without latency
    - empty_store: an unseeded in-memory EntityStore without latency
    - catalog_dir: a temporary directory for the JSON backend
    - sample_documents / sample_variables: a small hand-built catalogue
"""

import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# ---------------------------------------------------------------------------
# Ensure rulebook/ and rulebook_ui/ are importable regardless of where
# pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rulebook.entity_store import EntityStore  # noqa: E402
from rulebook.models.base import DocumentType, Variable  # noqa: E402


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root():
    """Return the absolute path to the real project root directory."""
    return str(PROJECT_ROOT)


@pytest.fixture
def store():
    """Seeded in-memory store; every call returns immediately."""
    return EntityStore.in_memory(seed=True, latency=0)


@pytest.fixture
def empty_store():
    return EntityStore.in_memory(seed=False, latency=0)


@pytest.fixture
def catalog_dir(tmp_path):
    path = tmp_path / "catalog"
    path.mkdir()
    return str(path)


@pytest.fixture
def sample_documents():
    """Three document types, one of them external."""
    return [
        DocumentType(id="kbis", name="Extrait KBIS", icon="building-2"),
        DocumentType(id="rib", name="RIB", icon="landmark"),
        DocumentType(id="pappers", name="Pappers", icon="plug", is_external=True,
                     depends_on=["siren"]),
    ]


@pytest.fixture
def sample_variables():
    """Three variables; ``montant`` is searched in every document."""
    return [
        Variable(id="siren", name="SIREN", document_ids=["kbis", "pappers"]),
        Variable(id="iban", name="IBAN", document_ids=["rib"]),
        Variable(id="montant", name="Montant financé"),
    ]
