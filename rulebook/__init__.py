"""
rulebook/ -- Qt-free core of the rules configuration console.

Submodules:
    models        Catalogue models, icons and form validators.
    repository    Storage backends (in-memory, JSON files).
    entity_store  EntityStore: CRUD, uniqueness, cascade, rules document.
    seed          Default catalogue.
    mentions      Rules text model (tokens, resolver, codec).
    suggestions   Two-step mention picker state machine.
"""

__version__ = "1.0.0"
