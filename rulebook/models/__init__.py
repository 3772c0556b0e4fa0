"""
rulebook/models/ -- Pydantic v2 models for the catalogue.

Submodules:
    base        Entity models (DocumentType, DocumentField, Variable, RulesConfig).
    icons       Closed icon enum and its default.
    validators  Form-level validation (required names, uniqueness).
"""

from rulebook.models.base import (
    CatalogModel,
    DocumentField,
    DocumentType,
    RulesConfig,
    Variable,
)
from rulebook.models.icons import DEFAULT_ICON, DocumentIcon, resolve_icon

__all__ = [
    "CatalogModel",
    "DEFAULT_ICON",
    "DocumentField",
    "DocumentIcon",
    "DocumentType",
    "RulesConfig",
    "Variable",
    "resolve_icon",
]
