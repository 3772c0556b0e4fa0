"""
rulebook/models/base.py -- Pydantic v2 models for the catalogue entities.

Four entity kinds live in the store:

    DocumentType    a kind of document the validation agent receives
    DocumentField   a value extracted from one document type
    Variable        a named value that may be searched across documents
    RulesConfig     the singleton rules text, in storage format

Python attributes are snake_case; the JSON wire names are camelCase
(``documentTypeId``, ``isExternal``, ``dependsOn`` ...) through an alias
generator, and both spellings are accepted on input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from rulebook.models.icons import DEFAULT_ICON, DocumentIcon, resolve_icon
from rulebook.utils import utc_now


def _unique(ids: list[str]) -> list[str]:
    """Drop duplicates and blanks while keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for item in ids:
        item = str(item).strip()
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


class CatalogModel(BaseModel):
    """Shared configuration for every catalogue model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
    )

    def to_json(self) -> dict:
        """Dump with wire (camelCase) names, JSON-safe values."""
        return self.model_dump(by_alias=True, mode="json")


class NamedEntity(CatalogModel):
    id: str = Field(min_length=1)
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class DocumentType(NamedEntity):
    """A document type the agent extracts fields from.

    External document types are provisioned by a data provider (for
    example a company registry lookup) and cannot be changed through the
    normal CRUD operations.  ``depends_on`` lists the variable ids the
    provider needs as search keys.
    """

    icon: DocumentIcon = DEFAULT_ICON
    is_external: bool = False
    depends_on: list[str] = Field(default_factory=list)

    @field_validator("icon", mode="before")
    @classmethod
    def _known_icon(cls, value) -> DocumentIcon:
        return resolve_icon(value)

    @field_validator("depends_on")
    @classmethod
    def _dedupe_depends_on(cls, value: list[str]) -> list[str]:
        return _unique(value)


class DocumentField(NamedEntity):
    """A field extracted from the document type ``document_type_id``."""

    document_type_id: str = Field(min_length=1)
    required: bool = False
    is_system: bool = False


class Variable(NamedEntity):
    """A named value shared across documents.

    ``document_ids`` restricts where the agent looks for the value.  An
    empty list is meaningful: the variable is searched automatically in
    every document.
    """

    document_ids: list[str] = Field(default_factory=list)

    @field_validator("document_ids")
    @classmethod
    def _dedupe_document_ids(cls, value: list[str]) -> list[str]:
        return _unique(value)

    @property
    def is_auto_search(self) -> bool:
        return not self.document_ids


class RulesConfig(CatalogModel):
    """The singleton rules document."""

    content: str = ""
    updated_at: datetime = Field(default_factory=utc_now)
