"""Attribute catalog adapter.

The catalog is supplied by the caller and is only ever read by the engine.
It maps attribute ids to display names and declared types.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


@dataclass(frozen=True)
class AttributeInfo:
    """A catalog entry.

    Attributes:
        id: Catalog identifier referenced by attribute nodes.
        name: Display name used in formula text as ``{name}``.
        declared_type: Type string declared by the catalog (e.g. "number").
    """

    id: str
    name: str
    declared_type: str


@runtime_checkable
class AttributeCatalog(Protocol):
    """Read-only attribute lookup used by the parser, serializer and type checker."""

    def lookup(self, attribute_id: str) -> AttributeInfo | None:
        """Find an attribute by id."""
        ...

    def find_by_name(self, name: str) -> AttributeInfo | None:
        """Find an attribute by display name."""
        ...


class InMemoryCatalog:
    """Catalog backed by a list of attribute entries."""

    def __init__(self, attributes: Iterable[AttributeInfo] = ()):
        self._attributes = list(attributes)

    @classmethod
    def from_types(cls, types: dict[str, str]) -> "InMemoryCatalog":
        """Build a catalog from a name to declared-type mapping.

        The attribute name doubles as its id.

        Example:
            >>> InMemoryCatalog.from_types({"Price": "number", "VIP": "boolean"})
        """
        return cls(AttributeInfo(id=name, name=name, declared_type=kind) for name, kind in types.items())

    def __len__(self) -> int:
        return len(self._attributes)

    def __iter__(self):
        return iter(self._attributes)

    def lookup(self, attribute_id: str) -> AttributeInfo | None:
        return next((attr for attr in self._attributes if attr.id == attribute_id), None)

    def find_by_name(self, name: str) -> AttributeInfo | None:
        return next((attr for attr in self._attributes if attr.name == name), None)


class AttributeDefinition(BaseModel):
    """Schema for one attribute in a catalog file."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: str = Field(default="unknown", description="Declared type, e.g. number, boolean, string")

    def to_info(self) -> AttributeInfo:
        return AttributeInfo(id=self.id, name=self.name, declared_type=self.type)


_definitions_adapter = TypeAdapter(list[AttributeDefinition])


def load_catalog(path: str | Path) -> InMemoryCatalog:
    """Load a catalog from a JSON file holding a list of ``{id, name, type}`` objects.

    Args:
        path: Path to the JSON file.

    Returns:
        InMemoryCatalog: Catalog with the file's attributes.

    Raises:
        pydantic.ValidationError: If the file content does not match the schema.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    definitions = _definitions_adapter.validate_python(raw)
    return InMemoryCatalog(definition.to_info() for definition in definitions)
