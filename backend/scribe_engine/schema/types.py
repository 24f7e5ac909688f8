"""Typed parsed-schema nodes independent of the authoring format."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SchemaNodeType(str, Enum):
    """Type tag carried by every parsed schema node."""

    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    KB_ENTITY = "kb-entity"


PRIMITIVE_NODE_TYPES: frozenset[SchemaNodeType] = frozenset(
    {SchemaNodeType.STRING, SchemaNodeType.NUMBER, SchemaNodeType.BOOLEAN}
)


@dataclass(slots=True)
class SchemaValidation:
    """Validation metadata attached to a node (not enforced while mapping)."""

    kind: str
    value: Any


@dataclass(slots=True)
class ParsedSchemaNode:
    """One position in a compiled schema tree."""

    type: SchemaNodeType = SchemaNodeType.OBJECT
    description: str | None = None
    properties: dict[str, ParsedSchemaNode] | None = None
    required: list[str] | None = None
    item_type: ParsedSchemaNode | None = None
    kb_table_id: int | str | None = None
    enum_values: list[Any] | None = None
    validations: list[SchemaValidation] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ParsedSchema:
    """Compiled schema registered under its section name."""

    root_type: str
    structure: ParsedSchemaNode
