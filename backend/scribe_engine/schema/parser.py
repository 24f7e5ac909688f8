"""Schema parser that compiles raw section schemas into parsed node trees."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from scribe_engine.schema.types import ParsedSchema, ParsedSchemaNode, SchemaNodeType, SchemaValidation

logger = logging.getLogger(__name__)

SchemaDefinition = list[dict[str, Any]]

_NODE_TYPES_BY_NAME: dict[str, SchemaNodeType] = {
    "object": SchemaNodeType.OBJECT,
    "array": SchemaNodeType.ARRAY,
    "string": SchemaNodeType.STRING,
    "number": SchemaNodeType.NUMBER,
    "boolean": SchemaNodeType.BOOLEAN,
}
_VALIDATION_KINDS: tuple[str, ...] = ("minimum", "maximum")


class SchemaDefinitionError(RuntimeError):
    """Raised when a schema definition file cannot be loaded."""


class SchemaParser:
    """Compiles named schemas and keeps them in a name-keyed registry."""

    def __init__(self, schema_definition: Iterable[Mapping[str, Any]] | None = None) -> None:
        self._parsed_schemas: dict[str, ParsedSchema] = {}
        for schemas in schema_definition or []:
            self.compile_all(schemas)

    def compile_all(self, schemas: Mapping[str, Any]) -> None:
        """Compile every entry and register it, replacing same-named schemas."""

        for schema_name, raw_schema in schemas.items():
            if schema_name in self._parsed_schemas:
                logger.info("scribe.schema_replaced schema=%s", schema_name)
            self._parsed_schemas[schema_name] = self.compile(schema_name, raw_schema)

    def compile(self, schema_name: str, raw_schema: Any) -> ParsedSchema:
        return ParsedSchema(root_type=schema_name, structure=self.parse_node(raw_schema))

    def lookup(self, schema_name: str) -> ParsedSchema | None:
        return self._parsed_schemas.get(schema_name)

    def schema_names(self) -> list[str]:
        return list(self._parsed_schemas)

    def parse_node(self, node: Any) -> ParsedSchemaNode:
        """Compile one raw node (and its children) into a parsed node."""

        if not node or not isinstance(node, Mapping):
            return ParsedSchemaNode(type=SchemaNodeType.OBJECT)

        parsed = ParsedSchemaNode(
            type=_determine_node_type(node),
            description=node.get("description"),
        )

        # A table id wins over whatever type was declared.
        if node.get("kbTableId"):
            parsed.type = SchemaNodeType.KB_ENTITY
            parsed.kb_table_id = node["kbTableId"]

        properties = node.get("properties")
        if parsed.type is SchemaNodeType.OBJECT and isinstance(properties, Mapping):
            parsed.required = list(node.get("required") or [])
            parsed.properties = {
                prop_name: self.parse_node(prop_schema)
                for prop_name, prop_schema in properties.items()
            }

        if parsed.type is SchemaNodeType.ARRAY and node.get("items") is not None:
            parsed.item_type = self.parse_node(node["items"])

        if node.get("enum") is not None:
            parsed.enum_values = node["enum"]

        parsed.validations = _parse_validations(node)
        return parsed


def load_schema_definition(path: str | Path) -> SchemaDefinition:
    """Load the ordered list of ``{section_name: raw_schema}`` maps from JSON."""

    schema_path = Path(path)
    try:
        decoded = json.loads(schema_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SchemaDefinitionError(f"Failed to read schema definition file: {schema_path}") from exc
    except json.JSONDecodeError as exc:
        raise SchemaDefinitionError(f"Schema definition file is not valid JSON: {schema_path}") from exc

    if isinstance(decoded, dict):
        decoded = [decoded]
    if not isinstance(decoded, list) or not all(isinstance(entry, dict) for entry in decoded):
        raise SchemaDefinitionError(
            f"Schema definition must be a list of section maps: {schema_path}"
        )
    return decoded


def schema_names(schema_definition: Iterable[Mapping[str, Any]]) -> list[str]:
    """Return the section name of each schema definition entry, in order."""

    return [next(iter(entry)) for entry in schema_definition if entry]


def _determine_node_type(node: Mapping[str, Any]) -> SchemaNodeType:
    raw_type = node.get("type")
    if not isinstance(raw_type, str):
        return SchemaNodeType.OBJECT
    return _NODE_TYPES_BY_NAME.get(raw_type, SchemaNodeType.OBJECT)


def _parse_validations(node: Mapping[str, Any]) -> list[SchemaValidation]:
    return [
        SchemaValidation(kind=kind, value=node[kind])
        for kind in _VALIDATION_KINDS
        if kind in node
    ]
