"""Schema compilation for classification sections."""

from scribe_engine.schema.parser import (
    SchemaDefinition,
    SchemaDefinitionError,
    SchemaParser,
    load_schema_definition,
    schema_names,
)
from scribe_engine.schema.types import (
    ParsedSchema,
    ParsedSchemaNode,
    SchemaNodeType,
    SchemaValidation,
)

__all__ = [
    "ParsedSchema",
    "ParsedSchemaNode",
    "SchemaDefinition",
    "SchemaDefinitionError",
    "SchemaNodeType",
    "SchemaParser",
    "SchemaValidation",
    "load_schema_definition",
    "schema_names",
]
