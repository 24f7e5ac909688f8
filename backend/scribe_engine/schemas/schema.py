"""Schemas for compiled schema inspection endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from scribe_engine.schema.types import SchemaNodeType


class SchemaValidationRead(BaseModel):
    kind: str
    value: Any


class ParsedSchemaNodeRead(BaseModel):
    """Compiled schema node as exposed over HTTP."""

    type: SchemaNodeType
    description: str | None = None
    properties: dict[str, ParsedSchemaNodeRead] | None = None
    required: list[str] | None = None
    item_type: ParsedSchemaNodeRead | None = None
    kb_table_id: int | str | None = None
    enum_values: list[Any] | None = None
    validations: list[SchemaValidationRead] = Field(default_factory=list)


class ParsedSchemaRead(BaseModel):
    root_type: str
    structure: ParsedSchemaNodeRead


ParsedSchemaNodeRead.model_rebuild()
