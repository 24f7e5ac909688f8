"""Schema-driven mapper from raw classification output to chart data."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from scribe_engine.mapping.types import (
    ClassificationChart,
    DataReference,
    DataReferenceValue,
    KbChoice,
    MappingContext,
    ReferenceItem,
)
from scribe_engine.schema.parser import SchemaParser
from scribe_engine.schema.types import PRIMITIVE_NODE_TYPES, ParsedSchemaNode, SchemaNodeType

logger = logging.getLogger(__name__)

NodePredicate = Callable[[ParsedSchemaNode], bool]
MapFn = Callable[[Any, ParsedSchemaNode, MappingContext], Any]

_PROFILE_ID_KEY = "Profile_KbEntityId"
_PROFILE_VALUE_KEY = "Profile_DocumentValue"
_PROFILE_CONFIDENCE_KEY = "Profile_confidence_score"
_PRACTICE_ID_KEY = "Practice_KbEntityId"
_PRACTICE_VALUE_KEY = "Practice_DocumentValue"
_PRACTICE_CONFIDENCE_KEY = "Practice_confidence_score"

_NULL_OMITTED_NODE_TYPES = frozenset({SchemaNodeType.OBJECT, SchemaNodeType.KB_ENTITY})


class MappingError(RuntimeError):
    """Raised when classification output cannot be mapped against a schema."""


class SchemaNotFoundError(MappingError):
    """Raised when a schema name has no compiled entry."""

    def __init__(self, schema_name: str) -> None:
        super().__init__(f"Schema not found: {schema_name}")
        self.schema_name = schema_name


class NoHandlerForTypeError(MappingError):
    """Raised when no registered handler accepts a node type."""

    def __init__(self, node_type: Any) -> None:
        type_name = getattr(node_type, "value", node_type)
        super().__init__(f"No mapper found for node type: {type_name}")
        self.node_type = node_type


@dataclass(frozen=True, slots=True)
class TypeHandler:
    """Predicate/mapping pair consulted in order by the dispatcher."""

    can_handle: NodePredicate
    map: MapFn


class GenericMapper:
    """Walks raw values against parsed schema nodes.

    Handlers are tried front to back. The four defaults cover every node
    type the parser produces; ``register_mapper`` puts custom handlers in
    front of them, most recent first.
    """

    def __init__(self, schema_parser: SchemaParser) -> None:
        self._schema_parser = schema_parser
        self._handlers: list[TypeHandler] = []
        self._register_default_handlers()

    def _register_default_handlers(self) -> None:
        self._handlers.append(
            TypeHandler(lambda node: node.type in PRIMITIVE_NODE_TYPES, _map_primitive)
        )
        self._handlers.append(
            TypeHandler(lambda node: node.type is SchemaNodeType.KB_ENTITY, _map_kb_entity)
        )
        self._handlers.append(
            TypeHandler(lambda node: node.type is SchemaNodeType.ARRAY, self._map_array)
        )
        self._handlers.append(
            TypeHandler(lambda node: node.type is SchemaNodeType.OBJECT, self._map_object)
        )

    def register_mapper(self, can_handle: NodePredicate, map_fn: MapFn) -> None:
        """Register a custom handler ahead of every existing one."""

        self._handlers.insert(0, TypeHandler(can_handle, map_fn))

    def map_all_data(
        self,
        raw_sections: Mapping[str, Any],
        existing_chart: ClassificationChart,
    ) -> ClassificationChart:
        """Map each known section and shallow-merge it over the existing chart.

        Sections not already present in ``existing_chart`` are dropped. One
        mapping context is shared across all sections so reference ids stay
        unique within the call.
        """

        context = MappingContext(
            data_reference_items=dict(existing_chart.data_reference_items),
            next_kb_id=len(existing_chart.data_reference_items),
        )
        sections = dict(existing_chart.sections)

        for section_name, raw_value in raw_sections.items():
            if section_name not in sections:
                logger.debug("scribe.section_skipped section=%s", section_name)
                continue
            mapped = self.map_data(raw_value, section_name, context)
            existing = sections[section_name]
            if isinstance(existing, Mapping) and isinstance(mapped, Mapping):
                sections[section_name] = {**existing, **mapped}
            else:
                sections[section_name] = mapped

        return ClassificationChart(
            sections=sections,
            data_reference_items=context.data_reference_items,
        )

    def map_data(self, raw_value: Any, schema_name: str, context: MappingContext) -> Any:
        """Map one raw value against the named schema."""

        parsed_schema = self._schema_parser.lookup(schema_name)
        if parsed_schema is None:
            raise SchemaNotFoundError(schema_name)

        if parsed_schema.structure.type is SchemaNodeType.ARRAY and not isinstance(raw_value, list):
            raw_value = []

        return self.map_value(raw_value, parsed_schema.structure, context)

    def map_value(self, raw_value: Any, node: ParsedSchemaNode, context: MappingContext) -> Any:
        handler = next((h for h in self._handlers if h.can_handle(node)), None)
        if handler is None:
            raise NoHandlerForTypeError(node.type)
        return handler.map(raw_value, node, context)

    def _map_array(self, raw_value: Any, node: ParsedSchemaNode, context: MappingContext) -> list[Any]:
        if not isinstance(raw_value, list):
            return []
        # Arrays declared without ``items`` map their elements as empty objects.
        item_type = node.item_type or ParsedSchemaNode(type=SchemaNodeType.OBJECT)
        return [self.map_value(item, item_type, context) for item in raw_value]

    def _map_object(
        self,
        raw_value: Any,
        node: ParsedSchemaNode,
        context: MappingContext,
    ) -> dict[str, Any]:
        if not isinstance(raw_value, Mapping):
            raw_value = {}

        result: dict[str, Any] = {}
        for key, prop_node in (node.properties or {}).items():
            if key not in raw_value:
                if prop_node.type is SchemaNodeType.ARRAY:
                    result[key] = []
                continue
            value = raw_value[key]
            # Null objects and kb entities carry nothing to project.
            if value is None and prop_node.type in _NULL_OMITTED_NODE_TYPES:
                continue
            result[key] = self.map_value(value, prop_node, context)
        return result


def _map_primitive(raw_value: Any, node: ParsedSchemaNode, context: MappingContext) -> Any:
    return raw_value


def _map_kb_entity(raw_value: Any, node: ParsedSchemaNode, context: MappingContext) -> DataReference:
    kb_id = context.allocate_id()
    fields = raw_value if isinstance(raw_value, Mapping) else {}

    label = fields.get("label")
    reference_item = ReferenceItem(
        data_item_id=kb_id,
        selected_kb_choice=_select_kb_choice(fields),
        is_accepted=False,
        raw_value=DataReferenceValue(label=raw_value if label is None else label),
    )
    if fields.get(_PROFILE_ID_KEY):
        reference_item.profile_kb_value = DataReferenceValue(
            label=fields.get(_PROFILE_VALUE_KEY),
            confidence_score=fields.get(_PROFILE_CONFIDENCE_KEY),
            document_id=fields[_PROFILE_ID_KEY],
        )
    if fields.get(_PRACTICE_ID_KEY):
        reference_item.practice_kb_value = DataReferenceValue(
            label=fields.get(_PRACTICE_VALUE_KEY),
            confidence_score=fields.get(_PRACTICE_CONFIDENCE_KEY),
            document_id=fields[_PRACTICE_ID_KEY],
        )

    context.data_reference_items[kb_id] = reference_item
    return DataReference(data_item_id=kb_id, data_table_id=node.kb_table_id)


def _select_kb_choice(fields: Mapping[str, Any]) -> KbChoice:
    if fields.get(_PROFILE_ID_KEY):
        return KbChoice.PROFILE_KB_VALUE
    if fields.get(_PRACTICE_ID_KEY):
        return KbChoice.PRACTICE_KB_VALUE
    return KbChoice.RAW_VALUE
