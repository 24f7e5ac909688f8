"""Mapping of raw classification output into chart data."""

from scribe_engine.mapping.mapper import (
    GenericMapper,
    MappingError,
    NoHandlerForTypeError,
    SchemaNotFoundError,
    TypeHandler,
)
from scribe_engine.mapping.types import (
    ClassificationChart,
    DataReference,
    DataReferenceValue,
    KbChoice,
    MappingContext,
    ReferenceItem,
    to_jsonable,
)

__all__ = [
    "ClassificationChart",
    "DataReference",
    "DataReferenceValue",
    "GenericMapper",
    "KbChoice",
    "MappingContext",
    "MappingError",
    "NoHandlerForTypeError",
    "ReferenceItem",
    "SchemaNotFoundError",
    "TypeHandler",
    "to_jsonable",
]
