"""Chunk sequencing strategies for transcript classification."""

from scribe_engine.strategies.classification import (
    ChunkState,
    ClassificationStrategy,
    InvalidStrategyTypeError,
    ProcessChunk,
    StrategyType,
    create_strategy,
    handle_chunk_immediate,
    handle_chunk_sequential,
    parse_strategy_type,
)
from scribe_engine.strategies.manager import ClassificationStrategyManager

__all__ = [
    "ChunkState",
    "ClassificationStrategy",
    "ClassificationStrategyManager",
    "InvalidStrategyTypeError",
    "ProcessChunk",
    "StrategyType",
    "create_strategy",
    "handle_chunk_immediate",
    "handle_chunk_sequential",
    "parse_strategy_type",
]
