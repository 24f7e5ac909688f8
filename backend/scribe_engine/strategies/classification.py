"""Chunk classification strategies.

Both strategies share one ``ChunkState``; what differs is the policy
function that decides when ``process_chunk`` runs for an arriving chunk.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from scribe_engine.notifications import LatestValueNotifier

logger = logging.getLogger(__name__)

ProcessChunk = Callable[[str, list[str]], Awaitable[None]]


class StrategyType(str, Enum):
    """Supported chunk sequencing policies."""

    IMMEDIATE = "immediate"
    SEQUENTIAL = "sequential"


class InvalidStrategyTypeError(ValueError):
    """Raised for an unrecognized strategy kind."""

    def __init__(self, kind: Any) -> None:
        super().__init__(f"Invalid strategy type: {getattr(kind, 'value', kind)}")
        self.kind = kind


@dataclass(slots=True)
class ChunkState:
    """Committed chunks, pending queue and results notifier for one strategy."""

    process_chunk: ProcessChunk
    chunks: list[str] = field(default_factory=list)
    queue: deque[str] = field(default_factory=deque)
    is_processing: bool = False
    closed: bool = False
    results: LatestValueNotifier[dict[str, Any]] = field(default_factory=LatestValueNotifier)


async def handle_chunk_immediate(state: ChunkState, chunk: str) -> None:
    """Commit the chunk and classify it right away; calls may overlap."""

    state.chunks.append(chunk)
    await state.process_chunk(chunk, list(state.chunks))


async def handle_chunk_sequential(state: ChunkState, chunk: str) -> None:
    """Queue the chunk and drain the queue with at most one call in flight."""

    state.queue.append(chunk)
    await _drain_queue(state)


async def _drain_queue(state: ChunkState) -> None:
    while not state.is_processing and state.queue and not state.closed:
        state.is_processing = True
        chunk = state.queue.popleft()
        state.chunks.append(chunk)
        try:
            await state.process_chunk(chunk, list(state.chunks))
        except Exception:
            logger.exception(
                "scribe.sequential_chunk_failed sequence_number=%d queued=%d",
                len(state.chunks),
                len(state.queue),
            )
        finally:
            state.is_processing = False


_CHUNK_HANDLERS: dict[StrategyType, Callable[[ChunkState, str], Awaitable[None]]] = {
    StrategyType.IMMEDIATE: handle_chunk_immediate,
    StrategyType.SEQUENTIAL: handle_chunk_sequential,
}


class ClassificationStrategy:
    """A strategy instance: shared chunk state plus the selected policy."""

    def __init__(self, kind: StrategyType, process_chunk: ProcessChunk) -> None:
        self.kind = kind
        self.state = ChunkState(process_chunk=process_chunk)
        self._handle = _CHUNK_HANDLERS[kind]

    @property
    def results(self) -> LatestValueNotifier[dict[str, Any]]:
        return self.state.results

    async def handle_chunk(self, chunk: str) -> None:
        if self.state.closed:
            logger.warning("scribe.chunk_after_cleanup strategy=%s", self.kind.value)
            return
        await self._handle(self.state, chunk)

    def cleanup(self) -> None:
        """Drop all chunk state and complete the results notifier; terminal."""

        self.state.chunks = []
        self.state.queue.clear()
        self.state.is_processing = False
        self.state.closed = True
        self.state.results.complete()


def parse_strategy_type(kind: StrategyType | str) -> StrategyType:
    try:
        return StrategyType(kind)
    except ValueError as exc:
        raise InvalidStrategyTypeError(kind) from exc


def create_strategy(kind: StrategyType | str, process_chunk: ProcessChunk) -> ClassificationStrategy:
    return ClassificationStrategy(parse_strategy_type(kind), process_chunk)
