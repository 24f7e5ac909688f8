"""Owner of the active chunk classification strategy."""

from __future__ import annotations

import logging
from typing import Any

from scribe_engine.notifications import LatestValueNotifier
from scribe_engine.strategies.classification import (
    ClassificationStrategy,
    ProcessChunk,
    StrategyType,
    create_strategy,
)

logger = logging.getLogger(__name__)


class ClassificationStrategyManager:
    """Holds one strategy at a time and forwards chunks to it."""

    def __init__(self, classify_chunk: ProcessChunk) -> None:
        self._classify_chunk = classify_chunk
        self._current_strategy: ClassificationStrategy | None = create_strategy(
            StrategyType.SEQUENTIAL, classify_chunk
        )
        self.classification_results: LatestValueNotifier[dict[str, Any]] = LatestValueNotifier()

    @property
    def current_strategy(self) -> ClassificationStrategy | None:
        return self._current_strategy

    def set_strategy(self, kind: StrategyType | str) -> None:
        """Swap strategies, cleaning up the outgoing one first.

        The outgoing strategy is torn down before ``kind`` is validated, so
        an invalid kind leaves the manager with no active strategy.
        """

        if self._current_strategy is not None:
            self._current_strategy.cleanup()
            self._current_strategy = None
        self._current_strategy = create_strategy(kind, self._classify_chunk)
        logger.info("scribe.strategy_set strategy=%s", self._current_strategy.kind.value)

    async def handle_chunk(self, chunk: str) -> None:
        if self._current_strategy is None:
            return
        await self._current_strategy.handle_chunk(chunk)

    def cleanup(self) -> None:
        if self._current_strategy is not None:
            self._current_strategy.cleanup()
        self.classification_results.complete()
        self._current_strategy = None
