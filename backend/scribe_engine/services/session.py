"""Transcription session orchestration: chunks in, chart updates out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from time import perf_counter
from typing import Any

from scribe_engine.mapping import ClassificationChart, GenericMapper
from scribe_engine.notifications import LatestValueNotifier
from scribe_engine.schema.parser import SchemaDefinition, schema_names
from scribe_engine.schemas.classification import ClassificationResult
from scribe_engine.services.scribe_api import ClassificationClient, ScribeApiError
from scribe_engine.strategies import ClassificationStrategyManager, StrategyType

logger = logging.getLogger(__name__)


class ScribeSessionError(RuntimeError):
    """Raised when a session is used outside its lifecycle."""


@dataclass(frozen=True, slots=True)
class SpeechRecognitionEvent:
    """Text recognized by the speech transport."""

    text: str
    timestamp: datetime | None = None


class ScribeSession:
    """One conversation: feeds chunks through a strategy and merges classifications."""

    def __init__(
        self,
        *,
        mapper: GenericMapper,
        client: ClassificationClient,
        schema_definition: SchemaDefinition,
        initial_state: ClassificationChart | None = None,
        initial_chunks: list[str] | None = None,
        strategy: StrategyType | str = StrategyType.SEQUENTIAL,
        provider_id: str | None = None,
    ) -> None:
        self._mapper = mapper
        # Every call for this conversation goes out under one provider.
        self._client = client.with_provider(provider_id) if provider_id else client
        self._provider_id = provider_id
        self._schema_names = schema_names(schema_definition)
        self._initial_chunks = list(initial_chunks or [])
        self._conversation_id: str | None = None
        self._last_text: str | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self.is_initialized = False

        self._strategy_manager = ClassificationStrategyManager(self.process_chunk)
        self._strategy_manager.set_strategy(strategy)
        self.chart_updates: LatestValueNotifier[ClassificationChart] = LatestValueNotifier(
            initial_state or ClassificationChart.empty(self._schema_names)
        )

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    @property
    def provider_id(self) -> str | None:
        return self._provider_id

    @property
    def chart(self) -> ClassificationChart:
        return self.chart_updates.value

    @property
    def classification_results(self) -> LatestValueNotifier[dict[str, Any]]:
        return self._strategy_manager.classification_results

    @property
    def strategy_manager(self) -> ClassificationStrategyManager:
        return self._strategy_manager

    @property
    def schema_names(self) -> list[str]:
        return list(self._schema_names)

    async def initialize_conversation(self) -> str:
        """Open the remote conversation and replay any initial chunks."""

        try:
            self._conversation_id = await asyncio.to_thread(self._client.initialize_conversation)
        except ScribeApiError:
            logger.exception("scribe.initialize_failed")
            raise
        self.is_initialized = True
        logger.info(
            "scribe.session_initialized conversation_id=%s initial_chunks=%d",
            self._conversation_id,
            len(self._initial_chunks),
        )
        for chunk in self._initial_chunks:
            self.submit_chunk(chunk)
        return self._conversation_id

    def set_strategy(self, kind: StrategyType | str) -> None:
        self._strategy_manager.set_strategy(kind)

    def handle_recognized_speech(self, event: SpeechRecognitionEvent) -> asyncio.Task[None] | None:
        """Forward recognized text, dropping blanks and consecutive repeats."""

        if not event.text.strip():
            return None
        if event.text == self._last_text:
            logger.debug("scribe.duplicate_chunk_skipped conversation_id=%s", self._conversation_id)
            return None
        self._last_text = event.text
        return self.submit_chunk(event.text)

    def submit_chunk(self, chunk: str) -> asyncio.Task[None]:
        """Schedule ``chunk`` on the active strategy without waiting for it."""

        task = asyncio.get_running_loop().create_task(self._strategy_manager.handle_chunk(chunk))
        self._pending.add(task)
        task.add_done_callback(self._on_chunk_done)
        return task

    async def wait_idle(self) -> None:
        """Wait until every scheduled chunk has been handled."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def process_chunk(self, chunk: str, chunks: list[str]) -> None:
        """Classify only the sections the service reports as present."""

        conversation_id = self._require_conversation_id()
        try:
            sections_present = await asyncio.to_thread(
                self._client.check_sections_present,
                chunk,
                conversation_id,
                len(chunks),
            )
        except ScribeApiError:
            logger.exception(
                "scribe.sections_present_failed conversation_id=%s sequence_number=%d",
                conversation_id,
                len(chunks),
            )
            return

        sections_to_classify = sections_present.flagged_sections()
        if sections_to_classify:
            await self.classify_chunk(chunk, chunks, sections_to_classify)

    async def classify_chunk(
        self,
        chunk: str,
        chunks: list[str],
        sections_to_classify: list[str] | None = None,
    ) -> None:
        """Classify the running transcript and merge the result into the chart."""

        conversation_id = self._require_conversation_id()
        full_conversation = " ".join(chunks)
        sequence_number = len(chunks)
        sections = list(sections_to_classify) if sections_to_classify else list(self._schema_names)

        started = perf_counter()
        try:
            result = await asyncio.to_thread(
                self._client.classify,
                full_conversation,
                sections,
                conversation_id,
                sequence_number,
            )
        except ScribeApiError:
            logger.exception(
                "scribe.classify_failed conversation_id=%s sequence_number=%d",
                conversation_id,
                sequence_number,
            )
            return

        logger.info(
            "scribe.classify_timing conversation_id=%s sequence_number=%d sections=%d total_ms=%.2f",
            conversation_id,
            sequence_number,
            len(sections),
            (perf_counter() - started) * 1000.0,
        )
        self.handle_classification_result(result)

    def handle_classification_result(self, result: ClassificationResult | None) -> None:
        if result is None:
            return
        self.classification_results.publish(result.model_dump())
        updated_chart = self._mapper.map_all_data(result.classification, self.chart)
        self.chart_updates.publish(updated_chart)

    async def cleanup_conversation(self) -> None:
        """Tear down the strategy and release the remote conversation."""

        self._strategy_manager.cleanup()
        for task in list(self._pending):
            task.cancel()
        if self._conversation_id is not None:
            await asyncio.to_thread(self._client.cleanup, self._conversation_id)
        self.is_initialized = False
        logger.info("scribe.session_cleaned_up conversation_id=%s", self._conversation_id)

    def _require_conversation_id(self) -> str:
        if self._conversation_id is None:
            raise ScribeSessionError("Conversation is not initialized.")
        return self._conversation_id

    def _on_chunk_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "scribe.chunk_failed conversation_id=%s error=%s",
                self._conversation_id,
                exc,
                exc_info=exc,
            )


class SessionRegistry:
    """In-memory map of live sessions keyed by conversation id."""

    def __init__(self) -> None:
        self._sessions: dict[str, ScribeSession] = {}

    def add(self, session: ScribeSession) -> None:
        conversation_id = session.conversation_id
        if conversation_id is None:
            raise ScribeSessionError("Only initialized sessions can be registered.")
        self._sessions[conversation_id] = session

    def get(self, conversation_id: str) -> ScribeSession | None:
        return self._sessions.get(conversation_id)

    def pop(self, conversation_id: str) -> ScribeSession | None:
        return self._sessions.pop(conversation_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    async def close_all(self) -> None:
        for conversation_id in list(self._sessions):
            session = self._sessions.pop(conversation_id)
            try:
                await session.cleanup_conversation()
            except Exception:
                logger.exception("scribe.session_cleanup_failed conversation_id=%s", conversation_id)
