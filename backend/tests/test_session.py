"""Tests for the classification session orchestration."""

from __future__ import annotations

import unittest
from pathlib import Path

from scribe_engine.mapping import ClassificationChart, DataReference, GenericMapper
from scribe_engine.schema import SchemaParser, load_schema_definition
from scribe_engine.schemas.classification import ClassificationResult, SectionsPresentResult
from scribe_engine.services.scribe_api import ScribeApiError
from scribe_engine.services.session import (
    ScribeSession,
    ScribeSessionError,
    SessionRegistry,
    SpeechRecognitionEvent,
)
from scribe_engine.strategies import StrategyType

_SCHEMAS_PATH = Path(__file__).resolve().parents[1] / "schemas.json"
_SESSION_LOGGER = "scribe_engine.services.session"

_CLASSIFICATION = {
    "reasonForVisit": {
        "historyOfPresentIllness": {
            "chiefComplaint": [{"name": {"label": "dry eye", "Profile_KbEntityId": 77}}],
        }
    },
    "unknownSection": {"ignored": True},
}


class _StubClassificationClient:
    def __init__(
        self,
        *,
        flags: dict[str, bool] | None = None,
        classification: dict | None = None,
        fail_sections_present: bool = False,
        fail_classify: bool = False,
        conversation_id: str = "conv-1",
        cleanup_error: Exception | None = None,
    ) -> None:
        self.flags = flags if flags is not None else {"reasonForVisit": True, "plan": False}
        self.classification = classification if classification is not None else _CLASSIFICATION
        self.fail_sections_present = fail_sections_present
        self.fail_classify = fail_classify
        self.sections_present_calls: list[tuple[str, str, int]] = []
        self.classify_calls: list[tuple[str, list[str], str, int]] = []
        self.conversation_id = conversation_id
        self.cleanup_error = cleanup_error
        self.provider_id: str | None = None
        self.cleanup_calls: list[str] = []

    def initialize_conversation(self) -> str:
        return self.conversation_id

    def check_sections_present(
        self,
        transcript: str,
        conversation_id: str,
        sequence_number: int,
    ) -> SectionsPresentResult:
        self.sections_present_calls.append((transcript, conversation_id, sequence_number))
        if self.fail_sections_present:
            raise ScribeApiError("sections present unavailable")
        return SectionsPresentResult(updated_flags=self.flags)

    def classify(
        self,
        transcript: str,
        sections: list[str],
        conversation_id: str,
        sequence_number: int,
    ) -> ClassificationResult:
        self.classify_calls.append((transcript, sections, conversation_id, sequence_number))
        if self.fail_classify:
            raise ScribeApiError("classify unavailable")
        return ClassificationResult(classification=self.classification)

    def cleanup(self, conversation_id: str) -> None:
        self.cleanup_calls.append(conversation_id)
        if self.cleanup_error is not None:
            raise self.cleanup_error

    def with_provider(self, provider_id: str) -> _StubClassificationClient:
        self.provider_id = provider_id
        return self


class ScribeSessionTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.schema_definition = load_schema_definition(_SCHEMAS_PATH)
        self.mapper = GenericMapper(SchemaParser(self.schema_definition))

    def _session(self, client: _StubClassificationClient, **kwargs) -> ScribeSession:
        return ScribeSession(
            mapper=self.mapper,
            client=client,
            schema_definition=self.schema_definition,
            **kwargs,
        )

    async def test_default_chart_has_one_empty_section_per_schema(self) -> None:
        session = self._session(_StubClassificationClient())

        self.assertEqual(session.chart.sections, {"reasonForVisit": {}, "plan": {}})
        self.assertEqual(session.chart.data_reference_items, {})
        self.assertIs(session.strategy_manager.current_strategy.kind, StrategyType.SEQUENTIAL)

    async def test_initialize_sets_conversation_id(self) -> None:
        session = self._session(_StubClassificationClient())

        conversation_id = await session.initialize_conversation()

        self.assertEqual(conversation_id, "conv-1")
        self.assertEqual(session.conversation_id, "conv-1")
        self.assertTrue(session.is_initialized)

    async def test_speech_is_classified_and_merged_into_chart(self) -> None:
        client = _StubClassificationClient()
        session = self._session(client)
        await session.initialize_conversation()

        session.handle_recognized_speech(SpeechRecognitionEvent(text="my eyes are dry"))
        session.handle_recognized_speech(SpeechRecognitionEvent(text="since last week"))
        await session.wait_idle()

        self.assertEqual(
            client.sections_present_calls,
            [("my eyes are dry", "conv-1", 1), ("since last week", "conv-1", 2)],
        )
        self.assertEqual(
            client.classify_calls,
            [
                ("my eyes are dry", ["reasonForVisit"], "conv-1", 1),
                ("my eyes are dry since last week", ["reasonForVisit"], "conv-1", 2),
            ],
        )
        complaint = session.chart.sections["reasonForVisit"]["historyOfPresentIllness"]["chiefComplaint"][0]
        self.assertEqual(complaint, {"name": DataReference(data_item_id="1", data_table_id=210), "course": []})
        self.assertEqual(session.chart.sections["plan"], {})
        self.assertEqual(sorted(session.chart.data_reference_items), ["0", "1"])
        self.assertEqual(
            session.classification_results.value,
            {"classification": _CLASSIFICATION, "sections_present": {}},
        )

    async def test_no_flagged_sections_skips_classification(self) -> None:
        client = _StubClassificationClient(flags={"reasonForVisit": False})
        session = self._session(client, strategy=StrategyType.IMMEDIATE)
        await session.initialize_conversation()

        await session.process_chunk("hello", ["hello"])

        self.assertEqual(len(client.sections_present_calls), 1)
        self.assertEqual(client.classify_calls, [])
        self.assertEqual(session.chart.sections, {"reasonForVisit": {}, "plan": {}})

    async def test_sections_present_failure_skips_classification(self) -> None:
        client = _StubClassificationClient(fail_sections_present=True)
        session = self._session(client)
        await session.initialize_conversation()

        with self.assertLogs(_SESSION_LOGGER, level="ERROR") as captured:
            await session.process_chunk("hello", ["hello"])

        self.assertIn("scribe.sections_present_failed", captured.output[0])
        self.assertEqual(client.classify_calls, [])

    async def test_classify_failure_leaves_chart_unchanged(self) -> None:
        client = _StubClassificationClient(fail_classify=True)
        session = self._session(client)
        await session.initialize_conversation()
        before = session.chart

        with self.assertLogs(_SESSION_LOGGER, level="ERROR"):
            await session.classify_chunk("hello", ["hello"])

        self.assertIs(session.chart, before)
        self.assertIsNone(session.classification_results.value)

    async def test_classify_defaults_to_all_schema_sections(self) -> None:
        client = _StubClassificationClient()
        session = self._session(client)
        await session.initialize_conversation()

        await session.classify_chunk("b", ["a", "b"])

        self.assertEqual(client.classify_calls, [("a b", ["reasonForVisit", "plan"], "conv-1", 2)])

    async def test_blank_and_repeated_speech_is_dropped(self) -> None:
        client = _StubClassificationClient(flags={})
        session = self._session(client)
        await session.initialize_conversation()

        for text in ("a", "a", "  ", "b", "a"):
            session.handle_recognized_speech(SpeechRecognitionEvent(text=text))
        await session.wait_idle()

        self.assertEqual([call[0] for call in client.sections_present_calls], ["a", "b", "a"])
        self.assertEqual(session.strategy_manager.current_strategy.state.chunks, ["a", "b", "a"])

    async def test_initial_chunks_are_replayed_after_initialize(self) -> None:
        client = _StubClassificationClient(flags={})
        session = self._session(client, initial_chunks=["first", "second"])

        await session.initialize_conversation()
        await session.wait_idle()

        self.assertEqual(
            client.sections_present_calls,
            [("first", "conv-1", 1), ("second", "conv-1", 2)],
        )

    async def test_initial_state_is_used_as_starting_chart(self) -> None:
        chart = ClassificationChart(sections={"plan": {"followupWeeks": 6}})
        client = _StubClassificationClient(classification={"plan": {"followupWeeks": 2}}, flags={"plan": True})
        session = self._session(client, initial_state=chart)
        await session.initialize_conversation()

        await session.process_chunk("two weeks", ["two weeks"])

        self.assertEqual(session.chart.sections, {"plan": {"followupWeeks": 2, "physicianImpressions": []}})
        self.assertEqual(chart.sections, {"plan": {"followupWeeks": 6}})

    async def test_processing_before_initialize_raises(self) -> None:
        session = self._session(_StubClassificationClient())

        with self.assertRaises(ScribeSessionError):
            await session.process_chunk("hello", ["hello"])

    async def test_cleanup_releases_conversation_and_completes_results(self) -> None:
        client = _StubClassificationClient()
        session = self._session(client)
        await session.initialize_conversation()

        await session.cleanup_conversation()

        self.assertEqual(client.cleanup_calls, ["conv-1"])
        self.assertFalse(session.is_initialized)
        self.assertIsNone(session.strategy_manager.current_strategy)
        self.assertTrue(session.classification_results.completed)

    async def test_provider_id_selects_a_provider_scoped_client(self) -> None:
        client = _StubClassificationClient()
        session = self._session(client, provider_id="doctor-7")

        await session.initialize_conversation()

        self.assertEqual(client.provider_id, "doctor-7")
        self.assertEqual(session.provider_id, "doctor-7")

    async def test_without_provider_id_the_shared_client_is_used(self) -> None:
        client = _StubClassificationClient()
        session = self._session(client)

        self.assertIsNone(client.provider_id)
        self.assertIsNone(session.provider_id)

    async def test_invalid_strategy_can_be_recovered(self) -> None:
        client = _StubClassificationClient(flags={})
        session = self._session(client)
        await session.initialize_conversation()

        with self.assertRaises(ValueError):
            session.set_strategy("batch")
        self.assertIsNone(session.strategy_manager.current_strategy)

        session.set_strategy("immediate")
        await session.submit_chunk("hello")
        self.assertEqual(client.sections_present_calls, [("hello", "conv-1", 1)])


class SessionRegistryTests(unittest.IsolatedAsyncioTestCase):
    async def test_registry_tracks_initialized_sessions(self) -> None:
        schema_definition = load_schema_definition(_SCHEMAS_PATH)
        client = _StubClassificationClient()
        session = ScribeSession(
            mapper=GenericMapper(SchemaParser(schema_definition)),
            client=client,
            schema_definition=schema_definition,
        )
        registry = SessionRegistry()

        with self.assertRaises(ScribeSessionError):
            registry.add(session)

        await session.initialize_conversation()
        registry.add(session)
        self.assertIs(registry.get("conv-1"), session)
        self.assertEqual(len(registry), 1)

        await registry.close_all()

        self.assertEqual(len(registry), 0)
        self.assertEqual(client.cleanup_calls, ["conv-1"])

    async def test_close_all_continues_after_a_failed_cleanup(self) -> None:
        schema_definition = load_schema_definition(_SCHEMAS_PATH)
        mapper = GenericMapper(SchemaParser(schema_definition))
        failing = _StubClassificationClient(conversation_id="conv-1", cleanup_error=TimeoutError("read timed out"))
        healthy = _StubClassificationClient(conversation_id="conv-2")
        registry = SessionRegistry()
        for client in (failing, healthy):
            session = ScribeSession(mapper=mapper, client=client, schema_definition=schema_definition)
            await session.initialize_conversation()
            registry.add(session)

        with self.assertLogs(_SESSION_LOGGER, level="ERROR") as captured:
            await registry.close_all()

        self.assertIn("scribe.session_cleanup_failed conversation_id=conv-1", captured.output[0])
        self.assertEqual(failing.cleanup_calls, ["conv-1"])
        self.assertEqual(healthy.cleanup_calls, ["conv-2"])
        self.assertEqual(len(registry), 0)


if __name__ == "__main__":
    unittest.main()
