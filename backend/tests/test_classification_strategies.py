"""Tests for the immediate and sequential chunk strategies."""

from __future__ import annotations

import asyncio
import unittest

from scribe_engine.strategies import (
    InvalidStrategyTypeError,
    StrategyType,
    create_strategy,
    parse_strategy_type,
)

_STRATEGY_LOGGER = "scribe_engine.strategies.classification"


class _GatedProcessor:
    """Records calls and blocks each one until the gate opens."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.gate = asyncio.Event()
        self.calls: list[tuple[str, list[str]]] = []
        self.active = 0
        self.max_active = 0
        self.fail_on = fail_on or set()

    async def __call__(self, chunk: str, chunks: list[str]) -> None:
        self.calls.append((chunk, chunks))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.gate.wait()
            if chunk in self.fail_on:
                raise RuntimeError(f"classification failed for {chunk}")
        finally:
            self.active -= 1


class SequentialStrategyTests(unittest.IsolatedAsyncioTestCase):
    async def test_chunks_are_processed_in_order_one_at_a_time(self) -> None:
        processor = _GatedProcessor()
        strategy = create_strategy(StrategyType.SEQUENTIAL, processor)

        first = asyncio.create_task(strategy.handle_chunk("a"))
        await asyncio.sleep(0)
        await strategy.handle_chunk("b")
        await strategy.handle_chunk("c")

        self.assertEqual(processor.calls, [("a", ["a"])])
        self.assertTrue(strategy.state.is_processing)
        self.assertEqual(list(strategy.state.queue), ["b", "c"])

        processor.gate.set()
        await first

        self.assertEqual(
            processor.calls,
            [("a", ["a"]), ("b", ["a", "b"]), ("c", ["a", "b", "c"])],
        )
        self.assertEqual(processor.max_active, 1)
        self.assertFalse(strategy.state.is_processing)
        self.assertEqual(strategy.state.chunks, ["a", "b", "c"])
        self.assertEqual(len(strategy.state.queue), 0)

    async def test_failure_is_logged_and_queue_keeps_draining(self) -> None:
        processor = _GatedProcessor(fail_on={"a"})
        strategy = create_strategy("sequential", processor)

        first = asyncio.create_task(strategy.handle_chunk("a"))
        await asyncio.sleep(0)
        await strategy.handle_chunk("b")

        with self.assertLogs(_STRATEGY_LOGGER, level="ERROR") as captured:
            processor.gate.set()
            await first

        self.assertIn("scribe.sequential_chunk_failed", captured.output[0])
        self.assertEqual([chunk for chunk, _ in processor.calls], ["a", "b"])
        self.assertEqual(strategy.state.chunks, ["a", "b"])
        self.assertFalse(strategy.state.is_processing)

    async def test_cleanup_discards_queued_chunks(self) -> None:
        processor = _GatedProcessor()
        strategy = create_strategy(StrategyType.SEQUENTIAL, processor)

        first = asyncio.create_task(strategy.handle_chunk("a"))
        await asyncio.sleep(0)
        await strategy.handle_chunk("b")
        strategy.cleanup()
        processor.gate.set()
        await first

        self.assertEqual([chunk for chunk, _ in processor.calls], ["a"])
        self.assertEqual(strategy.state.chunks, [])
        self.assertEqual(len(strategy.state.queue), 0)
        self.assertFalse(strategy.state.is_processing)


class ImmediateStrategyTests(unittest.IsolatedAsyncioTestCase):
    async def test_chunks_are_processed_concurrently_with_snapshots(self) -> None:
        processor = _GatedProcessor()
        strategy = create_strategy(StrategyType.IMMEDIATE, processor)

        first = asyncio.create_task(strategy.handle_chunk("a"))
        second = asyncio.create_task(strategy.handle_chunk("b"))
        await asyncio.sleep(0)

        self.assertEqual(processor.calls, [("a", ["a"]), ("b", ["a", "b"])])
        self.assertEqual(processor.max_active, 2)

        processor.gate.set()
        await asyncio.gather(first, second)
        self.assertEqual(strategy.state.chunks, ["a", "b"])

    async def test_chunk_list_passed_to_processor_is_a_copy(self) -> None:
        received: list[list[str]] = []

        async def process(chunk: str, chunks: list[str]) -> None:
            received.append(chunks)
            chunks.append("tampered")

        strategy = create_strategy(StrategyType.IMMEDIATE, process)
        await strategy.handle_chunk("a")
        await strategy.handle_chunk("b")

        self.assertEqual(strategy.state.chunks, ["a", "b"])
        self.assertEqual(received[1], ["a", "b", "tampered"])

    async def test_failure_propagates_to_caller(self) -> None:
        processor = _GatedProcessor(fail_on={"a"})
        processor.gate.set()
        strategy = create_strategy(StrategyType.IMMEDIATE, processor)

        with self.assertRaisesRegex(RuntimeError, "classification failed for a"):
            await strategy.handle_chunk("a")

        self.assertEqual(strategy.state.chunks, ["a"])


class StrategyLifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_cleanup_resets_state_and_completes_results(self) -> None:
        processor = _GatedProcessor()
        processor.gate.set()
        strategy = create_strategy(StrategyType.IMMEDIATE, processor)
        completions: list[bool] = []
        strategy.results.subscribe(on_complete=lambda: completions.append(True))
        await strategy.handle_chunk("a")

        strategy.cleanup()
        strategy.cleanup()

        self.assertEqual(strategy.state.chunks, [])
        self.assertTrue(strategy.state.closed)
        self.assertTrue(strategy.results.completed)
        self.assertEqual(completions, [True])

    async def test_chunks_after_cleanup_are_ignored(self) -> None:
        processor = _GatedProcessor()
        processor.gate.set()
        strategy = create_strategy(StrategyType.SEQUENTIAL, processor)
        strategy.cleanup()

        with self.assertLogs(_STRATEGY_LOGGER, level="WARNING"):
            await strategy.handle_chunk("late")

        self.assertEqual(processor.calls, [])
        self.assertEqual(strategy.state.chunks, [])

    def test_parse_strategy_type_accepts_values_and_members(self) -> None:
        self.assertIs(parse_strategy_type("immediate"), StrategyType.IMMEDIATE)
        self.assertIs(parse_strategy_type(StrategyType.SEQUENTIAL), StrategyType.SEQUENTIAL)

    def test_unknown_kind_raises(self) -> None:
        async def process(chunk: str, chunks: list[str]) -> None:
            return None

        with self.assertRaisesRegex(InvalidStrategyTypeError, "Invalid strategy type: batch"):
            create_strategy("batch", process)


if __name__ == "__main__":
    unittest.main()
