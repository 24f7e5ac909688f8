"""Replay a transcript file through a classification session.

Each non-empty line of the transcript is treated as one recognized speech
chunk. The resulting chart is printed as JSON.

Usage (from repository root):
    python backend/scripts/replay_transcript.py path/to/transcript.txt

Usage (from backend directory):
    python scripts/replay_transcript.py path/to/transcript.txt --strategy immediate
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Make `scribe_engine` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from scribe_engine.config import get_settings
from scribe_engine.mapping import GenericMapper
from scribe_engine.schema import SchemaParser, load_schema_definition
from scribe_engine.services.scribe_api import ScribeApiClient
from scribe_engine.services.session import ScribeSession, SpeechRecognitionEvent
from scribe_engine.strategies import StrategyType


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Replay a transcript through the classification engine.")
    parser.add_argument("transcript", type=Path, help="Text file with one transcript chunk per line.")
    parser.add_argument(
        "--strategy",
        choices=[kind.value for kind in StrategyType],
        default=None,
        help="Chunk strategy to use (default: DEFAULT_STRATEGY setting).",
    )
    parser.add_argument(
        "--schemas",
        type=Path,
        default=None,
        help="Schema definition JSON (default: SCHEMA_DEFINITION_PATH setting).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable INFO logging.")
    return parser.parse_args()


async def replay(args: argparse.Namespace) -> dict:
    settings = get_settings()
    schema_definition = load_schema_definition(args.schemas or settings.schema_definition_path)
    session = ScribeSession(
        mapper=GenericMapper(SchemaParser(schema_definition)),
        client=ScribeApiClient.from_settings(settings, schema_definition),
        schema_definition=schema_definition,
        strategy=args.strategy or settings.default_strategy,
    )
    await session.initialize_conversation()
    try:
        for line in args.transcript.read_text(encoding="utf-8").splitlines():
            session.handle_recognized_speech(SpeechRecognitionEvent(text=line.strip()))
        await session.wait_idle()
        return session.chart.to_dict()
    finally:
        await session.cleanup_conversation()


def main() -> None:
    """Replay the transcript and print the final chart."""

    args = parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    chart = asyncio.run(replay(args))
    print(json.dumps(chart, indent=2))


if __name__ == "__main__":
    main()
