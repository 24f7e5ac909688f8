"""Schemas for transcription session endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from scribe_engine.strategies import StrategyType


class SessionCreateRequest(BaseModel):
    """Request payload for starting a classification session."""

    strategy: StrategyType | None = None
    initial_chunks: list[str] | None = None
    provider_id: str | None = Field(default=None, min_length=1)


class ChunkSubmitRequest(BaseModel):
    """One recognized transcript fragment."""

    text: str
    timestamp: datetime | None = None
    wait: bool = False


class StrategyUpdateRequest(BaseModel):
    """Request payload for swapping the chunk strategy."""

    strategy: str = Field(min_length=1)


class ChartRead(BaseModel):
    """Serialized classification chart."""

    sections: dict[str, Any] = Field(default_factory=dict)
    dataReferenceItems: dict[str, dict[str, Any]] = Field(default_factory=dict)


class SessionRead(BaseModel):
    """Session status summary."""

    conversation_id: str
    is_initialized: bool
    provider_id: str | None = None
    strategy: StrategyType | None = None
    chunk_count: int = 0
    chart: ChartRead
