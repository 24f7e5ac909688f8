"""Transcription session routes."""

from fastapi import APIRouter, Depends, HTTPException, Path

from scribe_engine.config import Settings
from scribe_engine.dependencies import (
    get_app_settings,
    get_classification_client,
    get_mapper,
    get_schema_definition,
    get_session_registry,
)
from scribe_engine.mapping import GenericMapper
from scribe_engine.schema import SchemaDefinition
from scribe_engine.schemas.common import ApiResponse, StatusMessage
from scribe_engine.schemas.session import (
    ChartRead,
    ChunkSubmitRequest,
    SessionCreateRequest,
    SessionRead,
    StrategyUpdateRequest,
)
from scribe_engine.services.scribe_api import ClassificationClient, ScribeApiError
from scribe_engine.services.session import ScribeSession, SessionRegistry, SpeechRecognitionEvent
from scribe_engine.strategies import InvalidStrategyTypeError

router = APIRouter(prefix="/sessions")


@router.post("", response_model=ApiResponse[SessionRead])
async def create_session(
    payload: SessionCreateRequest,
    settings: Settings = Depends(get_app_settings),
    mapper: GenericMapper = Depends(get_mapper),
    client: ClassificationClient = Depends(get_classification_client),
    schema_definition: SchemaDefinition = Depends(get_schema_definition),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[SessionRead]:
    """Open a remote conversation and start accepting transcript chunks."""

    try:
        session = ScribeSession(
            mapper=mapper,
            client=client,
            schema_definition=schema_definition,
            initial_chunks=payload.initial_chunks if payload.initial_chunks is not None else settings.initial_chunks,
            strategy=payload.strategy or settings.default_strategy,
            provider_id=payload.provider_id,
        )
    except InvalidStrategyTypeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        await session.initialize_conversation()
    except ScribeApiError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    registry.add(session)
    return ApiResponse(data=_session_read(session))


@router.post("/{conversation_id}/chunks", response_model=ApiResponse[SessionRead])
async def submit_chunk(
    payload: ChunkSubmitRequest,
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[SessionRead]:
    """Feed one recognized transcript fragment into the session."""

    session = _get_session_or_404(registry, conversation_id)
    session.handle_recognized_speech(SpeechRecognitionEvent(text=payload.text, timestamp=payload.timestamp))
    if payload.wait:
        await session.wait_idle()
    return ApiResponse(data=_session_read(session))


@router.put("/{conversation_id}/strategy", response_model=ApiResponse[SessionRead])
def update_strategy(
    payload: StrategyUpdateRequest,
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[SessionRead]:
    """Swap the chunk strategy; an invalid kind leaves no strategy active."""

    session = _get_session_or_404(registry, conversation_id)
    try:
        session.set_strategy(payload.strategy)
    except InvalidStrategyTypeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(data=_session_read(session))


@router.get("/{conversation_id}/chart", response_model=ApiResponse[ChartRead])
def get_chart(
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[ChartRead]:
    """Return the current classification chart."""

    session = _get_session_or_404(registry, conversation_id)
    return ApiResponse(data=ChartRead.model_validate(session.chart.to_dict()))


@router.delete("/{conversation_id}", response_model=ApiResponse[StatusMessage])
async def delete_session(
    conversation_id: str = Path(..., min_length=1),
    registry: SessionRegistry = Depends(get_session_registry),
) -> ApiResponse[StatusMessage]:
    """Tear down the session and release the remote conversation."""

    session = _get_session_or_404(registry, conversation_id)
    registry.pop(conversation_id)
    try:
        await session.cleanup_conversation()
    except ScribeApiError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ApiResponse(data=StatusMessage(status="cleaned_up", detail=conversation_id))


def _get_session_or_404(registry: SessionRegistry, conversation_id: str) -> ScribeSession:
    session = registry.get(conversation_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {conversation_id}")
    return session


def _session_read(session: ScribeSession) -> SessionRead:
    strategy = session.strategy_manager.current_strategy
    return SessionRead(
        conversation_id=session.conversation_id or "",
        is_initialized=session.is_initialized,
        provider_id=session.provider_id,
        strategy=strategy.kind if strategy is not None else None,
        chunk_count=len(strategy.state.chunks) if strategy is not None else 0,
        chart=ChartRead.model_validate(session.chart.to_dict()),
    )
