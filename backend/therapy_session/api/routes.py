"""API routes for session control, summaries and health checks."""

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from therapy_session.core.config import get_settings
from therapy_session.core.errors import (
    ActivityIndexError,
    ConfigurationError,
    SessionError,
    StateError,
    ValidationError,
)
from therapy_session.engine.session import SessionEngine
from therapy_session.engine.tokens import DEFAULT_REWARDS, unlocked_rewards
from therapy_session.models.session import (
    AdvanceRequest,
    CompleteRequest,
    SessionCreate,
    SessionPhase,
    SessionSnapshot,
    SessionSummary,
    SuccessRateRequest,
    TokenResponse,
)
from therapy_session.services.content import ContentGenerationError, ContentGenerator, build_prompt
from therapy_session.services.session_manager import FINAL_EVENTS, SessionExistsError, session_manager

router = APIRouter()


def _engine(session_id: str) -> SessionEngine:
    engine = session_manager.get(session_id)
    if not engine:
        raise HTTPException(status_code=404, detail="Session not found")
    return engine


def _http_error(error: SessionError) -> HTTPException:
    if isinstance(error, StateError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (ValidationError, ConfigurationError, ActivityIndexError)):
        return HTTPException(status_code=422, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()

    return {
        "status": "healthy",
        "service": "therapy-session-backend",
        "version": "0.1.0",
        "dependencies": {
            "summary_store": session_manager.store.backend,
        },
        "active_sessions": len(session_manager.engines),
        "max_tokens": settings.max_tokens,
    }


@router.post("/sessions", response_model=SessionSnapshot, status_code=201)
async def create_session(request: SessionCreate):
    """Register a session configuration. The session starts on /start."""
    try:
        engine = session_manager.create(request.config, max_tokens=request.max_tokens)
    except SessionExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return engine.snapshot()


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    """Get the live state of a session."""
    return _engine(session_id).snapshot()


@router.post("/sessions/{session_id}/start", response_model=SessionSnapshot)
async def start_session(session_id: str):
    engine = _engine(session_id)
    try:
        engine.start()
    except SessionError as e:
        raise _http_error(e)
    return engine.snapshot()


@router.post("/sessions/{session_id}/pause", response_model=SessionSnapshot)
async def pause_session(session_id: str):
    engine = _engine(session_id)
    try:
        engine.pause()
    except SessionError as e:
        raise _http_error(e)
    return engine.snapshot()


@router.post("/sessions/{session_id}/resume", response_model=SessionSnapshot)
async def resume_session(session_id: str):
    engine = _engine(session_id)
    try:
        engine.resume()
    except SessionError as e:
        raise _http_error(e)
    return engine.snapshot()


@router.post("/sessions/{session_id}/advance", response_model=SessionSnapshot)
async def advance_activity(session_id: str, request: AdvanceRequest):
    """Move to a later activity; moving past the last one ends the session."""
    engine = _engine(session_id)
    try:
        engine.advance_activity(request.target_index)
    except SessionError as e:
        raise _http_error(e)
    await session_manager.flush()
    return engine.snapshot()


@router.post("/sessions/{session_id}/skip", response_model=SessionSnapshot)
async def skip_activity(session_id: str):
    """Move to the next activity without recording a success rate."""
    engine = _engine(session_id)
    try:
        engine.skip_activity()
    except SessionError as e:
        raise _http_error(e)
    await session_manager.flush()
    return engine.snapshot()


@router.post("/sessions/{session_id}/success-rate", response_model=SessionSnapshot)
async def record_success_rate(session_id: str, request: SuccessRateRequest):
    engine = _engine(session_id)
    try:
        engine.record_success_rate(request.activity_index, request.rate)
    except SessionError as e:
        raise _http_error(e)
    return engine.snapshot()


@router.post("/sessions/{session_id}/tokens", response_model=TokenResponse)
async def award_token(session_id: str):
    engine = _engine(session_id)
    try:
        count = engine.award_token()
    except SessionError as e:
        raise _http_error(e)
    return TokenResponse(session_id=session_id, token_count=count, max_tokens=engine.tokens.max)


@router.get("/sessions/{session_id}/rewards")
async def get_rewards(session_id: str):
    """Reward catalog with progress toward each reward."""
    engine = _engine(session_id)
    unlocked = {reward.id for reward in unlocked_rewards(engine.tokens)}

    return [
        {
            "id": reward.id,
            "name": reward.name,
            "description": reward.description,
            "tokenCost": reward.token_cost,
            "progress": engine.tokens.progress_to_reward(reward.token_cost),
            "unlocked": reward.id in unlocked,
        }
        for reward in DEFAULT_REWARDS
    ]


@router.post("/sessions/{session_id}/complete", response_model=SessionSnapshot)
async def complete_activity(session_id: str, request: CompleteRequest):
    """Activity completion callback: record the rate and move on."""
    engine = _engine(session_id)
    try:
        engine.complete_activity(request.success_rate)
    except SessionError as e:
        raise _http_error(e)
    await session_manager.flush()
    return engine.snapshot()


@router.post("/sessions/{session_id}/end", response_model=SessionSummary)
async def end_session(session_id: str):
    engine = _engine(session_id)
    try:
        summary = engine.end()
    except SessionError as e:
        raise _http_error(e)
    await session_manager.flush()
    return summary


@router.post("/sessions/{session_id}/content")
async def generate_content(session_id: str):
    """Generate simulated content for the current activity."""
    engine = _engine(session_id)
    activity = engine.current_activity
    if activity is None:
        raise HTTPException(status_code=409, detail="No activity in progress")

    prompt = build_prompt(
        activity.kind,
        activity.targets or engine.config.speech_targets,
        theme=engine.config.theme,
    )
    try:
        content = await ContentGenerator().generate(prompt, engine.config.theme)
    except ContentGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"activity_id": activity.id, "prompt": prompt, "content": content}


@router.delete("/sessions/{session_id}")
async def remove_session(session_id: str):
    """Forget a session. Its summary, if any, stays available."""
    engine = await session_manager.remove(session_id)
    if not engine:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session_id": session_id, "status": "removed", "phase": engine.phase.value}


@router.get("/summaries")
async def list_summaries():
    """Ids of every session with a stored summary."""
    return {"sessionIds": await session_manager.store.list_ids()}


@router.get("/summaries/{session_id}", response_model=SessionSummary)
async def get_summary(session_id: str):
    summary = await session_manager.store.get(session_id)
    if not summary:
        raise HTTPException(status_code=404, detail="Summary not found")
    return summary


@router.websocket("/sessions/{session_id}/ws")
async def session_websocket(websocket: WebSocket, session_id: str):
    """
    WebSocket endpoint for real-time session events.

    Sends a snapshot of the session first, then streams engine events
    (start, pause, tokens, activity changes, ticks, end) to the client.
    Every connection gets its own bounded queue.
    """
    engine = session_manager.get(session_id)
    queue = session_manager.subscribe(session_id)
    if engine is None or queue is None:
        await websocket.close(code=4004, reason="Session not found")
        return

    try:
        await websocket.accept()
        await websocket.send_json(
            {
                "type": "snapshot",
                "session_id": session_id,
                "snapshot": engine.snapshot().model_dump(mode="json", by_alias=True),
            }
        )
        if engine.phase == SessionPhase.ENDED:
            await websocket.close()
            return

        while True:
            event = await queue.get()
            await websocket.send_json(event)
            if event["type"] in FINAL_EVENTS:
                await websocket.close()
                return
    except WebSocketDisconnect:
        return
    finally:
        session_manager.unsubscribe(session_id, queue)
