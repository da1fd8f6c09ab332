"""
Conversation Router

API endpoints for the voice form-filling dialogue.
Each session owns one DialogueEngine; the client sends final transcripts
and renders (or speaks) the returned messages.

Endpoints:
    POST /conversation/session - Create new conversation session
    POST /conversation/message - Process user message
    GET /conversation/session/{id} - Get session status
    DELETE /conversation/session/{id} - End session
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from config.settings import settings
from core.dependencies import (
    get_form_definitions,
    get_session_manager,
    get_speech_service,
    get_understanding_service,
    resolve_form,
)
from core.schemas import CreateSessionRequest, MessageRequest
from services.ai.collaborators import RecordingSinks
from services.ai.dialogue_engine import DialogueEngine
from services.ai.models import FormSchema
from services.ai.session_manager import ConversationSession, SessionManager
from services.ai.understanding import UnderstandingService
from services.form.definitions import BuiltinFormDefinitions
from services.voice.capture import SpeechCapture
from services.voice.playback import AudioOutbox, SpeechPlaybackQueue
from services.voice.speech import SpeechService
from utils.exceptions import InputValidationError
from utils.logging import get_logger
from utils.rate_limit import RATE_LIMITS, limiter

logger = get_logger(__name__)

router = APIRouter(prefix="/conversation", tags=["Conversation"])


def _apply_initial_data(schema: FormSchema, initial_data: Optional[Dict[str, str]]) -> None:
    """Prefill values the client already knows, keyed by fieldKey."""
    for key, value in (initial_data or {}).items():
        form_field = schema.get_field(None, key)
        if form_field is None:
            raise InputValidationError(f"Unknown field in initial_data: {key}", field=key)
        form_field.value = form_field.match_option(value) if value else ""


def _session_payload(session: ConversationSession) -> Dict[str, Any]:
    return {
        "session_id": session.id,
        "submitted_values": session.sinks.submitted_values,
        "navigated_back": session.sinks.navigated_back,
    }


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/session", summary="Create conversation session")
@limiter.limit(RATE_LIMITS["session"])
async def create_session(
    request: Request,  # Required for rate limiter
    payload: CreateSessionRequest,
    background_tasks: BackgroundTasks,
    understanding: UnderstandingService = Depends(get_understanding_service),
    definitions: BuiltinFormDefinitions = Depends(get_form_definitions),
    manager: SessionManager = Depends(get_session_manager),
    speech: SpeechService = Depends(get_speech_service),
):
    """
    Start a conversation for a form.

    The form comes from ``form_sections`` when given, otherwise from the
    built-in definition for ``form_code``. Returns the welcome message and
    the first question.
    With text-to-speech configured every assistant message is also
    synthesized; clips are fetched from /speech/session/{id}/audio.
    """
    schema = resolve_form(payload.form_code, payload.form_sections, definitions)
    _apply_initial_data(schema, payload.initial_data)

    sinks = RecordingSinks()
    outbox = AudioOutbox() if speech.enabled else None
    playback = SpeechPlaybackQueue(speech.as_speaker(outbox.put)) if outbox is not None else None
    engine = DialogueEngine(
        schema,
        form_code=schema.form_code or payload.form_code,
        understanding=understanding,
        field_sink=sinks,
        submission_sink=sinks,
        navigation_sink=sinks,
        playback=playback,
    )
    session = await manager.create_session(
        engine,
        sinks,
        capture=SpeechCapture(supported=settings.SPEECH_CAPTURE_ENABLED),
        audio=outbox,
    )
    reply = await engine.start()

    # Schedule cleanup of expired sessions
    background_tasks.add_task(manager.cleanup_expired)

    logger.info(f"Created session {session.id} for form '{engine.form_code}'")
    return {
        **_session_payload(session),
        **reply.to_dict(),
        "form": schema.to_dict(),
        "speech_enabled": outbox is not None,
    }


@router.post("/message", summary="Process user message")
@limiter.limit(RATE_LIMITS["conversation"])
async def send_message(
    request: Request,  # Required for rate limiter
    payload: MessageRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Run one dialogue turn for a final transcript.

    404 for unknown or expired sessions, 409 while the previous turn of
    the same session is still being processed.
    """
    session = await manager.get_session(payload.session_id)
    if session.audio is not None:
        session.audio.clear()
    reply = await session.engine.handle_utterance(payload.message)
    session.sinks.drain_updates()
    return {**_session_payload(session), **reply.to_dict()}


@router.get("/session/{session_id}", summary="Get session status")
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    session = await manager.get_session(session_id)
    return {
        **session.engine.summary(),
        "expires_at": session.expires_at.isoformat(),
        "submitted_values": session.sinks.submitted_values,
    }


@router.delete("/session/{session_id}", summary="End session")
async def end_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    deleted = await manager.delete_session(session_id)
    if deleted:
        logger.info(f"Ended session {session_id}")
    return {"session_id": session_id, "deleted": deleted}
