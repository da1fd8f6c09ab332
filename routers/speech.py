"""
Speech Router

Text-to-speech audio and recognizer plumbing for voice sessions.

The recognizer runs on the client (browser engine, Vosk, a cloud API) and
reports its results here; the session's SpeechCapture buffers them and
stop() turns the transcript into a dialogue turn. Assistant messages of
sessions created with TTS configured are synthesized in the background and
wait in the session's outbox until fetched.

Endpoints:
    POST /speech/tts - Synthesize arbitrary text
    GET /speech/session/{id}/audio - Next synthesized assistant message
    POST /speech/session/{id}/listen - Start capturing speech
    POST /speech/session/{id}/result - Recognizer result (interim or final)
    POST /speech/session/{id}/error - Recognizer error
    POST /speech/session/{id}/stop - Stop capturing and run the turn
"""

import asyncio
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response

from config.settings import settings
from core.dependencies import get_session_manager, get_speech_service
from core.schemas import ListenRequest, RecognitionErrorReport, RecognitionResult, SpeechRequest
from services.ai.session_manager import SessionManager
from services.voice.speech import SpeechService
from utils.exceptions import SpeechGenerationError, SpeechRecognitionError
from utils.logging import get_logger
from utils.rate_limit import RATE_LIMITS, limiter

logger = get_logger(__name__)

router = APIRouter(prefix="/speech", tags=["Speech & Audio"])

AUDIO_RESPONSES = {
    200: {
        "description": "Audio file (MP3)",
        "content": {"audio/mpeg": {}}
    },
}


# =============================================================================
# Text-to-Speech
# =============================================================================

@router.post(
    "/tts",
    summary="Synthesize speech",
    responses={**AUDIO_RESPONSES, 500: {"description": "Speech generation failed"}},
)
@limiter.limit(RATE_LIMITS["speech"])
async def synthesize(
    request: Request,  # Required for rate limiter
    payload: SpeechRequest,
    speech: SpeechService = Depends(get_speech_service),
):
    audio = await asyncio.to_thread(speech.text_to_speech, payload.text)
    if not audio:
        raise SpeechGenerationError(text=payload.text)
    return Response(content=audio, media_type="audio/mpeg")


@router.get(
    "/session/{session_id}/audio",
    summary="Next assistant audio clip",
    responses={**AUDIO_RESPONSES, 204: {"description": "Nothing waiting"}},
)
async def next_audio(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Pop the oldest synthesized assistant message.

    The spoken text travels URL-encoded in the X-Speech-Text header.
    204 when nothing is waiting or the session has no TTS.
    """
    session = await manager.get_session(session_id)
    clip = session.audio.pop() if session.audio is not None else None
    if clip is None:
        return Response(status_code=204)
    text, audio = clip
    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={"X-Speech-Text": quote(text)},
    )


# =============================================================================
# Speech Capture
# =============================================================================

@router.post("/session/{session_id}/listen", summary="Start listening")
@limiter.limit(RATE_LIMITS["conversation"])
async def start_listening(
    request: Request,  # Required for rate limiter
    session_id: str,
    payload: ListenRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Begin a capture. The assistant stops talking first.

    501 when speech capture is disabled for this deployment.
    """
    session = await manager.get_session(session_id)
    if session.engine.playback is not None:
        session.engine.playback.cancel_all()
    if session.audio is not None:
        session.audio.clear()

    tag = session.capture.start(payload.language or settings.SPEECH_LANGUAGE)
    return {"session_id": session.id, "language": tag, "listening": True}


@router.post("/session/{session_id}/result", summary="Report recognition result")
@limiter.limit(RATE_LIMITS["default"])
async def report_result(
    request: Request,  # Required for rate limiter
    session_id: str,
    payload: RecognitionResult,
    manager: SessionManager = Depends(get_session_manager),
):
    session = await manager.get_session(session_id)
    capture = session.capture
    capture.on_result(payload.transcript, payload.is_final)
    return {
        "session_id": session.id,
        "listening": capture.is_listening,
        "interim_transcript": capture.interim_transcript,
        "final_transcript": capture.final_transcript,
    }


@router.post("/session/{session_id}/error", summary="Report recognition error")
async def report_error(
    session_id: str,
    payload: RecognitionErrorReport,
    manager: SessionManager = Depends(get_session_manager),
):
    """A no-speech report keeps listening; any other code ends the capture."""
    session = await manager.get_session(session_id)
    session.capture.on_error(payload.code)
    return {
        "session_id": session.id,
        "listening": session.capture.is_listening,
        "error": session.capture.error,
    }


@router.post("/session/{session_id}/stop", summary="Stop listening and answer")
@limiter.limit(RATE_LIMITS["conversation"])
async def stop_listening(
    request: Request,  # Required for rate limiter
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Finalize the transcript and run it as one dialogue turn.

    Raises:
        SpeechRecognitionError: 400 when the recognizer reported a failure
    """
    session = await manager.get_session(session_id)
    transcript = session.capture.stop()
    if session.capture.error is not None:
        raise SpeechRecognitionError(details={"code": session.capture.error})

    logger.debug(f"Session {session.id} heard: '{transcript[:60]}'")
    reply = await session.engine.handle_utterance(transcript)
    session.sinks.drain_updates()
    return {
        "session_id": session.id,
        "transcript": transcript,
        "submitted_values": session.sinks.submitted_values,
        "navigated_back": session.sinks.navigated_back,
        **reply.to_dict(),
    }
