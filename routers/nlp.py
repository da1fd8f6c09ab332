"""
Language Understanding Router

Stateless endpoints over the understanding service, for clients that run
their own dialogue loop.

Endpoints:
    GET /welcome-message/{form_code} - Spoken welcome for a form
    POST /api/user-intent - Classify one utterance
    POST /api/process-voice - Extract field values from one utterance
"""

from fastapi import APIRouter, Depends, Request

from core.dependencies import (
    get_form_definitions,
    get_understanding_service,
    resolve_context,
    resolve_form,
)
from core.schemas import UtteranceRequest, WelcomeResponse
from services.ai.understanding import UnderstandingService
from services.form.definitions import BuiltinFormDefinitions
from utils.logging import get_logger
from utils.rate_limit import RATE_LIMITS, limiter
from utils.sanitize import normalize_form_code, sanitize_utterance

logger = get_logger(__name__)

router = APIRouter(tags=["Language Understanding"])


@router.get("/welcome-message/{form_code}", response_model=WelcomeResponse)
@router.get("/api/welcome-message/{form_code}", response_model=WelcomeResponse, include_in_schema=False)
@limiter.limit(RATE_LIMITS["nlp"])
async def get_welcome_message(
    request: Request,  # Required for rate limiter
    form_code: str,
    understanding: UnderstandingService = Depends(get_understanding_service),
):
    """Welcome message for the form; a built-in template when remote is unavailable."""
    message = await understanding.welcome_message(normalize_form_code(form_code))
    return WelcomeResponse(message=message)


@router.post("/api/user-intent")
@limiter.limit(RATE_LIMITS["nlp"])
async def classify_user_intent(
    request: Request,  # Required for rate limiter
    payload: UtteranceRequest,
    understanding: UnderstandingService = Depends(get_understanding_service),
    definitions: BuiltinFormDefinitions = Depends(get_form_definitions),
):
    """
    Classify an utterance as fillField, edit, submit or goBack.

    fillField and edit carry sectionId, fieldKey and value when the target
    field could be determined.
    """
    schema = resolve_form(payload.form_code, payload.form_sections, definitions)
    context = resolve_context(payload.context)
    intent = await understanding.determine_intent(sanitize_utterance(payload.text), schema, context)
    return intent.to_dict()


@router.post("/api/process-voice")
@limiter.limit(RATE_LIMITS["nlp"])
async def process_voice_input(
    request: Request,  # Required for rate limiter
    payload: UtteranceRequest,
    understanding: UnderstandingService = Depends(get_understanding_service),
    definitions: BuiltinFormDefinitions = Depends(get_form_definitions),
):
    """All field values mentioned in the utterance plus the next question to ask."""
    schema = resolve_form(payload.form_code, payload.form_sections, definitions)
    context = resolve_context(payload.context)
    result = await understanding.process_user_input(
        sanitize_utterance(payload.text), schema.form_code or payload.form_code, schema, context
    )
    logger.debug(f"Extracted {len(result.field_updates)} field update(s) ({result.source})")
    return result.to_dict()
