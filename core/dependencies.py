"""
FastAPI Dependencies Module

Provides dependency injection for services and shared state.
All service instances are singletons; tests swap them through
app.dependency_overrides.

Usage:
    from core.dependencies import get_understanding_service

    @router.post("/process")
    async def process(
        understanding: UnderstandingService = Depends(get_understanding_service)
    ):
        ...
"""

from typing import Any, Dict, List, Optional

from config.settings import settings
from services.ai.models import ConversationContext, FormSchema
from services.ai.remote_gateway import RemoteUnderstandingGateway
from services.ai.session_manager import SessionManager, get_session_manager as _get_session_manager
from services.ai.understanding import UnderstandingService
from services.form.definitions import BuiltinFormDefinitions
from services.voice.speech import SpeechService
from utils.circuit_breaker import ServiceHealth, get_service_health as _get_service_health
from utils.logging import get_logger

logger = get_logger(__name__)

# Lazily created singletons
_remote_gateway: Optional[RemoteUnderstandingGateway] = None
_understanding_service: Optional[UnderstandingService] = None
_form_definitions: Optional[BuiltinFormDefinitions] = None
_speech_service: Optional[SpeechService] = None


# =============================================================================
# Service Providers
# =============================================================================

def get_service_health() -> ServiceHealth:
    """Process-wide remote service health (the circuit breaker)."""
    return _get_service_health()


def get_remote_gateway() -> RemoteUnderstandingGateway:
    """
    Get the RemoteUnderstandingGateway singleton.

    Works without an API key; every call then falls back locally.
    """
    global _remote_gateway
    if _remote_gateway is None:
        if not settings.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY not configured - remote understanding disabled")
        _remote_gateway = RemoteUnderstandingGateway(health=get_service_health())
    return _remote_gateway


def get_understanding_service() -> UnderstandingService:
    global _understanding_service
    if _understanding_service is None:
        _understanding_service = UnderstandingService(get_remote_gateway())
    return _understanding_service


def get_form_definitions() -> BuiltinFormDefinitions:
    global _form_definitions
    if _form_definitions is None:
        _form_definitions = BuiltinFormDefinitions()
    return _form_definitions


def get_session_manager() -> SessionManager:
    return _get_session_manager()


def get_speech_service() -> SpeechService:
    """
    Get SpeechService singleton for text-to-speech.

    Disabled (no audio, no ElevenLabs calls) without ELEVENLABS_API_KEY.
    """
    global _speech_service
    if _speech_service is None:
        _speech_service = SpeechService()
    return _speech_service


# =============================================================================
# Request Helpers
# =============================================================================

def resolve_form(
    form_code: str,
    form_sections: Optional[List[Dict[str, Any]]],
    definitions: BuiltinFormDefinitions,
) -> FormSchema:
    """
    Schema sent by the client, else the built-in definition for the code.

    Raises:
        InputValidationError: Malformed sections
        FormNotFoundError: No sections sent and the code is unknown
    """
    if form_sections:
        return FormSchema.from_dict(form_sections, form_code=form_code)
    return definitions.load_schema(form_code)


def resolve_context(context: Optional[Any]) -> ConversationContext:
    if context is None:
        return ConversationContext()
    return ConversationContext.from_dict(context.model_dump())
