"""
Core Module

Provides API schemas and dependencies for the application.
"""

from .schemas import (
    ContextPayload,
    FormPayload,
    CreateSessionRequest,
    MessageRequest,
    UtteranceRequest,
    WelcomeResponse,
    HealthResponse,
)
from .dependencies import (
    get_service_health,
    get_remote_gateway,
    get_understanding_service,
    get_form_definitions,
    get_session_manager,
    resolve_form,
    resolve_context,
)

__all__ = [
    # Schemas
    "ContextPayload",
    "FormPayload",
    "CreateSessionRequest",
    "MessageRequest",
    "UtteranceRequest",
    "WelcomeResponse",
    "HealthResponse",
    # Dependencies
    "get_service_health",
    "get_remote_gateway",
    "get_understanding_service",
    "get_form_definitions",
    "get_session_manager",
    "resolve_form",
    "resolve_context",
]
