"""
Utilities Module

Provides shared utilities across the application:
- Logging configuration
- Custom exceptions
- Remote service health (one-way circuit breaker)
- Rate limiting
- Input sanitization
"""

from .logging import get_logger, setup_logging, log_api_call, log_dialogue_event
from .exceptions import (
    FormEaseError,
    InputValidationError,
    OptionMismatchError,
    SchemaResolutionError,
    FormNotFoundError,
    SessionNotFoundError,
    TurnInProgressError,
    RemoteServiceError,
    QuotaExceededError,
    MalformedResponseError,
    SpeechGenerationError,
    SpeechRecognitionError,
    SpeechCaptureUnsupportedError,
)
from .circuit_breaker import ServiceHealth, get_service_health, is_quota_error
from .rate_limit import limiter, rate_limit_exceeded_handler, RATE_LIMITS
from .sanitize import sanitize_string, sanitize_utterance, normalize_form_code

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "log_api_call",
    "log_dialogue_event",
    # Exceptions
    "FormEaseError",
    "InputValidationError",
    "OptionMismatchError",
    "SchemaResolutionError",
    "FormNotFoundError",
    "SessionNotFoundError",
    "TurnInProgressError",
    "RemoteServiceError",
    "QuotaExceededError",
    "MalformedResponseError",
    "SpeechGenerationError",
    "SpeechRecognitionError",
    "SpeechCaptureUnsupportedError",
    # Service health
    "ServiceHealth",
    "get_service_health",
    "is_quota_error",
    # Rate Limiting
    "limiter",
    "rate_limit_exceeded_handler",
    "RATE_LIMITS",
    # Sanitization
    "sanitize_string",
    "sanitize_utterance",
    "normalize_form_code",
]
