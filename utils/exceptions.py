"""
Custom Exceptions Module

Application-specific exceptions. Everything inherits from FormEaseError so
the API layer can render any of them with one handler, and the dialogue
engine can turn them into conversational re-prompts.

Usage:
    from utils.exceptions import OptionMismatchError, RemoteServiceError

    try:
        value = field.match_option(utterance)
    except OptionMismatchError as e:
        logger.info(f"Re-prompting: {e.message}")
"""

from typing import Optional, Dict, Any, List


class FormEaseError(Exception):
    """
    Base exception for all FormEase errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (optional)
        status_code: HTTP status code to return
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# =============================================================================
# Input & Form Exceptions
# =============================================================================

class InputValidationError(FormEaseError):
    """
    Raised for malformed input: empty utterances, bad form payloads,
    duplicate section ids or field keys.
    """

    def __init__(
        self,
        message: str = "Invalid input",
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"field": field, **(details or {})},
            status_code=422
        )


class OptionMismatchError(FormEaseError):
    """Raised when a value matches none of a choice field's options."""

    def __init__(
        self,
        field_key: str,
        value: str,
        options: List[str],
    ):
        super().__init__(
            message=f"'{value}' is not one of: {', '.join(options)}",
            details={"field": field_key, "value": value, "options": list(options)},
            status_code=422
        )
        self.options = list(options)


class SchemaResolutionError(FormEaseError):
    """
    Raised when an intent names a field that does not exist in the schema.

    Common causes:
        - Remote classifier invented a field key
        - Edit request names a field by a word no label contains
    """

    def __init__(
        self,
        message: str = "Field not found in form",
        section_id: Optional[int] = None,
        field_key: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            details={"section_id": section_id, "field_key": field_key},
            status_code=404
        )


class FormNotFoundError(FormEaseError):
    """Raised when no form definition exists for a form code."""

    def __init__(self, form_code: str):
        super().__init__(
            message=f"Unknown form: {form_code}",
            details={"form_code": form_code},
            status_code=404
        )


# =============================================================================
# Conversation Exceptions
# =============================================================================

class SessionNotFoundError(FormEaseError):
    """Raised when a conversation session id is unknown or expired."""

    def __init__(self, session_id: str):
        super().__init__(
            message="Session not found or expired",
            details={"session_id": session_id},
            status_code=404
        )


class TurnInProgressError(FormEaseError):
    """Raised when an utterance arrives while the previous turn is still processing."""

    def __init__(self, session_id: Optional[str] = None):
        super().__init__(
            message="Still processing the previous message",
            details={"session_id": session_id},
            status_code=409
        )


# =============================================================================
# Remote Service Exceptions
# =============================================================================

class RemoteServiceError(FormEaseError):
    """
    Raised when the remote language-understanding service fails.

    Common causes:
        - Network error or timeout
        - Invalid API key
        - Server-side error
    """

    def __init__(
        self,
        message: str = "Remote service error",
        service: str = "openai",
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"service": service, **(details or {})},
            status_code=status_code
        )


class QuotaExceededError(RemoteServiceError):
    """Raised on quota exhaustion or rate limiting. Trips ServiceHealth."""

    def __init__(self, message: str = "Remote quota exceeded", service: str = "openai"):
        super().__init__(message=message, service=service, status_code=429)


class MalformedResponseError(RemoteServiceError):
    """Raised when a remote response is not JSON or has the wrong shape."""

    def __init__(self, message: str = "Malformed remote response", raw: Optional[str] = None):
        super().__init__(
            message=message,
            details={"raw_preview": raw[:200] if raw else None},
        )


# =============================================================================
# Voice/Speech Exceptions
# =============================================================================

class SpeechGenerationError(FormEaseError):
    """
    Raised when text-to-speech generation fails.

    Common causes:
        - ElevenLabs API error
        - Invalid API key
    """

    def __init__(
        self,
        message: str = "Failed to generate speech",
        text: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"text_preview": text[:50] if text else None, **(details or {})},
            status_code=500
        )


class SpeechRecognitionError(FormEaseError):
    """Raised when speech capture fails at runtime (network, audio device)."""

    def __init__(
        self,
        message: str = "Failed to recognize speech",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details=details,
            status_code=400
        )


class SpeechCaptureUnsupportedError(SpeechRecognitionError):
    """Raised when the environment has no speech recognition capability at all."""

    def __init__(self, message: str = "Speech recognition is not supported in this environment"):
        super().__init__(message=message)
        self.status_code = 501
