from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from config.constants import MAX_USER_INPUT_LENGTH


class ContextPayload(BaseModel):
    lastQuestion: Optional[str] = None
    currentSectionId: Optional[int] = None
    currentFieldKey: Optional[str] = None
    askedFieldIds: List[str] = []
    awaitingEdit: bool = False


class FormPayload(BaseModel):
    """A form sent by the client instead of a built-in code."""
    form_code: str = "default"
    form_sections: Optional[List[Dict[str, Any]]] = None
    context: Optional[ContextPayload] = None


class CreateSessionRequest(FormPayload):
    initial_data: Optional[Dict[str, str]] = None


class MessageRequest(BaseModel):
    session_id: str
    message: str = Field(default="", max_length=MAX_USER_INPUT_LENGTH)


class UtteranceRequest(FormPayload):
    text: str = Field(default="", max_length=MAX_USER_INPUT_LENGTH)


class SpeechRequest(BaseModel):
    text: str = Field(min_length=1, max_length=MAX_USER_INPUT_LENGTH)


class ListenRequest(BaseModel):
    language: Optional[str] = None


class RecognitionResult(BaseModel):
    transcript: str = Field(default="", max_length=MAX_USER_INPUT_LENGTH)
    is_final: bool = False


class RecognitionErrorReport(BaseModel):
    code: str


class WelcomeResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str
    app: str
    version: str
    remote_available: bool
    active_sessions: int
    service_health: Dict[str, Any]
