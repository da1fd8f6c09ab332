# AI services module

from .remote_gateway import RemoteUnderstandingGateway
from .understanding import UnderstandingService
from .dialogue_engine import DialogueEngine, next_empty_field
from .session_manager import SessionManager, ConversationSession, get_session_manager

__all__ = [
    "RemoteUnderstandingGateway",
    "UnderstandingService",
    "DialogueEngine",
    "next_empty_field",
    "SessionManager",
    "ConversationSession",
    "get_session_manager",
]
