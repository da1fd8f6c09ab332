"""
Response Models

What a dialogue turn and an extraction pass hand back to callers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from services.ai.models.context import DialogueState
from services.ai.models.form import FieldUpdate
from services.ai.models.intent import IntentType


@dataclass
class AssistantReply:
    """
    Result of one engine call (start or a user turn).

    ``messages`` are the assistant lines in the order they were spoken;
    a turn can produce none (a suppressed duplicate prompt).
    """
    messages: List[str]
    state: DialogueState
    field_updates: List[FieldUpdate] = field(default_factory=list)
    intent: Optional[IntentType] = None
    is_complete: bool = False
    next_field: Optional[Dict[str, Any]] = None
    remaining_fields_count: int = 0

    @property
    def text(self) -> str:
        return "\n\n".join(self.messages)

    @property
    def submitted(self) -> bool:
        return self.state == DialogueState.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'messages': list(self.messages),
            'response': self.text,
            'state': self.state.value,
            'intent': self.intent.value if self.intent else None,
            'field_updates': [u.to_dict() for u in self.field_updates],
            'is_complete': self.is_complete,
            'submitted': self.submitted,
            'next_field': self.next_field,
            'remaining_fields_count': self.remaining_fields_count,
        }


@dataclass
class ExtractionResult:
    """Field updates found in one utterance plus the suggested next question."""
    field_updates: List[FieldUpdate]
    next_question: str
    confidence: float
    source: str = "local"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fieldUpdates': [u.to_dict() for u in self.field_updates],
            'nextQuestion': self.next_question,
            'confidence': self.confidence,
            'source': self.source,
        }
