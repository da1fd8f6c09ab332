"""
Conversation Context Model

Per-conversation focus: the question just asked, the field it was about,
and every field asked so far. The dialogue engine works on a copy during a
turn and commits it only when the turn finishes.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Set

from services.ai.models.form import FormField, FormSchema, parse_section_id


class DialogueState(str, Enum):
    """Lifecycle of one conversation."""
    INITIALIZING = "initializing"
    AWAITING_INPUT = "awaiting_input"
    PROCESSING = "processing"
    COMPLETE = "complete"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (DialogueState.SUBMITTED, DialogueState.ABANDONED)


@dataclass
class ConversationContext:
    last_question: Optional[str] = None
    current_section_id: Optional[int] = None
    current_field_key: Optional[str] = None
    asked_field_ids: Set[str] = field(default_factory=set)
    # The current field already has a value and the user was asked for a new one
    awaiting_edit: bool = False

    def reset(self) -> None:
        """Clear everything; only done when a conversation starts."""
        self.last_question = None
        self.current_section_id = None
        self.current_field_key = None
        self.asked_field_ids = set()
        self.awaiting_edit = False

    def copy(self) -> 'ConversationContext':
        return replace(self, asked_field_ids=set(self.asked_field_ids))

    def focus(self, form_field: FormField, question: str) -> None:
        """Record that ``question`` about ``form_field`` was just asked."""
        self.last_question = question
        self.current_section_id = form_field.section_id
        self.current_field_key = form_field.field_key
        self.asked_field_ids.add(form_field.field_id)
        self.awaiting_edit = False

    def expect_edit(self, form_field: FormField, question: str) -> None:
        """Like focus(), but the next unbound answer replaces the field's value."""
        self.focus(form_field, question)
        self.awaiting_edit = True

    def mark_asked(self, form_field: FormField) -> None:
        self.asked_field_ids.add(form_field.field_id)

    def has_asked(self, form_field: FormField) -> bool:
        return form_field.field_id in self.asked_field_ids

    def current_field(self, schema: FormSchema) -> Optional[FormField]:
        if not self.current_field_key:
            return None
        return schema.get_field(self.current_section_id, self.current_field_key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lastQuestion': self.last_question,
            'currentSectionId': self.current_section_id,
            'currentFieldKey': self.current_field_key,
            'askedFieldIds': sorted(self.asked_field_ids),
            'awaitingEdit': self.awaiting_edit,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ConversationContext':
        data = data or {}
        section_id = data.get('currentSectionId', data.get('current_section_id'))
        if section_id is not None:
            section_id = parse_section_id(section_id, key="currentSectionId")
        return cls(
            last_question=data.get('lastQuestion') or data.get('last_question'),
            current_section_id=section_id,
            current_field_key=data.get('currentFieldKey') or data.get('current_field_key'),
            asked_field_ids=set(data.get('askedFieldIds') or data.get('asked_field_ids') or []),
            awaiting_edit=bool(data.get('awaitingEdit', data.get('awaiting_edit', False))),
        )
