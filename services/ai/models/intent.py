"""
Intent Model

What the user wants from one utterance. IntentType is the tag; only
FILL_FIELD and EDIT carry a field binding and a value.

Usage:
    intent = Intent.fill_field(value="Jane Doe", section_id=1, field_key="fullName")
    if intent.type is IntentType.SUBMIT:
        ...
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class IntentType(str, Enum):
    """Wire names match the remote classifier's vocabulary."""
    FILL_FIELD = "fillField"
    EDIT = "edit"
    SUBMIT = "submit"
    GO_BACK = "goBack"


@dataclass(frozen=True)
class Intent:
    type: IntentType
    section_id: Optional[int] = None
    field_key: Optional[str] = None
    value: Optional[str] = None

    def __post_init__(self):
        if self.type in (IntentType.SUBMIT, IntentType.GO_BACK) and (
            self.section_id is not None or self.field_key or self.value
        ):
            raise ValueError(f"{self.type.value} intent carries no field binding")

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def fill_field(
        cls,
        value: Optional[str] = None,
        section_id: Optional[int] = None,
        field_key: Optional[str] = None,
    ) -> 'Intent':
        return cls(IntentType.FILL_FIELD, section_id, field_key, value)

    @classmethod
    def edit(
        cls,
        section_id: Optional[int] = None,
        field_key: Optional[str] = None,
        value: Optional[str] = None,
    ) -> 'Intent':
        return cls(IntentType.EDIT, section_id, field_key, value)

    @classmethod
    def submit(cls) -> 'Intent':
        return cls(IntentType.SUBMIT)

    @classmethod
    def go_back(cls) -> 'Intent':
        return cls(IntentType.GO_BACK)

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def is_bound(self) -> bool:
        """True when both section id and field key are known."""
        return self.section_id is not None and bool(self.field_key)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'intent': self.type.value}
        if self.type in (IntentType.FILL_FIELD, IntentType.EDIT):
            data.update({
                'sectionId': self.section_id,
                'fieldKey': self.field_key,
                'value': self.value,
            })
        return data
