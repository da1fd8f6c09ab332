"""
Form Models

The form being filled: sections of fields, plus the FieldUpdate record the
extractors and the dialogue engine exchange. Field values are the only
mutable part; structure is fixed once the schema is built.

Wire format uses camelCase keys (sectionId, fieldKey) and both spellings
are accepted on input.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from config.constants import CHOICE_FIELD_TYPES
from utils.exceptions import InputValidationError, OptionMismatchError


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def parse_section_id(value: Any, key: str = "sectionId") -> int:
    """
    Section id from client data; numeric strings are accepted.

    Raises:
        InputValidationError: Not an integer
    """
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InputValidationError(f"Section id must be an integer, got {value!r}", field=key) from e


@dataclass(frozen=True)
class FieldUpdate:
    """A value destined for one field."""
    section_id: int
    field_key: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {'sectionId': self.section_id, 'fieldKey': self.field_key, 'value': self.value}


@dataclass
class FormField:
    """
    A single answerable question on the form.

    ``value`` is "" while unset. Choice-like fields (radio) only accept one
    of ``options``.
    """
    field_key: str
    label: str
    section_id: int = 0
    required: bool = False
    type: str = "text"
    options: List[str] = field(default_factory=list)
    value: str = ""

    @property
    def field_id(self) -> str:
        """Identifier used in ConversationContext.asked_field_ids."""
        return f"{self.section_id}-{self.field_key}"

    @property
    def is_empty(self) -> bool:
        return not (self.value or "").strip()

    @property
    def is_complete(self) -> bool:
        return not self.required or not self.is_empty

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_FIELD_TYPES and bool(self.options)

    @property
    def is_name_field(self) -> bool:
        return "name" in self.field_key.lower() or "name" in self.label.lower()

    def match_option(self, value: str) -> str:
        """
        Resolve a spoken value to one of the declared options.

        Matching is case-insensitive containment in either direction
        ("I am female" -> "Female", "fem" -> "Female"). The option's own
        casing is returned. Non-choice fields return the value unchanged.

        Raises:
            OptionMismatchError: If no option matches
        """
        if not self.is_choice:
            return value

        spoken = " ".join(re.findall(r"\w+", value.lower()))
        if spoken:
            # Exact first so "Male" never resolves to "Female"
            for option in self.options:
                if option.lower() == spoken:
                    return option
            words = f" {spoken} "
            for option in self.options:
                opt = option.lower()
                if f" {opt} " in words or spoken in opt:
                    return option
            for option in sorted(self.options, key=len, reverse=True):
                if option.lower() in spoken:
                    return option

        raise OptionMismatchError(self.field_key, value, self.options)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.field_id,
            'sectionId': self.section_id,
            'fieldKey': self.field_key,
            'label': self.label,
            'required': self.required,
            'type': self.type,
            'value': self.value,
        }
        if self.options:
            data['options'] = list(self.options)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], section_id: int = 0) -> 'FormField':
        field_key = _pick(data, 'fieldKey', 'field_key', 'name')
        label = _pick(data, 'label', default=field_key)
        if not field_key or not isinstance(field_key, str):
            raise InputValidationError("Every field needs a fieldKey", field="fieldKey")
        return cls(
            field_key=field_key,
            label=str(label),
            section_id=parse_section_id(_pick(data, 'sectionId', 'section_id', default=section_id)),
            required=bool(data.get('required', False)),
            type=str(data.get('type') or 'text'),
            options=[str(o) for o in data.get('options') or []],
            value=str(data.get('value') or ''),
        )


@dataclass
class FormSection:
    """An ordered group of fields with a title, e.g. "Personal Details"."""
    id: int
    title: str
    fields: List[FormField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'fields': [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FormSection':
        section_id = data.get('id')
        if section_id is None:
            raise InputValidationError("Every section needs an id", field="id")
        section_id = parse_section_id(section_id, key="id")
        fields = []
        for raw in data.get('fields') or []:
            form_field = FormField.from_dict(raw, section_id=section_id)
            form_field.section_id = section_id
            fields.append(form_field)
        return cls(id=section_id, title=str(data.get('title') or ''), fields=fields)


@dataclass
class FormSchema:
    """
    The whole form: ordered sections.

    Section ids are unique and field keys are unique within a section;
    both are checked on construction.
    """
    sections: List[FormSection] = field(default_factory=list)
    form_code: str = ""
    title: str = ""

    def __post_init__(self):
        seen_sections = set()
        for section in self.sections:
            if section.id in seen_sections:
                raise InputValidationError(
                    f"Duplicate section id {section.id}", field="sections"
                )
            seen_sections.add(section.id)
            seen_keys = set()
            for form_field in section.fields:
                if form_field.field_key in seen_keys:
                    raise InputValidationError(
                        f"Duplicate field key '{form_field.field_key}' in section {section.id}",
                        field="fieldKey"
                    )
                seen_keys.add(form_field.field_key)

    # =========================================================================
    # Lookup
    # =========================================================================

    def iter_fields(self) -> Iterator[FormField]:
        """All fields in declared order."""
        for section in self.sections:
            yield from section.fields

    def get_section(self, section_id: int) -> Optional[FormSection]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def get_field(self, section_id: Optional[int], field_key: str) -> Optional[FormField]:
        """Exact lookup; with no section id, the first field with that key."""
        for form_field in self.iter_fields():
            if form_field.field_key != field_key:
                continue
            if section_id is None or form_field.section_id == section_id:
                return form_field
        return None

    def find_name_field(self) -> Optional[FormField]:
        """First field whose key or label mentions "name"."""
        for form_field in self.iter_fields():
            if form_field.is_name_field:
                return form_field
        return None

    # =========================================================================
    # Completion
    # =========================================================================

    def missing_required(self) -> List[FormField]:
        return [f for f in self.iter_fields() if not f.is_complete]

    def is_submittable(self) -> bool:
        return all(f.is_complete for f in self.iter_fields())

    # =========================================================================
    # Values
    # =========================================================================

    def values(self) -> Dict[str, str]:
        """Current values keyed by field id ("1-fullName")."""
        return {f.field_id: f.value for f in self.iter_fields()}

    def snapshot_values(self) -> Dict[str, str]:
        return self.values()

    def restore_values(self, snapshot: Dict[str, str]) -> None:
        for form_field in self.iter_fields():
            form_field.value = snapshot.get(form_field.field_id, form_field.value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'formCode': self.form_code,
            'title': self.title,
            'sections': [s.to_dict() for s in self.sections],
        }

    @classmethod
    def from_dict(cls, data: Any, form_code: str = "") -> 'FormSchema':
        """
        Build from either a list of sections or {"sections": [...]}.

        Raises:
            InputValidationError: On malformed or duplicate entries
        """
        if isinstance(data, dict):
            raw_sections = data.get('sections') or []
            form_code = data.get('formCode') or data.get('form_code') or form_code
            title = data.get('title') or ""
        elif isinstance(data, list):
            raw_sections, title = data, ""
        else:
            raise InputValidationError("Form schema must be a list or an object", field="sections")

        sections = [FormSection.from_dict(s) for s in raw_sections]
        return cls(sections=sections, form_code=form_code, title=title)
