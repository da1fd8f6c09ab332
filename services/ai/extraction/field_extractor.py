"""
Field-Value Extractor

Finds "label is value" style statements for every field of a form in one
utterance. The templates are a table parameterised by the field label,
which is lower-cased and regex-escaped before it is spliced in.

Usage:
    from services.ai.extraction.field_extractor import extract_field_values

    updates = extract_field_values("my email is jane@x.com", schema)
"""

import re
from functools import lru_cache
from typing import Callable, List, Optional, Pattern, Tuple

from config.constants import LABEL_PATTERN_CACHE_SIZE
from services.ai.extraction.name_extractor import NameExtractor
from services.ai.models.form import FieldUpdate, FormField, FormSchema
from utils.logging import get_logger

logger = get_logger(__name__)


# Value characters: words, spaces and the punctuation found in emails,
# dates, addresses and phone numbers
_VALUE = r"([\w\s,.'@+/-]+?)"
# A value ends at the next clause or at the end of the utterance
_VALUE_END = r"(?=\s+(?:and|also)\b|[.;!?]?\s*$)"

# Each template receives the escaped, lower-cased label
LABEL_TEMPLATES: List[Callable[[str], str]] = [
    lambda label: rf"(?:my|the)\s+{label}\s+(?:is|was|are|=|:|as)\s+{_VALUE}{_VALUE_END}",
    lambda label: rf"{label}\s*(?:\bis\b|:)\s*{_VALUE}{_VALUE_END}",
    lambda label: rf"(?:i am|i'm)\s+{_VALUE}\s+(?:and|{label})\b",
    lambda label: rf"(?:put|write|fill|enter)\s+{_VALUE}\s+(?:as|for|in)\s+(?:(?:the|my)\s+)?{label}\b",
    lambda label: rf"(?:put|write|fill|enter)\s+(?:(?:the|my)\s+)?{label}\s+(?:as|with)\s+{_VALUE}{_VALUE_END}",
]


@lru_cache(maxsize=LABEL_PATTERN_CACHE_SIZE)
def compile_label_patterns(key: str) -> Tuple[Pattern, ...]:
    """Compiled templates for one normalized (lower-cased, stripped) label."""
    escaped = re.escape(key)
    return tuple(re.compile(t(escaped)) for t in LABEL_TEMPLATES)


class FieldValueExtractor:
    """Stateless; see compile_label_patterns for the pattern cache."""

    @staticmethod
    def patterns_for(label: str) -> Tuple[Pattern, ...]:
        return compile_label_patterns(label.lower().strip())

    @staticmethod
    def _clean_value(value: str) -> str:
        return value.strip().rstrip(".,;:!?").strip()

    @classmethod
    def extract_for_field(cls, text_lower: str, form_field: FormField) -> Optional[str]:
        """First template hit for one field, or None."""
        if not form_field.label.strip():
            return None
        for pattern in cls.patterns_for(form_field.label):
            found = pattern.search(text_lower)
            if found:
                value = cls._clean_value(found.group(1))
                if value:
                    return value
        return None

    @classmethod
    def extract(cls, text: str, schema: FormSchema) -> List[FieldUpdate]:
        """
        Extract every field value stated in ``text``.

        Step A puts a detected person name into the first name field.
        Step B tries the label templates for every other field, in schema
        order, against the lower-cased text.
        """
        if not text or not text.strip():
            return []

        updates: List[FieldUpdate] = []
        name_field = schema.find_name_field()

        # Step A: name
        if name_field is not None:
            name = NameExtractor.extract(text)
            if name:
                updates.append(FieldUpdate(name_field.section_id, name_field.field_key, name))

        # Step B: label templates
        text_lower = text.lower()
        for form_field in schema.iter_fields():
            if form_field is name_field and updates:
                continue
            value = cls.extract_for_field(text_lower, form_field)
            if value:
                updates.append(FieldUpdate(form_field.section_id, form_field.field_key, value))

        if updates:
            logger.debug(f"Local extraction found {len(updates)} value(s)")
        return updates


def extract_field_values(text: str, schema: FormSchema) -> List[FieldUpdate]:
    """Module-level shortcut for FieldValueExtractor.extract."""
    return FieldValueExtractor.extract(text, schema)
