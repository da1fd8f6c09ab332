"""
Intent Classifier

Rule-based classification of one utterance into fillField, edit, submit
or goBack, with an optional field binding and value.

Rule order (first match wins):
    1. submit   - submit verbs, completion phrases, "yes ... submit"
    2. goBack   - navigation / cancellation words
    3. edit     - "change X to Y", "set X to Y", "edit X"
    4. fillField (default)

Control commands are checked before field language so "I'm done" is never
mistaken for a name.
"""

import re
from typing import List, Optional, Pattern

from config.constants import SHORT_REPLY_MAX_WORDS
from services.ai.extraction.field_extractor import FieldValueExtractor
from services.ai.extraction.name_extractor import NameExtractor
from services.ai.models import ConversationContext, FormField, FormSchema, Intent
from utils.logging import get_logger

logger = get_logger(__name__)


class IntentClassifier:
    """Classify utterances locally. Stateless; everything is class-level."""

    SUBMIT_PATTERNS: List[Pattern] = [
        re.compile(
            r"\b(?:submit|done|finish(?:ed)?|complete|send|ready|go\s+ahead|proceed|finali[sz]e)\b",
            re.IGNORECASE,
        ),
        re.compile(
            r"\b(?:that'?s\s+all|that\s+is\s+all|i'?m\s+done|i\s+am\s+done|let'?s\s+submit"
            r"|everything\s+is\s+complete|looks\s+good)\b",
            re.IGNORECASE,
        ),
        re.compile(
            r"\b(?:yes|yeah|yep|sure|absolutely|please|ok|okay|correct)\b.*\b(?:submit|send|finish|complete|done)\b",
            re.IGNORECASE,
        ),
    ]

    GO_BACK_PATTERNS: List[Pattern] = [
        re.compile(
            r"\b(?:go\s*back|back|cancel|return|previous|start\s+over|restart|begin\s+again)\b",
            re.IGNORECASE,
        ),
        re.compile(r"\btake\s+me\s+back\b", re.IGNORECASE),
        re.compile(r"\b(?:exit|quit|stop|abandon|leave)\b", re.IGNORECASE),
    ]

    # Groups: field token, then optional value
    EDIT_PATTERNS: List[Pattern] = [
        re.compile(
            r"\b(?:change|edit|update|correct|fix|modify)\s+(?:(?:my|the)\s+)?"
            r"([a-z][a-z\s']*?)\s+to\s+(\S.*)$",
            re.IGNORECASE,
        ),
        re.compile(
            r"\b(?:set|make)\s+(?:(?:my|the)\s+)?([a-z][a-z\s']*?)\s+(?:to|as|be)\s+(\S.*)$",
            re.IGNORECASE,
        ),
        re.compile(
            r"\b(?:set|make)\s+(?:(?:my|the)\s+)?([a-z]+)\s+(\S.*)$",
            re.IGNORECASE,
        ),
        re.compile(
            r"\b(?:change|edit|update|correct|fix|modify)\s+(?:(?:my|the)\s+)?([a-z][a-z\s']*?)"
            r"(?:\s+(?:field|please))?[.!?]?$",
            re.IGNORECASE,
        ),
    ]

    # =========================================================================
    # Public API
    # =========================================================================

    @classmethod
    def classify(
        cls,
        text: str,
        schema: FormSchema,
        context: Optional[ConversationContext] = None,
    ) -> Intent:
        """Classify ``text`` against ``schema`` given the current focus."""
        text = (text or "").strip()
        if not text:
            return Intent.fill_field()

        if cls.is_submit(text):
            return Intent.submit()

        if cls.is_go_back(text):
            return Intent.go_back()

        edit = cls.match_edit(text, schema)
        if edit is not None:
            return edit

        return cls.classify_fill(text, schema, context or ConversationContext())

    @classmethod
    def is_submit(cls, text: str) -> bool:
        return any(p.search(text) for p in cls.SUBMIT_PATTERNS)

    @classmethod
    def is_go_back(cls, text: str) -> bool:
        return any(p.search(text) for p in cls.GO_BACK_PATTERNS)

    @classmethod
    def match_edit(cls, text: str, schema: FormSchema) -> Optional[Intent]:
        """Edit intent when an edit phrase names a field the schema has."""
        for pattern in cls.EDIT_PATTERNS:
            found = pattern.search(text)
            if not found:
                continue
            target = cls.find_field_by_token(found.group(1), schema)
            if target is None:
                logger.debug(f"Edit phrase named unknown field '{found.group(1)}'")
                continue
            value = None
            if found.lastindex and found.lastindex >= 2:
                value = found.group(2).strip().rstrip(",!?").strip() or None
            return Intent.edit(section_id=target.section_id, field_key=target.field_key, value=value)
        return None

    @classmethod
    def classify_fill(
        cls,
        text: str,
        schema: FormSchema,
        context: ConversationContext,
    ) -> Intent:
        """
        Default fillField rule.

        An explicit naming phrase targets the name field. A short reply
        answers the question just asked. A name guessed from a bare reply
        only targets the name field when no other question is pending.
        Otherwise the first label-template hit is used.
        """
        name_field = schema.find_name_field()
        current = context.current_field(schema)
        name = NameExtractor.match(text)

        if name is not None and name.explicit:
            if name_field is not None:
                return Intent.fill_field(name.value, name_field.section_id, name_field.field_key)
            return Intent.fill_field(name.value)

        if cls.is_short_reply(text):
            if current is not None:
                return Intent.fill_field(text, current.section_id, current.field_key)
            if name is not None and name_field is not None and name_field.is_empty:
                return Intent.fill_field(name.value, name_field.section_id, name_field.field_key)
            return Intent.fill_field(text)

        if name is not None and name_field is not None and (current is None or current is name_field):
            return Intent.fill_field(name.value, name_field.section_id, name_field.field_key)

        updates = FieldValueExtractor.extract(text, schema)
        if updates:
            first = updates[0]
            return Intent.fill_field(first.value, first.section_id, first.field_key)

        return Intent.fill_field()

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def is_short_reply(text: str) -> bool:
        return len(text.split()) <= SHORT_REPLY_MAX_WORDS and ":" not in text

    @staticmethod
    def find_field_by_token(token: str, schema: FormSchema) -> Optional[FormField]:
        """First field whose label or key contains ``token`` (case-insensitive)."""
        token = (token or "").strip().lower()
        if not token:
            return None
        compact = token.replace(" ", "")
        for form_field in schema.iter_fields():
            if token in form_field.label.lower() or compact in form_field.field_key.lower():
                return form_field
        return None
