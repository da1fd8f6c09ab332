"""
Name Extractor

Rule-based person-name extraction from a single utterance. Pure and
deterministic: the same text always gives the same answer.

Rules run in priority order and the first acceptable candidate wins:
    1. Naming phrases ("my name is ...", "call me ...", "put ... as my name")
       and a bare direct answer of letters only
    2. A short "put/set W1 W2 as my name" phrase
    3. The longest run of 1-4 Capitalised Words
    4. The whole input when it is 1-3 words and not an acknowledgement

Usage:
    from services.ai.extraction.name_extractor import extract_person_name

    extract_person_name("My name is Raj Kumar.")   # "Raj Kumar"
    extract_person_name("yes")                     # None
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from config.constants import (
    ACKNOWLEDGEMENT_WORDS,
    NAME_FILLER_WORDS,
    NAME_MAX_CAPITALIZED_WORDS,
    NAME_MAX_FALLBACK_WORDS,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
)


@dataclass(frozen=True)
class NameMatch:
    """
    A name found in an utterance.

    ``explicit`` is True when the phrase itself named the name slot
    ("my name is", "call me", "... as my name"); conversational openers
    like "I'm" or a bare reply are not explicit.
    """
    value: str
    explicit: bool
    rule: str


_NAME = r"[A-Za-z\s.'\"-]"
_END = r"(?:\.|,|\band\b|$)"
_NAME_SLOT = r"(?:name|full\s+name|legal\s+name)"

# (rule name, pattern, explicit)
_PHRASE_PATTERNS: List[Tuple[str, Pattern, bool]] = [
    ("my_name_is", re.compile(
        rf"(?:my|the)\s+{_NAME_SLOT}(?:\s+(?:is|as)|\s*[=:])\s*({_NAME}+?){_END}", re.IGNORECASE
    ), True),
    ("i_am", re.compile(
        rf"\b(?:i\s+am|i'm)\s+({_NAME}+?){_END}", re.IGNORECASE
    ), False),
    ("this_is", re.compile(
        rf"\b(?:this\s+is|it's)\s+({_NAME}+?){_END}", re.IGNORECASE
    ), False),
    ("call_me", re.compile(
        rf"\bcall\s+me\s+({_NAME}+?){_END}", re.IGNORECASE
    ), True),
    ("put_as_name", re.compile(
        rf"\b(?:put|write|record|enter|fill|use)(?:\s+(?:down|in))?\s+({_NAME}+?)\s+"
        rf"(?:as|for|in)(?:\s+(?:my|the))?\s+{_NAME_SLOT}\b", re.IGNORECASE
    ), True),
    ("name_should_be", re.compile(
        rf"(?:(?:my|the)\s+)?name\s+(?:should|would|must|will)\s+be\s+({_NAME}+?){_END}", re.IGNORECASE
    ), True),
    ("use_name_as", re.compile(
        rf"(?:please\s+)?\b(?:use|enter|put|write|fill|record)\s+(?:(?:my|the)\s+)?name\s+"
        rf"(?:as|with|like)\s+({_NAME}+?){_END}", re.IGNORECASE
    ), True),
    ("bare", re.compile(
        rf"^({_NAME}{{2,{NAME_MAX_LENGTH}}})$", re.IGNORECASE
    ), False),
]

_SHORT_PUT_AS_NAME = re.compile(
    r"\b(?:put|set|enter|write|fill|use)(?:\s+(?:down|in))?\s+(?:the\s+name\s+)?"
    r"([A-Za-z]+(?:\s+[A-Za-z]+){0,3})\s+(?:as|for|in)(?:\s+(?:my|the))?\s+name\b",
    re.IGNORECASE,
)

_CAPITALIZED_RUN = re.compile(
    rf"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+){{0,{NAME_MAX_CAPITALIZED_WORDS - 1}}}\b"
)

_TRAILING_PUNCTUATION = re.compile(r"[.,;:!?]$")
_TRAILING_FILLER = re.compile(
    r"\s+(?:" + "|".join(w.replace(" ", r"\s+") for w in NAME_FILLER_WORDS) + r")$",
    re.IGNORECASE,
)


class NameExtractor:
    """Priority-ordered name rules. All methods are class-level and stateless."""

    @staticmethod
    def _clean(candidate: str) -> str:
        name = candidate.strip()
        name = _TRAILING_PUNCTUATION.sub("", name).strip()
        name = _TRAILING_FILLER.sub("", name).strip()
        return name

    @staticmethod
    def _acceptable(name: str) -> bool:
        return NAME_MIN_LENGTH < len(name) < NAME_MAX_LENGTH

    @staticmethod
    def _is_acknowledgement(text: str) -> bool:
        return text.strip().strip(".!?,").lower() in ACKNOWLEDGEMENT_WORDS

    @classmethod
    def match(cls, text: str) -> Optional[NameMatch]:
        """Find a name and report which rule produced it."""
        if not text or not text.strip():
            return None
        text = text.strip()

        # Rule 1: naming phrases, then the bare direct answer
        for rule, pattern, explicit in _PHRASE_PATTERNS:
            found = pattern.search(text)
            if not found:
                continue
            name = cls._clean(found.group(1))
            if rule == "bare" and cls._is_acknowledgement(name):
                continue
            if cls._acceptable(name):
                return NameMatch(name, explicit, rule)

        # Rule 2: short "put/set X as my name"
        found = _SHORT_PUT_AS_NAME.search(text)
        if found:
            name = cls._clean(found.group(1))
            if cls._acceptable(name):
                return NameMatch(name, True, "short_put_as_name")

        # Rule 3: longest capitalised run; max() keeps the first on ties
        runs = [
            run for run in _CAPITALIZED_RUN.findall(text)
            if not cls._is_acknowledgement(run) and cls._acceptable(run)
        ]
        if runs:
            return NameMatch(max(runs, key=len), False, "capitalized")

        # Rule 4: short whole input
        words = text.split()
        if (
            1 <= len(words) <= NAME_MAX_FALLBACK_WORDS
            and cls._acceptable(text)
            and re.search(r"[A-Za-z]", text)
            and not cls._is_acknowledgement(text)
        ):
            return NameMatch(text, False, "short_input")

        return None

    @classmethod
    def extract(cls, text: str) -> Optional[str]:
        """Return the most plausible person name in ``text``, or None."""
        found = cls.match(text)
        return found.value if found else None


def extract_person_name(text: str) -> Optional[str]:
    """Module-level shortcut for NameExtractor.extract."""
    return NameExtractor.extract(text)
