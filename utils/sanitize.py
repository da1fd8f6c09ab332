"""
Input Sanitization Utilities

Cleans user utterances and identifiers before they reach the extraction
heuristics or the remote service.

Usage:
    from utils.sanitize import sanitize_utterance, normalize_form_code

    text = sanitize_utterance(raw_transcript)
"""

import re

from config.constants import MAX_USER_INPUT_LENGTH
from utils.logging import get_logger
from utils.exceptions import InputValidationError

logger = get_logger(__name__)


# =============================================================================
# String Sanitization
# =============================================================================

def sanitize_string(
    value: str,
    max_length: int = 1000,
    allow_html: bool = False
) -> str:
    """
    Sanitize a string input.

    - Strips whitespace
    - Limits length
    - Optionally strips HTML tags

    Args:
        value: String to sanitize
        max_length: Maximum allowed length
        allow_html: Whether to allow HTML tags

    Returns:
        str: Sanitized string
    """
    if not value:
        return ""

    value = value.strip()

    if not allow_html:
        value = re.sub(r'<[^>]+>', '', value)

    if len(value) > max_length:
        value = value[:max_length]

    return value


def sanitize_utterance(text: str) -> str:
    """
    Normalize a recognized utterance.

    Strips markup, collapses runs of whitespace and caps the length.
    Returns "" for empty input; the caller decides how to re-prompt.
    """
    if not text:
        return ""

    cleaned = sanitize_string(text, max_length=MAX_USER_INPUT_LENGTH)
    cleaned = re.sub(r'\s+', ' ', cleaned)

    if len(text) > MAX_USER_INPUT_LENGTH:
        logger.warning(f"Utterance truncated from {len(text)} chars")

    return cleaned.strip()


def normalize_form_code(form_code: str) -> str:
    """
    Normalize a form code ("Voter-ID " -> "voterid").

    Raises:
        InputValidationError: If nothing usable remains
    """
    code = re.sub(r'[^a-z0-9]', '', (form_code or "").lower())
    if not code:
        raise InputValidationError("Form code is required", field="form_code")
    return code[:50]
