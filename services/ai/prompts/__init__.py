"""
Prompts Package

Prompt engineering for the remote understanding service.
"""

from services.ai.prompts.nlp_prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    INTENT_SYSTEM_PROMPT,
    WELCOME_SYSTEM_PROMPT,
    build_extraction_prompt,
    build_intent_prompt,
    build_welcome_prompt,
)

__all__ = [
    'EXTRACTION_SYSTEM_PROMPT',
    'INTENT_SYSTEM_PROMPT',
    'WELCOME_SYSTEM_PROMPT',
    'build_extraction_prompt',
    'build_intent_prompt',
    'build_welcome_prompt',
]
