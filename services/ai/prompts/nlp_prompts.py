"""
Understanding Prompts

Prompts for the remote chat-completion service: field extraction, intent
classification and the welcome message. Each prompt asks for JSON only,
except the welcome message which is plain text.

Version: 1.0
"""

import json
from typing import Any, Dict, List

from services.ai.models import ConversationContext, FormSchema


# =============================================================================
# Extraction
# =============================================================================

EXTRACTION_SYSTEM_PROMPT = """You are FormEase, an assistant helping a user fill out a {form_code} form using voice commands.
The user is speaking to you, and their input is analyzed to extract information for the form.

Current form state:
{form_state}

Current context:
- Last question asked: {last_question}
- Current section: {current_section}
- Current field: {current_field}

Your task is to:
1. Analyze the user's voice input
2. Extract every value you can for the form fields
3. Suggest the next question to ask

Respond with a JSON object in exactly this format:
{{
  "fieldUpdates": [
    {{"sectionId": number, "fieldKey": string, "value": string}}
  ],
  "nextQuestion": string,
  "confidence": number between 0.0 and 1.0
}}

Include ALL fields you can extract, even if there are several.
Only use sectionId and fieldKey values that appear in the form state.
"""


def build_extraction_prompt(
    form_code: str,
    schema: FormSchema,
    context: ConversationContext,
) -> str:
    """System prompt carrying the whole form state and the current focus."""
    form_state: List[Dict[str, Any]] = [
        {
            'id': section.id,
            'title': section.title,
            'fields': [
                {
                    'fieldKey': f.field_key,
                    'label': f.label,
                    'value': f.value or 'Not filled',
                    'required': f.required,
                    **({'options': f.options} if f.options else {}),
                }
                for f in section.fields
            ],
        }
        for section in schema.sections
    ]

    current_section = None
    if context.current_section_id is not None:
        section = schema.get_section(context.current_section_id)
        current_section = section.title if section else None

    return EXTRACTION_SYSTEM_PROMPT.format(
        form_code=form_code,
        form_state=json.dumps(form_state, indent=2),
        last_question=context.last_question or 'None',
        current_section=current_section or 'None',
        current_field=context.current_field_key or 'None',
    )


# =============================================================================
# Intent
# =============================================================================

INTENT_SYSTEM_PROMPT = """You are analyzing a user's voice input to determine their intent while filling out a form.
The form has the following structure:
{form_structure}

Decide whether the user wants to:
1. "edit" - change a specific field (e.g. "Change my name to John")
2. "submit" - submit the form (e.g. "I'm done", "Submit the form")
3. "goBack" - go back or cancel (e.g. "Go back", "Cancel")
4. "fillField" - provide information for a field (e.g. "My name is John")

Respond with a JSON object in exactly this format:
{{
  "intent": "edit" | "submit" | "goBack" | "fillField",
  "sectionId": number or null,
  "fieldKey": string or null,
  "value": string or null
}}
"""


def build_intent_prompt(schema: FormSchema) -> str:
    structure = [
        {
            'id': section.id,
            'title': section.title,
            'fields': [{'fieldKey': f.field_key, 'label': f.label} for f in section.fields],
        }
        for section in schema.sections
    ]
    return INTENT_SYSTEM_PROMPT.format(form_structure=json.dumps(structure, indent=2))


# =============================================================================
# Welcome
# =============================================================================

WELCOME_SYSTEM_PROMPT = (
    "Generate a friendly welcome message in English for a user filling out a {form_code} form. "
    "The message should be conversational and explain that you're an AI assistant "
    "who will help them fill the form using voice commands. Keep it to 2-3 sentences. "
    "Respond ONLY in English."
)


def build_welcome_prompt(form_code: str) -> str:
    return WELCOME_SYSTEM_PROMPT.format(form_code=form_code)
