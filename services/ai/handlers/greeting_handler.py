"""
Greeting Handler

Welcome messages, question wording and the opening question.
"""

from typing import List, Optional

from services.ai.models import FormField, FormSchema, FormSection


BASE_INSTRUCTIONS = (
    "To answer questions, just speak clearly after I ask each question. "
    "You can also say 'edit [field name]' to change a field, or 'submit' when you're done."
)

WELCOME_TEMPLATES = {
    'passport': (
        "Welcome to the Passport application form! I'm your FormEase assistant, "
        "and I'll help you complete this form using voice commands. "
    ),
    'aadhaar': (
        "Welcome to the Aadhaar application form! I'm your FormEase assistant "
        "here to guide you through each section of this form. "
    ),
    'voterid': (
        "Welcome to the Voter ID application form! I'm your FormEase assistant "
        "here to help you complete this form using voice commands. "
    ),
    'default': (
        "Welcome to FormEase! I'm your digital assistant, ready to help you "
        "complete your form using voice commands. "
    ),
}


class GreetingHandler:
    """
    Static wording for the start of a conversation.

    Used both by the dialogue engine and by the stateless welcome endpoint
    when the remote service cannot produce a message.
    """

    @staticmethod
    def default_welcome_message(form_code: str) -> str:
        """Template keyed by form code, falling back to the generic one."""
        opening = WELCOME_TEMPLATES.get((form_code or "").lower(), WELCOME_TEMPLATES['default'])
        return opening + BASE_INSTRUCTIONS

    @staticmethod
    def question_for(form_field: FormField) -> str:
        """
        "What is your {label}?" with options appended for choice fields.

        >>> GreetingHandler.question_for(FormField("email", "Email"))
        'What is your email?'
        """
        question = f"What is your {form_field.label.lower()}?"
        if form_field.options:
            question += f" Options: {', '.join(form_field.options)}."
        return question

    @staticmethod
    def prioritized_sections(schema: FormSchema) -> List[FormSection]:
        """Sections whose title mentions "Personal" first, others in declared order."""
        personal = [s for s in schema.sections if "personal" in s.title.lower()]
        others = [s for s in schema.sections if "personal" not in s.title.lower()]
        return personal + others

    @classmethod
    def opening_field(cls, schema: FormSchema) -> Optional[FormField]:
        """First incomplete required field, personal details first."""
        for section in cls.prioritized_sections(schema):
            for form_field in section.fields:
                if not form_field.is_complete:
                    return form_field
        return None
