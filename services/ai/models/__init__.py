"""
Models Package

Data models for the dialogue engine.
"""

from services.ai.models.form import FieldUpdate, FormField, FormSection, FormSchema
from services.ai.models.intent import Intent, IntentType
from services.ai.models.context import ConversationContext, DialogueState
from services.ai.models.response import AssistantReply, ExtractionResult

__all__ = [
    'FieldUpdate', 'FormField', 'FormSection', 'FormSchema',
    'Intent', 'IntentType',
    'ConversationContext', 'DialogueState',
    'AssistantReply', 'ExtractionResult',
]
