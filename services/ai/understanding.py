"""
Understanding Service

Remote-first language understanding with a local fallback for every
operation. Nothing here raises for remote problems: a missing, failing or
tripped remote service simply means the local heuristics answer.

Usage:
    service = UnderstandingService(gateway)
    intent = await service.determine_intent(text, schema, context)
"""

from typing import Optional

from config.constants import FALLBACK_CONFIDENCE
from services.ai.extraction import FieldValueExtractor
from services.ai.handlers import GreetingHandler, IntentClassifier
from services.ai.models import ConversationContext, ExtractionResult, FormSchema, Intent
from services.ai.remote_gateway import RemoteUnderstandingGateway
from utils.logging import get_logger

logger = get_logger(__name__)


class UnderstandingService:
    """Falls back one level at a time: remote, then local rules."""

    def __init__(self, gateway: Optional[RemoteUnderstandingGateway] = None):
        self.gateway = gateway

    @property
    def remote_available(self) -> bool:
        return self.gateway is not None and self.gateway.available

    async def determine_intent(
        self,
        text: str,
        schema: FormSchema,
        context: Optional[ConversationContext] = None,
    ) -> Intent:
        context = context or ConversationContext()

        if self.gateway is not None:
            intent = await self.gateway.classify(text, schema)
            if intent is not None:
                logger.debug(f"Remote intent: {intent.type.value}")
                return intent

        try:
            return IntentClassifier.classify(text, schema, context)
        except Exception as e:
            # Last resort: treat the utterance as an answer to the current question
            logger.error(f"Local intent classification failed: {e}", exc_info=True)
            current = context.current_field(schema)
            if current is not None:
                return Intent.fill_field(text.strip(), current.section_id, current.field_key)
            return Intent.fill_field(text.strip() or None)

    async def process_user_input(
        self,
        text: str,
        form_code: str,
        schema: FormSchema,
        context: Optional[ConversationContext] = None,
    ) -> ExtractionResult:
        """All field updates in one utterance plus a suggested next question."""
        context = context or ConversationContext()

        if self.gateway is not None:
            result = await self.gateway.extract(text, form_code, schema, context)
            if result is not None:
                return result

        return ExtractionResult(
            field_updates=FieldValueExtractor.extract(text, schema),
            next_question=self.suggest_next_question(schema),
            confidence=FALLBACK_CONFIDENCE,
            source="local",
        )

    async def welcome_message(self, form_code: str) -> str:
        if self.gateway is not None:
            message = await self.gateway.welcome_message(form_code)
            if message:
                return message
        return GreetingHandler.default_welcome_message(form_code)

    @staticmethod
    def suggest_next_question(schema: FormSchema) -> str:
        """Required empty field first, then any empty field, else offer submission."""
        fields = list(schema.iter_fields())
        for form_field in fields:
            if form_field.required and form_field.is_empty:
                return f"What is your {form_field.label.lower()}?"
        for form_field in fields:
            if form_field.is_empty:
                return f"Can you tell me your {form_field.label.lower()}?"
        return "All fields are filled. Would you like to submit the form now?"
