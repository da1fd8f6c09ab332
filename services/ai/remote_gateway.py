"""
Remote Understanding Gateway

Delegates extraction, intent classification and welcome-message generation
to an OpenAI-compatible chat-completion service. Every public method
returns None on any failure; callers fall back to the local heuristics.

Quota exhaustion and rate limiting trip the injected ServiceHealth, after
which every call is skipped (never attempted) for the life of the process.

Usage:
    from services.ai.remote_gateway import RemoteUnderstandingGateway
    from utils.circuit_breaker import get_service_health

    gateway = RemoteUnderstandingGateway(health=get_service_health())
    intent = await gateway.classify("change my email to a@b.com", schema)
"""

import json
import time
from typing import Any, Dict, List, Literal, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config.constants import LLM_TEMPERATURE, WELCOME_TEMPERATURE
from config.settings import settings
from services.ai.models import (
    ConversationContext,
    ExtractionResult,
    FieldUpdate,
    FormSchema,
    Intent,
    IntentType,
)
from services.ai.prompts import build_extraction_prompt, build_intent_prompt, build_welcome_prompt
from utils.circuit_breaker import ServiceHealth, is_quota_error
from utils.exceptions import MalformedResponseError, QuotaExceededError, RemoteServiceError
from utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


# =============================================================================
# Response Shapes
# =============================================================================

class RemoteFieldUpdate(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    sectionId: int
    fieldKey: str
    value: str


class RemoteExtraction(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    fieldUpdates: List[RemoteFieldUpdate]
    nextQuestion: str
    confidence: float = Field(ge=0.0, le=1.0)


class RemoteIntent(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    intent: Literal["fillField", "edit", "submit", "goBack"]
    sectionId: Optional[int] = None
    fieldKey: Optional[str] = None
    value: Optional[str] = None


# =============================================================================
# Gateway
# =============================================================================

class RemoteUnderstandingGateway:
    """
    Remote language understanding with a one-way circuit breaker.

    Args:
        health: Shared ServiceHealth, created once per process
        client: Pre-built AsyncOpenAI-compatible client (tests inject a fake)
        model: Chat model name
        enabled: Master switch; when False every call is skipped
    """

    SERVICE = "OpenAI"

    def __init__(
        self,
        health: ServiceHealth,
        client: Optional[Any] = None,
        model: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        self.health = health
        self.model = model or settings.OPENAI_MODEL
        self.enabled = settings.REMOTE_NLP_ENABLED if enabled is None else enabled

        if client is None and self.enabled and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.REMOTE_TIMEOUT_SECONDS,
                max_retries=0,
            )
        self.client = client

        if self.client is None:
            logger.info("Remote understanding not configured; using local heuristics only")
        else:
            logger.info(f"✅ Remote understanding initialized with model: {self.model}")

    @property
    def available(self) -> bool:
        return self.enabled and self.client is not None and self.health.remote_available

    # =========================================================================
    # Public API
    # =========================================================================

    async def extract(
        self,
        utterance: str,
        form_code: str,
        schema: FormSchema,
        context: ConversationContext,
    ) -> Optional[ExtractionResult]:
        """Field updates, next question and confidence, or None."""
        system_prompt = build_extraction_prompt(form_code, schema, context)
        data = await self._complete_json("extract", system_prompt, utterance)
        if data is None:
            return None
        try:
            parsed = RemoteExtraction.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding malformed extraction response: {e.error_count()} error(s)")
            return None

        return ExtractionResult(
            field_updates=[
                FieldUpdate(u.sectionId, u.fieldKey, u.value) for u in parsed.fieldUpdates
            ],
            next_question=parsed.nextQuestion,
            confidence=parsed.confidence,
            source="remote",
        )

    async def classify(self, utterance: str, schema: FormSchema) -> Optional[Intent]:
        """Intent for one utterance, or None."""
        system_prompt = build_intent_prompt(schema)
        data = await self._complete_json("classify", system_prompt, utterance)
        if data is None:
            return None
        try:
            parsed = RemoteIntent.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding malformed intent response: {e.error_count()} error(s)")
            return None

        intent_type = IntentType(parsed.intent)
        if intent_type is IntentType.SUBMIT:
            return Intent.submit()
        if intent_type is IntentType.GO_BACK:
            return Intent.go_back()
        return Intent(intent_type, parsed.sectionId, parsed.fieldKey or None, parsed.value or None)

    async def welcome_message(self, form_code: str) -> Optional[str]:
        """Free-text welcome message, or None."""
        try:
            content = await self._complete(
                "welcome",
                [{"role": "system", "content": build_welcome_prompt(form_code)}],
                json_mode=False,
                temperature=WELCOME_TEMPERATURE,
            )
        except RemoteServiceError:
            return None
        message = (content or "").strip()
        return message or None

    # =========================================================================
    # Transport
    # =========================================================================

    async def _complete_json(
        self,
        operation: str,
        system_prompt: str,
        utterance: str,
    ) -> Optional[Dict[str, Any]]:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": utterance},
        ]
        try:
            content = await self._complete(operation, messages, json_mode=True)
            data = json.loads(content or "")
            if not isinstance(data, dict):
                raise MalformedResponseError("Expected a JSON object", raw=content)
            return data
        except json.JSONDecodeError:
            logger.warning(f"Remote {operation} returned non-JSON content")
            return None
        except RemoteServiceError:
            return None

    async def _complete(
        self,
        operation: str,
        messages: List[Dict[str, str]],
        json_mode: bool,
        temperature: float = LLM_TEMPERATURE,
    ) -> Optional[str]:
        """
        One chat-completion call.

        Raises:
            RemoteServiceError: Skipped, failed or empty call
            QuotaExceededError: Quota/rate-limit failure (breaker tripped)
        """
        if not self.enabled or self.client is None:
            raise RemoteServiceError("Remote understanding not configured")

        if not self.health.remote_available:
            self.health.record_skip(operation)
            raise RemoteServiceError("Remote understanding unavailable")

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        start = time.monotonic()
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            duration_ms = (time.monotonic() - start) * 1000
            log_api_call(self.SERVICE, operation, success=False, duration_ms=duration_ms, error=str(e))
            if is_quota_error(e):
                self.health.trip(f"{type(e).__name__}: {getattr(e, 'code', None) or 'rate limited'}")
                raise QuotaExceededError() from e
            raise RemoteServiceError(f"Remote {operation} failed: {e}") from e

        log_api_call(self.SERVICE, operation, success=True, duration_ms=(time.monotonic() - start) * 1000)

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError) as e:
            raise MalformedResponseError(f"Unexpected completion shape: {e}") from e
        if not content:
            raise MalformedResponseError("Empty completion")
        if not isinstance(content, str):
            raise MalformedResponseError(f"Completion content is {type(content).__name__}, not text")
        return content
