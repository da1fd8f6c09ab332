"""
Unit Tests for Remote Understanding

Tests for the OpenAI-compatible gateway (response validation, breaker
tripping) and the fallback behaviour of UnderstandingService.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from conftest import QuotaError, completion, json_completion
from services.ai.dialogue_engine import DialogueEngine
from services.ai.models import ConversationContext, FieldUpdate, Intent
from services.ai.remote_gateway import RemoteUnderstandingGateway
from services.ai.understanding import UnderstandingService
from utils.circuit_breaker import ServiceHealth


# =============================================================================
# Gateway
# =============================================================================

class TestGatewayResponses:
    """Valid and malformed completions."""

    @pytest.mark.asyncio
    async def test_extract(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.return_value = json_completion({
            "fieldUpdates": [{"sectionId": 1, "fieldKey": "email", "value": "a@b.com"}],
            "nextQuestion": "What is your full name?",
            "confidence": 0.9,
        })

        result = await remote_gateway.extract("a@b.com", "default", personal_schema, ConversationContext())

        assert result.field_updates == [FieldUpdate(1, "email", "a@b.com")]
        assert result.confidence == 0.9
        assert result.source == "remote"

    @pytest.mark.asyncio
    async def test_request_uses_json_mode(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.return_value = json_completion({"intent": "submit"})

        await remote_gateway.classify("submit", personal_schema)

        kwargs = fake_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][-1] == {"role": "user", "content": "submit"}

    @pytest.mark.asyncio
    async def test_classify_control_intent_drops_binding(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.return_value = json_completion(
            {"intent": "goBack", "fieldKey": "email"}
        )

        assert await remote_gateway.classify("go back", personal_schema) == Intent.go_back()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [
        "not json at all",
        '["a", "list"]',
        '{"intent": "dance"}',
        '{"intent": "edit", "sectionId": "one"}',
    ])
    async def test_malformed_classify_returns_none(self, remote_gateway, fake_client, personal_schema, content):
        fake_client.chat.completions.create.return_value = completion(content)

        assert await remote_gateway.classify("hello", personal_schema) is None

    @pytest.mark.asyncio
    async def test_confidence_out_of_range_rejected(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.return_value = json_completion(
            {"fieldUpdates": [], "nextQuestion": "?", "confidence": 1.5}
        )

        assert await remote_gateway.extract("x", "default", personal_schema, ConversationContext()) is None

    @pytest.mark.asyncio
    async def test_empty_welcome_returns_none(self, remote_gateway, fake_client):
        fake_client.chat.completions.create.return_value = completion("")

        assert await remote_gateway.welcome_message("passport") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        SimpleNamespace(choices=None),
        SimpleNamespace(choices=[]),
        SimpleNamespace(choices=[SimpleNamespace(message=None)]),
        SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=["not", "text"]))]),
    ])
    async def test_odd_completion_shapes_return_none(self, remote_gateway, fake_client, personal_schema, response):
        """OpenAI-compatible servers sometimes answer 200 with a broken body."""
        fake_client.chat.completions.create.return_value = response

        assert await remote_gateway.classify("hello", personal_schema) is None
        assert await remote_gateway.welcome_message("passport") is None
        assert await remote_gateway.extract("hello", "default", personal_schema, ConversationContext()) is None

    @pytest.mark.asyncio
    async def test_ordinary_error_does_not_trip(self, remote_gateway, fake_client, service_health, personal_schema):
        fake_client.chat.completions.create.side_effect = ConnectionError("reset by peer")

        assert await remote_gateway.classify("hello", personal_schema) is None
        assert service_health.remote_available


class TestCircuitBreaker:
    """Quota failures disable the remote service for good."""

    @pytest.mark.asyncio
    async def test_quota_error_trips_and_skips(self, remote_gateway, fake_client, service_health, personal_schema):
        create = fake_client.chat.completions.create
        create.side_effect = QuotaError("You exceeded your current quota")

        assert await remote_gateway.classify("hello", personal_schema) is None
        assert not service_health.remote_available
        assert create.await_count == 1

        # Later calls are never attempted, whatever they are
        create.side_effect = None
        create.return_value = json_completion({"intent": "submit"})
        assert await remote_gateway.classify("submit", personal_schema) is None
        assert await remote_gateway.welcome_message("passport") is None
        assert create.await_count == 1
        assert service_health.skipped_calls == 2

    @pytest.mark.asyncio
    async def test_breaker_shared_between_gateways(self, service_health, personal_schema):
        first_client = AsyncMock()
        first_client.chat.completions.create.side_effect = QuotaError()
        second_client = AsyncMock()

        first = RemoteUnderstandingGateway(health=service_health, client=first_client, enabled=True)
        second = RemoteUnderstandingGateway(health=service_health, client=second_client, enabled=True)

        await first.classify("hello", personal_schema)
        await second.classify("hello", personal_schema)

        second_client.chat.completions.create.assert_not_called()
        assert not second.available

    def test_trip_is_idempotent(self):
        health = ServiceHealth()

        assert health.trip("insufficient_quota") is True
        assert health.trip("rate_limit_exceeded") is False
        assert health.trip_reason == "insufficient_quota"

    def test_disabled_gateway_is_unavailable(self, service_health, fake_client):
        gateway = RemoteUnderstandingGateway(health=service_health, client=fake_client, enabled=False)
        assert not gateway.available


# =============================================================================
# Understanding Service
# =============================================================================

class TestUnderstandingFallback:
    """Remote first, local rules when remote gives nothing."""

    @pytest.mark.asyncio
    async def test_remote_intent_used(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.return_value = json_completion(
            {"intent": "edit", "sectionId": 1, "fieldKey": "email", "value": "x@y.com"}
        )
        service = UnderstandingService(remote_gateway)

        intent = await service.determine_intent("whatever", personal_schema)

        assert intent == Intent.edit(1, "email", "x@y.com")

    @pytest.mark.asyncio
    async def test_local_intent_after_remote_failure(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.side_effect = QuotaError()
        service = UnderstandingService(remote_gateway)

        intent = await service.determine_intent("I'm done", personal_schema)

        assert intent == Intent.submit()
        assert not service.remote_available

    @pytest.mark.asyncio
    async def test_broken_completion_falls_back_in_conversation(self, remote_gateway, fake_client, personal_schema):
        fake_client.chat.completions.create.return_value = SimpleNamespace(choices=None)
        engine = DialogueEngine(personal_schema, understanding=UnderstandingService(remote_gateway))

        opening = await engine.start()
        reply = await engine.handle_utterance("My name is Jane Doe")

        assert opening.messages[-1] == "Let's start filling out the form. What is your full name?"
        assert reply.field_updates == [FieldUpdate(1, "fullName", "Jane Doe")]
        assert reply.text == "What is your email?"

    @pytest.mark.asyncio
    async def test_local_extraction_confidence(self, local_understanding, contact_schema):
        result = await local_understanding.process_user_input(
            "my city is pune", "default", contact_schema
        )

        assert FieldUpdate(1, "city", "pune") in result.field_updates
        assert result.confidence == 0.7
        assert result.next_question == "What is your full name?"
        assert result.source == "local"

    @pytest.mark.asyncio
    async def test_template_welcome_without_remote(self, local_understanding):
        message = await local_understanding.welcome_message("voterid")
        assert message.startswith("Welcome to the Voter ID application form!")

    def test_suggest_next_question_variants(self, contact_schema):
        assert UnderstandingService.suggest_next_question(contact_schema) == "What is your full name?"

        for form_field in contact_schema.iter_fields():
            if form_field.required:
                form_field.value = "x"
        assert UnderstandingService.suggest_next_question(contact_schema) == "Can you tell me your nickname?"

        contact_schema.get_field(2, "nickname").value = "x"
        assert UnderstandingService.suggest_next_question(contact_schema) == (
            "All fields are filled. Would you like to submit the form now?"
        )
