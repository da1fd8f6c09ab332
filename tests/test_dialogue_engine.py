"""
Unit Tests for the Dialogue Engine

Covers the full turn cycle: opening question, field filling, edits,
submit gating, radio options, go back, rollback and turn serialization.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from conftest import completion, json_completion
from services.ai.collaborators import RecordingSinks
from services.ai.dialogue_engine import (
    ALL_COMPLETE_REPLY,
    ALREADY_FILLED_REPLY,
    CLOSED_REPLY,
    EDIT_COMPLETE_REPLY,
    EMPTY_INPUT_REPLY,
    ERROR_REPLY,
    FIELD_NOT_FOUND_REPLY,
    GO_BACK_REPLY,
    SUBMITTING_REPLY,
    DialogueEngine,
    next_empty_field,
)
from services.ai.handlers import GreetingHandler
from services.ai.models import ConversationContext, DialogueState, FieldUpdate, Intent, IntentType
from services.ai.understanding import UnderstandingService
from services.voice.playback import SpeechPlaybackQueue
from utils.exceptions import TurnInProgressError


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def sinks():
    return RecordingSinks()


@pytest.fixture
def engine(personal_schema, local_understanding, sinks):
    return DialogueEngine(
        personal_schema,
        understanding=local_understanding,
        field_sink=sinks,
        submission_sink=sinks,
        navigation_sink=sinks,
        session_id="test-session",
    )


def _fill_all(schema):
    schema.get_field(1, "fullName").value = "Jane Doe"
    schema.get_field(1, "email").value = "jane@example.com"


# =============================================================================
# Opening
# =============================================================================

class TestStart:

    @pytest.mark.asyncio
    async def test_welcome_then_first_question(self, engine):
        reply = await engine.start()

        assert reply.messages == [
            GreetingHandler.default_welcome_message("default"),
            "Let's start filling out the form. What is your full name?",
        ]
        assert reply.state == DialogueState.AWAITING_INPUT
        assert reply.next_field["fieldKey"] == "fullName"
        assert reply.remaining_fields_count == 2
        assert engine.context.current_field_key == "fullName"

    @pytest.mark.asyncio
    async def test_already_filled_form(self, engine, personal_schema):
        _fill_all(personal_schema)
        reply = await engine.start()

        assert reply.messages[-1] == ALREADY_FILLED_REPLY
        assert reply.state == DialogueState.COMPLETE

    @pytest.mark.asyncio
    async def test_personal_section_asked_first(self, local_understanding):
        from services.ai.models import FormSchema

        schema = FormSchema.from_dict([
            {"id": 1, "title": "Contact", "fields": [{"fieldKey": "email", "label": "Email", "required": True}]},
            {"id": 2, "title": "Personal Details", "fields": [{"fieldKey": "city", "label": "City", "required": True}]},
        ])
        engine = DialogueEngine(schema, understanding=local_understanding)
        reply = await engine.start()

        assert reply.messages[-1].endswith("What is your city?")

    def test_every_intent_has_a_handler(self, engine):
        assert set(engine._handlers) == set(IntentType)


# =============================================================================
# Filling Fields
# =============================================================================

class TestFillField:

    @pytest.mark.asyncio
    async def test_name_then_email_then_submit(self, engine, sinks):
        """The two-field walkthrough from greeting to submission."""
        await engine.start()

        reply = await engine.handle_utterance("My name is Jane Doe")
        assert reply.field_updates == [FieldUpdate(1, "fullName", "Jane Doe")]
        assert reply.messages == ["What is your email?"]
        assert reply.intent is IntentType.FILL_FIELD

        reply = await engine.handle_utterance("jane@example.com")
        assert reply.field_updates == [FieldUpdate(1, "email", "jane@example.com")]
        assert reply.messages == [ALL_COMPLETE_REPLY]
        assert reply.state == DialogueState.COMPLETE
        assert reply.is_complete

        reply = await engine.handle_utterance("I'm done")
        assert reply.intent is IntentType.SUBMIT
        assert reply.messages == [SUBMITTING_REPLY]
        assert reply.submitted
        assert sinks.submitted_values == {"1-fullName": "Jane Doe", "1-email": "jane@example.com"}

    @pytest.mark.asyncio
    async def test_field_sink_sees_every_write(self, engine, sinks):
        await engine.start()
        await engine.handle_utterance("My name is Jane Doe")
        await engine.handle_utterance("jane@example.com")

        assert [u.field_key for u in sinks.updates] == ["fullName", "email"]

    @pytest.mark.asyncio
    async def test_incidental_values_are_thanked(self, contact_schema, local_understanding):
        engine = DialogueEngine(contact_schema, understanding=local_understanding)
        await engine.start()

        reply = await engine.handle_utterance("My name is Ravi Kumar and my city is pune")

        assert [u.field_key for u in reply.field_updates] == ["fullName", "city"]
        assert reply.messages == ["Thank you! What is your email?"]

    @pytest.mark.asyncio
    async def test_short_answer_does_not_guess_name(self, contact_schema, local_understanding):
        """A bare reply answers the open question and nothing else."""
        engine = DialogueEngine(contact_schema, understanding=local_understanding)
        await engine.start()
        engine.context.focus(contact_schema.get_field(1, "city"), "What is your city?")

        reply = await engine.handle_utterance("new delhi")

        assert reply.field_updates == [FieldUpdate(1, "city", "new delhi")]
        assert contact_schema.get_field(1, "fullName").value == ""
        assert reply.messages == ["What is your email?"]

    @pytest.mark.asyncio
    async def test_unknown_field_binding(self, engine, local_understanding):
        await engine.start()
        local_understanding.determine_intent = AsyncMock(
            return_value=Intent.fill_field("x", 9, "passportNumber")
        )

        reply = await engine.handle_utterance("something")

        assert reply.messages == [FIELD_NOT_FOUND_REPLY, "What is your email?"]
        assert reply.field_updates == []

    @pytest.mark.asyncio
    async def test_not_understood_reasks(self, engine, local_understanding):
        local_understanding.determine_intent = AsyncMock(return_value=Intent.fill_field())

        reply = await engine.handle_utterance("12 34 56 78")

        assert reply.messages == [
            "I'm sorry, I didn't understand that. Let's try: What is your full name?"
        ]

    @pytest.mark.asyncio
    async def test_empty_utterance(self, engine):
        await engine.start()
        transcript_length = len(engine.transcript)

        reply = await engine.handle_utterance("   ")

        assert reply.messages == [EMPTY_INPUT_REPLY]
        assert reply.state == DialogueState.AWAITING_INPUT
        assert len(engine.transcript) == transcript_length + 1


# =============================================================================
# Radio Fields
# =============================================================================

class TestRadioField:

    @pytest.mark.asyncio
    async def test_option_is_canonicalized(self, gender_schema, local_understanding):
        engine = DialogueEngine(gender_schema, understanding=local_understanding)
        await engine.start()

        reply = await engine.handle_utterance("female")

        assert gender_schema.get_field(1, "gender").value == "Female"
        assert reply.field_updates == [FieldUpdate(1, "gender", "Female")]

    @pytest.mark.asyncio
    async def test_mismatch_relists_options(self, gender_schema, local_understanding):
        sink = MagicMock()
        engine = DialogueEngine(gender_schema, understanding=local_understanding, field_sink=sink)
        await engine.start()

        reply = await engine.handle_utterance("cat")

        assert reply.messages == ["Please choose one of: Male, Female."]
        assert gender_schema.get_field(1, "gender").value == ""
        assert reply.field_updates == []
        assert engine.context.current_field_key == "gender"
        sink.apply.assert_not_called()


# =============================================================================
# Edits
# =============================================================================

class TestEdit:

    @pytest.mark.asyncio
    async def test_edit_on_complete_form_offers_submission(self, engine, personal_schema):
        _fill_all(personal_schema)
        await engine.start()

        reply = await engine.handle_utterance("change email to jane@x.com")

        assert reply.intent is IntentType.EDIT
        assert personal_schema.get_field(1, "email").value == "jane@x.com"
        assert reply.messages == [EDIT_COMPLETE_REPLY]

    @pytest.mark.asyncio
    async def test_edit_with_remaining_fields(self, engine, personal_schema):
        personal_schema.get_field(1, "email").value = "old@example.com"
        await engine.start()

        reply = await engine.handle_utterance("change email to new@example.com")

        assert reply.messages == ["Updated Email. What is your full name?"]

    @pytest.mark.asyncio
    async def test_edit_prompt_not_repeated(self, engine, personal_schema):
        _fill_all(personal_schema)
        await engine.start()

        first = await engine.handle_utterance("edit email")
        second = await engine.handle_utterance("edit email")

        assert first.messages == ["What would you like to change email to?"]
        assert second.messages == []


# =============================================================================
# Submit and Go Back
# =============================================================================

class TestSubmitAndGoBack:

    @pytest.mark.asyncio
    async def test_submit_blocked_while_fields_missing(self, engine, sinks):
        await engine.start()

        reply = await engine.handle_utterance("submit")

        assert reply.messages[0].startswith(
            "There are still some required fields missing: Full Name, Email. Let's complete those first."
        )
        assert reply.messages[0].endswith("What is your email?")
        assert sinks.submitted_values is None
        assert reply.state == DialogueState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_async_submission_sink_is_awaited(self, personal_schema, local_understanding):
        received = []

        async def on_submit(schema):
            received.append(schema.values())

        _fill_all(personal_schema)
        engine = DialogueEngine(
            personal_schema,
            understanding=local_understanding,
            submission_sink=RecordingSinks(on_submit=on_submit),
        )
        await engine.start()
        await engine.handle_utterance("submit")

        assert received == [{"1-fullName": "Jane Doe", "1-email": "jane@example.com"}]

    @pytest.mark.asyncio
    async def test_go_back_abandons(self, engine, sinks):
        await engine.start()

        reply = await engine.handle_utterance("go back")

        assert reply.messages == [GO_BACK_REPLY]
        assert reply.state == DialogueState.ABANDONED
        assert sinks.navigated_back

    @pytest.mark.asyncio
    async def test_closed_after_submit(self, engine, personal_schema):
        _fill_all(personal_schema)
        await engine.start()
        await engine.handle_utterance("submit")

        reply = await engine.handle_utterance("change email to a@b.com")

        assert reply.messages == [CLOSED_REPLY]
        assert personal_schema.get_field(1, "email").value == "jane@example.com"


# =============================================================================
# Failures and Concurrency
# =============================================================================

class TestTurnBoundary:

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self, personal_schema, local_understanding):
        sink = MagicMock()
        sink.apply.side_effect = RuntimeError("storage down")
        engine = DialogueEngine(personal_schema, understanding=local_understanding, field_sink=sink)
        await engine.start()
        context_before = engine.context.copy()

        reply = await engine.handle_utterance("My name is Jane Doe")

        assert reply.messages == [ERROR_REPLY]
        assert personal_schema.get_field(1, "fullName").value == ""
        assert engine.context == context_before
        assert engine.state == DialogueState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_second_utterance_while_processing(self, engine, local_understanding):
        await engine.start()
        gate = asyncio.Event()
        classify = local_understanding.determine_intent

        async def slow_classify(*args, **kwargs):
            await gate.wait()
            return await classify(*args, **kwargs)

        local_understanding.determine_intent = slow_classify

        first = asyncio.create_task(engine.handle_utterance("John Smith"))
        await asyncio.sleep(0)
        assert engine.state == DialogueState.PROCESSING

        with pytest.raises(TurnInProgressError):
            await engine.handle_utterance("jane@example.com")

        gate.set()
        reply = await first
        assert reply.field_updates == [FieldUpdate(1, "fullName", "John Smith")]

    @pytest.mark.asyncio
    async def test_new_utterance_cancels_playback(self, personal_schema, local_understanding):
        async def speaker(text):
            await asyncio.Event().wait()

        queue = SpeechPlaybackQueue(speaker)
        engine = DialogueEngine(personal_schema, understanding=local_understanding, playback=queue)
        await engine.start()
        assert len(queue.pending) == 2

        reply = await engine.handle_utterance("My name is Jane Doe")

        assert queue.pending == reply.messages
        assert list(queue.spoken) == []
        queue.cancel_all()


# =============================================================================
# Remote Understanding
# =============================================================================

class TestRemoteDrivenTurn:

    @pytest.mark.asyncio
    async def test_remote_intent_and_welcome(self, personal_schema, remote_gateway, fake_client):
        fake_client.chat.completions.create.side_effect = [
            completion("Namaste! Let's fill your form together."),
            json_completion({"intent": "fillField", "sectionId": 1, "fieldKey": "email", "value": "a@b.com"}),
        ]
        engine = DialogueEngine(personal_schema, understanding=UnderstandingService(remote_gateway))

        start = await engine.start()
        reply = await engine.handle_utterance("my mail is a at b dot com")

        assert start.messages[0] == "Namaste! Let's fill your form together."
        assert reply.field_updates == [FieldUpdate(1, "email", "a@b.com")]

    @pytest.mark.asyncio
    async def test_unbound_answer_after_edit_prompt(self, personal_schema, remote_gateway, fake_client):
        fake_client.chat.completions.create.side_effect = [
            completion("Welcome!"),
            json_completion({"intent": "fillField", "sectionId": 1, "fieldKey": "fullName", "value": "Jane Doe"}),
            json_completion({"intent": "edit", "sectionId": 1, "fieldKey": "fullName"}),
            json_completion({"intent": "fillField", "value": "Janet Roe"}),
        ]
        engine = DialogueEngine(personal_schema, understanding=UnderstandingService(remote_gateway))

        await engine.start()
        await engine.handle_utterance("My name is Jane Doe")
        prompt = await engine.handle_utterance("I want to fix my name")
        reply = await engine.handle_utterance("Janet Roe")

        assert prompt.messages == ["What would you like to change full name to?"]
        assert reply.field_updates == [FieldUpdate(1, "fullName", "Janet Roe")]
        assert personal_schema.values() == {"1-fullName": "Janet Roe", "1-email": ""}
        assert reply.messages == ["What is your email?"]
        assert not engine.context.awaiting_edit


# =============================================================================
# Next Empty Field
# =============================================================================

class TestNextEmptyField:

    def test_unasked_fields_first(self, personal_schema):
        context = ConversationContext()
        context.mark_asked(personal_schema.get_field(1, "fullName"))

        assert next_empty_field(personal_schema, context).field_key == "email"

    def test_reasks_once_all_asked(self, personal_schema):
        context = ConversationContext()
        for form_field in personal_schema.iter_fields():
            context.mark_asked(form_field)

        assert next_empty_field(personal_schema, context).field_key == "fullName"

    def test_none_when_complete(self, personal_schema):
        _fill_all(personal_schema)
        assert next_empty_field(personal_schema, ConversationContext()) is None
