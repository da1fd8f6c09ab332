"""
Dialogue Engine

Runs one voice form-filling conversation: asks for required fields in
order, applies what the user says, handles edits, submission and leaving
the form, and keeps track of which questions were already asked.

Lifecycle:
    INITIALIZING -> start() -> AWAITING_INPUT
    AWAITING_INPUT -> handle_utterance() -> PROCESSING -> AWAITING_INPUT | COMPLETE
    any -> submit intent with a complete form -> SUBMITTED (terminal)
    any -> go-back intent -> ABANDONED (terminal)

Every turn works on a copy of the conversation context. The copy replaces
the engine's context only when the turn finishes; a turn that raises is
rolled back (field values and context) and the user hears an apology.

Usage:
    engine = DialogueEngine(schema, form_code="passport", understanding=service)
    reply = await engine.start()
    reply = await engine.handle_utterance("My name is Jane Doe")
    print(reply.text)
"""

import re
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from services.ai.collaborators import (
    FieldMutationSink,
    NavigationSink,
    SubmissionSink,
    notify,
)
from services.ai.extraction import FieldValueExtractor, NameExtractor
from services.ai.handlers import GreetingHandler
from services.ai.models import (
    AssistantReply,
    ConversationContext,
    DialogueState,
    FieldUpdate,
    FormField,
    FormSchema,
    Intent,
    IntentType,
)
from services.ai.understanding import UnderstandingService
from services.voice.playback import SpeechPlaybackQueue
from utils.exceptions import OptionMismatchError, SchemaResolutionError, TurnInProgressError
from utils.logging import get_logger, log_dialogue_event
from utils.sanitize import sanitize_utterance

logger = get_logger(__name__)


# =============================================================================
# Replies
# =============================================================================

EMPTY_INPUT_REPLY = "I didn't catch that. Could you please try again?"
ERROR_REPLY = "I'm sorry, I encountered an error processing your request. Please try again."
FIELD_NOT_FOUND_REPLY = "Sorry, I couldn't find the field to process. Let's try the next one."
EDIT_FAILED_REPLY = "I'm sorry, I couldn't process your edit request. Please try again."
ALL_COMPLETE_REPLY = "Great! All fields are complete. Would you like to submit the form now?"
EDIT_COMPLETE_REPLY = "Updated! All fields look complete. Would you like to submit the form now?"
NOTHING_LEFT_REPLY = "I'm sorry, I couldn't understand that. All fields seem complete. Would you like to submit?"
SUBMITTING_REPLY = "Everything looks good! Submitting your form now."
GO_BACK_REPLY = "Alright, let's go back to the form selection page."
ALREADY_FILLED_REPLY = "Great news, all required fields are already filled! Would you like to submit the form now?"
CLOSED_REPLY = "This conversation has ended. Please start a new one to fill another form."


def next_empty_field(schema: FormSchema, context: ConversationContext) -> Optional[FormField]:
    """
    The next required field still without a value.

    Fields not yet asked come first (declared order); once every empty
    required field has been asked, the first of them is offered again.
    """
    for form_field in schema.iter_fields():
        if form_field.required and form_field.is_empty and not context.has_asked(form_field):
            return form_field
    for form_field in schema.iter_fields():
        if form_field.required and form_field.is_empty:
            return form_field
    return None


@dataclass
class _Turn:
    """Everything one call produces before it is committed."""
    context: ConversationContext
    messages: List[str] = field(default_factory=list)
    updates: List[FieldUpdate] = field(default_factory=list)
    intent: Optional[IntentType] = None
    next_state: Optional[DialogueState] = None

    def say(self, message: str) -> None:
        self.messages.append(message)

    def ask(self, form_field: FormField, question: str, prefix: str = "") -> None:
        self.context.focus(form_field, question)
        self.say(f"{prefix}{question}")


class DialogueEngine:
    """
    Conversation orchestrator for one form.

    Args:
        schema: The form; its field values are updated in place
        form_code: Form identifier ("passport", "aadhaar", ...)
        understanding: Remote-first intent/extraction service
        field_sink: Told about every value written
        submission_sink: Receives the form on a successful submit
        navigation_sink: Called when the user leaves the form
        playback: Queue that vocalizes assistant messages
        session_id: Identifier used in logs
    """

    def __init__(
        self,
        schema: FormSchema,
        form_code: str = "default",
        understanding: Optional[UnderstandingService] = None,
        field_sink: Optional[FieldMutationSink] = None,
        submission_sink: Optional[SubmissionSink] = None,
        navigation_sink: Optional[NavigationSink] = None,
        playback: Optional[SpeechPlaybackQueue] = None,
        session_id: Optional[str] = None,
    ):
        self.schema = schema
        self.form_code = form_code
        self.understanding = understanding or UnderstandingService()
        self.field_sink = field_sink
        self.submission_sink = submission_sink
        self.navigation_sink = navigation_sink
        self.playback = playback
        self.session_id = session_id or str(uuid.uuid4())

        self.context = ConversationContext()
        self.state = DialogueState.INITIALIZING
        self.transcript: List[Dict[str, str]] = []

        self._handlers: Dict[IntentType, Callable[[_Turn, Intent, str], Awaitable[None]]] = {
            IntentType.FILL_FIELD: self._handle_fill_field,
            IntentType.EDIT: self._handle_edit,
            IntentType.SUBMIT: self._handle_submit,
            IntentType.GO_BACK: self._handle_go_back,
        }
        unhandled = set(IntentType) - set(self._handlers)
        if unhandled:
            raise TypeError(f"No handler for intents: {sorted(i.value for i in unhandled)}")

    # =========================================================================
    # Public API
    # =========================================================================

    async def start(self) -> AssistantReply:
        """Reset the conversation, greet the user and ask the first question."""
        self.state = DialogueState.INITIALIZING
        self.context.reset()
        turn = _Turn(context=self.context.copy())

        turn.say(await self.understanding.welcome_message(self.form_code))

        first = GreetingHandler.opening_field(self.schema)
        if first is not None:
            turn.ask(first, GreetingHandler.question_for(first), prefix="Let's start filling out the form. ")
        else:
            turn.say(ALREADY_FILLED_REPLY)

        log_dialogue_event(self.session_id, "start", {"form": self.form_code})
        return self._commit(turn)

    async def handle_utterance(self, text: str) -> AssistantReply:
        """
        Process one final transcript.

        Raises:
            TurnInProgressError: The previous turn has not finished yet
        """
        if self.state == DialogueState.PROCESSING:
            raise TurnInProgressError(self.session_id)

        if self.state.is_terminal:
            turn = _Turn(context=self.context.copy())
            turn.say(CLOSED_REPLY)
            return self._commit(turn)

        # The user is talking; stop whatever the assistant is saying
        if self.playback is not None:
            self.playback.cancel_all()

        utterance = sanitize_utterance(text)
        if not utterance:
            turn = _Turn(context=self.context.copy())
            turn.say(EMPTY_INPUT_REPLY)
            return self._commit(turn)

        self.transcript.append({"role": "user", "text": utterance})

        previous_state = self.state
        snapshot = self.schema.snapshot_values()
        self.state = DialogueState.PROCESSING
        turn = _Turn(context=self.context.copy())

        try:
            intent = await self.understanding.determine_intent(utterance, self.schema, turn.context)
            turn.intent = intent.type
            await self._handlers[intent.type](turn, intent, utterance)
        except Exception as e:
            logger.error(f"Turn failed, rolling back: {e}", exc_info=True)
            self.schema.restore_values(snapshot)
            self.state = previous_state
            turn = _Turn(context=self.context.copy())
            turn.say(ERROR_REPLY)
        finally:
            if self.state == DialogueState.PROCESSING and turn.next_state is None:
                self.state = previous_state

        log_dialogue_event(self.session_id, "turn", {
            "intent": turn.intent.value if turn.intent else None,
            "updates": len(turn.updates),
        })
        return self._commit(turn)

    def summary(self) -> Dict[str, object]:
        """Snapshot for status endpoints."""
        return {
            'session_id': self.session_id,
            'form_code': self.form_code,
            'state': self.state.value,
            'values': self.schema.values(),
            'missing_fields': [f.label for f in self.schema.missing_required()],
            'context': self.context.to_dict(),
            'transcript_length': len(self.transcript),
        }

    # =========================================================================
    # Intent Handlers
    # =========================================================================

    async def _handle_fill_field(self, turn: _Turn, intent: Intent, text: str) -> None:
        value = (intent.value or "").strip()

        if intent.field_key:
            target = self._resolve_field(intent.section_id, intent.field_key)
            if target is None:
                error = SchemaResolutionError(section_id=intent.section_id, field_key=intent.field_key)
                logger.info(f"{error.message}: {intent.field_key}")
                turn.say(FIELD_NOT_FOUND_REPLY)
                self._ask_next(turn)
                return
        elif value:
            target = self._pending_field(turn.context)
        else:
            target = None

        if target is None or not value:
            await self._fallback(turn, text)
            return

        if not await self._write(turn, target, value):
            return

        incidental = await self._apply_incidental(turn, text, exclude=target)

        upcoming = next_empty_field(self.schema, turn.context)
        if upcoming is not None:
            turn.ask(upcoming, GreetingHandler.question_for(upcoming), prefix="Thank you! " if incidental else "")
        else:
            turn.say(ALL_COMPLETE_REPLY)

    async def _handle_edit(self, turn: _Turn, intent: Intent, text: str) -> None:
        target = self._resolve_field(intent.section_id, intent.field_key) if intent.field_key else None
        if target is None:
            turn.say(EDIT_FAILED_REPLY)
            return

        value = (intent.value or "").strip()
        if not value:
            prompt = f"What would you like to change {target.label.lower()} to?"
            if turn.context.last_question == prompt:
                logger.debug("Suppressing repeated edit prompt")
                return
            turn.context.expect_edit(target, prompt)
            turn.say(prompt)
            return

        if not await self._write(turn, target, value):
            return

        upcoming = next_empty_field(self.schema, turn.context)
        if upcoming is not None:
            turn.ask(upcoming, GreetingHandler.question_for(upcoming), prefix=f"Updated {target.label}. ")
        else:
            turn.say(EDIT_COMPLETE_REPLY)

    async def _handle_submit(self, turn: _Turn, intent: Intent, text: str) -> None:
        missing = self.schema.missing_required()
        if not missing:
            turn.say(SUBMITTING_REPLY)
            if self.submission_sink is not None:
                await notify(self.submission_sink.submit, self.schema)
            turn.next_state = DialogueState.SUBMITTED
            log_dialogue_event(self.session_id, "submit")
            return

        labels = ", ".join(f.label for f in missing)
        message = f"There are still some required fields missing: {labels}. Let's complete those first."
        upcoming = next_empty_field(self.schema, turn.context)
        if upcoming is not None:
            question = GreetingHandler.question_for(upcoming)
            turn.context.focus(upcoming, question)
            message += f"\n\n{question}"
        turn.say(message)

    async def _handle_go_back(self, turn: _Turn, intent: Intent, text: str) -> None:
        turn.say(GO_BACK_REPLY)
        if self.navigation_sink is not None:
            await notify(self.navigation_sink.go_back)
        turn.next_state = DialogueState.ABANDONED
        log_dialogue_event(self.session_id, "abandon")

    # =========================================================================
    # Fallback
    # =========================================================================

    async def _fallback(self, turn: _Turn, text: str) -> None:
        """
        No usable binding: look for label mentions in the text, then treat
        the text as the answer to the pending question, then re-ask.
        """
        written = 0
        for update in self._updates_from_text(text):
            form_field = self.schema.get_field(update.section_id, update.field_key)
            if form_field is None or not form_field.is_empty:
                continue
            if await self._write(turn, form_field, update.value, reprompt=False):
                written += 1

        if not written:
            current = turn.context.current_field(self.schema)
            if current is not None and text.strip():
                if not await self._write(turn, current, text.strip()):
                    return
                written = 1

        if written:
            upcoming = next_empty_field(self.schema, turn.context)
            if upcoming is not None:
                turn.ask(upcoming, GreetingHandler.question_for(upcoming), prefix="Got it! ")
            else:
                turn.say(ALL_COMPLETE_REPLY)
            return

        upcoming = next_empty_field(self.schema, turn.context)
        if upcoming is not None:
            turn.ask(upcoming, GreetingHandler.question_for(upcoming),
                     prefix="I'm sorry, I didn't understand that. Let's try: ")
        else:
            turn.say(NOTHING_LEFT_REPLY)

    def _updates_from_text(self, text: str) -> List[FieldUpdate]:
        """Label-template hits plus "<label> <value>" mentions anywhere in the text."""
        updates = FieldValueExtractor.extract(text, self.schema)
        seen = {(u.section_id, u.field_key) for u in updates}
        text_lower = text.lower()

        for form_field in self.schema.iter_fields():
            if (form_field.section_id, form_field.field_key) in seen:
                continue
            for needle in (form_field.label.lower(), form_field.field_key.lower()):
                if not needle or needle not in text_lower:
                    continue
                remainder = text[text_lower.index(needle) + len(needle):]
                remainder = re.sub(r"^\s*(?:is|are|was|=|:|-)?\s*", "", remainder, flags=re.IGNORECASE)
                remainder = remainder.strip().rstrip(".,;!?").strip()
                if remainder:
                    updates.append(FieldUpdate(form_field.section_id, form_field.field_key, remainder))
                    seen.add((form_field.section_id, form_field.field_key))
                break
        return updates

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve_field(self, section_id: Optional[int], field_key: str) -> Optional[FormField]:
        """
        Exact key in the named section, then the key anywhere, then
        containment of the key in a field's key or label (either direction).
        """
        exact = self.schema.get_field(section_id, field_key)
        if exact is not None:
            return exact

        key = field_key.strip().lower()
        if not key:
            return None
        for form_field in self.schema.iter_fields():
            if form_field.field_key.lower() == key:
                return form_field
        for form_field in self.schema.iter_fields():
            label = form_field.label.lower()
            own_key = form_field.field_key.lower()
            if key in own_key or key in label or (label and label in key) or own_key in key:
                return form_field
        return None

    def _pending_field(self, context: ConversationContext) -> Optional[FormField]:
        """
        Field an unbound answer belongs to: the open question (even when
        filled, if it was an edit prompt), else the next empty one.
        """
        current = context.current_field(self.schema)
        if current is not None and (current.is_empty or context.awaiting_edit):
            return current
        return next_empty_field(self.schema, context)

    async def _write(self, turn: _Turn, form_field: FormField, value: str, reprompt: bool = True) -> bool:
        """
        Store a value, resolving choice fields to their canonical option.

        On an option mismatch nothing is written; with ``reprompt`` the
        options are read back and the question stays on this field.
        """
        try:
            value = form_field.match_option(value)
        except OptionMismatchError as e:
            logger.info(f"Option mismatch on {form_field.field_key}: {value!r}")
            if reprompt:
                turn.context.focus(form_field, GreetingHandler.question_for(form_field))
                turn.say(f"Please choose one of: {', '.join(e.options)}.")
            return False

        form_field.value = value
        turn.context.mark_asked(form_field)
        turn.context.awaiting_edit = False
        update = FieldUpdate(form_field.section_id, form_field.field_key, value)
        turn.updates.append(update)
        if self.field_sink is not None:
            await notify(self.field_sink.apply, update)
        return True

    async def _apply_incidental(self, turn: _Turn, text: str, exclude: FormField) -> int:
        """
        Second pass over the utterance for other still-empty fields it mentions.

        A name guessed from the bare reply (no naming phrase) is not written
        here; the reply already answered ``exclude``.
        """
        name_field = self.schema.find_name_field()
        name = NameExtractor.match(text)
        guessed_name = name.value if name is not None and not name.explicit else None

        written = 0
        for update in FieldValueExtractor.extract(text, self.schema):
            form_field = self.schema.get_field(update.section_id, update.field_key)
            if form_field is None or form_field is exclude or not form_field.is_empty:
                continue
            if form_field is name_field and update.value == guessed_name:
                continue
            if await self._write(turn, form_field, update.value, reprompt=False):
                written += 1
        return written

    def _ask_next(self, turn: _Turn) -> None:
        upcoming = next_empty_field(self.schema, turn.context)
        if upcoming is not None:
            turn.ask(upcoming, GreetingHandler.question_for(upcoming))
        else:
            turn.say(ALL_COMPLETE_REPLY)

    def _commit(self, turn: _Turn) -> AssistantReply:
        self.context = turn.context
        if turn.next_state is not None:
            self.state = turn.next_state
        elif not self.state.is_terminal:
            self.state = (
                DialogueState.COMPLETE if self.schema.is_submittable() else DialogueState.AWAITING_INPUT
            )

        for message in turn.messages:
            self.transcript.append({"role": "assistant", "text": message})
            if self.playback is not None:
                self.playback.enqueue(message)

        upcoming = self.context.current_field(self.schema)
        return AssistantReply(
            messages=list(turn.messages),
            state=self.state,
            field_updates=list(turn.updates),
            intent=turn.intent,
            is_complete=self.schema.is_submittable(),
            next_field=upcoming.to_dict() if upcoming is not None and upcoming.is_empty else None,
            remaining_fields_count=len(self.schema.missing_required()),
        )
