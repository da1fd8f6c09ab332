"""
Unit Tests for Intent Classification

Tests for the local rule-based classifier: submit, go back, edit and the
fillField default with its field binding.
"""

import pytest

from services.ai.handlers.intent_classifier import IntentClassifier
from services.ai.models import ConversationContext, Intent, IntentType


def _focused_on(schema, field_key):
    context = ConversationContext()
    form_field = schema.get_field(None, field_key)
    context.focus(form_field, f"What is your {form_field.label.lower()}?")
    return context


class TestControlIntents:
    """Submit and go-back are checked before any field language."""

    @pytest.mark.parametrize("text", [
        "submit",
        "I'm done",
        "that's all",
        "yes please submit it",
        "go ahead",
    ])
    def test_submit(self, personal_schema, text):
        intent = IntentClassifier.classify(text, personal_schema)
        assert intent == Intent.submit()

    @pytest.mark.parametrize("text", ["go back", "cancel", "take me back", "start over", "exit"])
    def test_go_back(self, personal_schema, text):
        intent = IntentClassifier.classify(text, personal_schema)
        assert intent.type is IntentType.GO_BACK

    def test_submit_wins_over_name(self, personal_schema):
        """"I'm done" must never become a name."""
        intent = IntentClassifier.classify("I'm done", personal_schema)
        assert intent.field_key is None


class TestEditIntent:
    """Edit phrases bound to schema fields."""

    def test_change_field_to_value(self, personal_schema):
        intent = IntentClassifier.classify("change email to jane@x.com", personal_schema)
        assert intent == Intent.edit(section_id=1, field_key="email", value="jane@x.com")

    def test_set_field_as_value(self, contact_schema):
        intent = IntentClassifier.classify("set my city as Nagpur", contact_schema)
        assert intent.type is IntentType.EDIT
        assert intent.field_key == "city"
        assert intent.value == "Nagpur"

    def test_edit_without_value(self, personal_schema):
        intent = IntentClassifier.classify("edit full name", personal_schema)
        assert intent == Intent.edit(section_id=1, field_key="fullName", value=None)

    def test_unknown_field_is_not_an_edit(self, personal_schema):
        intent = IntentClassifier.classify("change the weather to sunny", personal_schema)
        assert intent.type is IntentType.FILL_FIELD


class TestFillFieldIntent:
    """Default rule and its field binding."""

    def test_explicit_name_targets_name_field(self, personal_schema):
        context = _focused_on(personal_schema, "email")
        intent = IntentClassifier.classify("My name is Jane Doe", personal_schema, context)
        assert intent == Intent.fill_field("Jane Doe", 1, "fullName")

    def test_short_reply_answers_current_question(self, personal_schema):
        context = _focused_on(personal_schema, "email")
        intent = IntentClassifier.classify("jane@example.com", personal_schema, context)
        assert intent == Intent.fill_field("jane@example.com", 1, "email")

    def test_bare_name_defers_to_current_question(self, contact_schema):
        """A name-looking short reply fills the field that was asked."""
        context = _focused_on(contact_schema, "city")
        intent = IntentClassifier.classify("New Delhi", contact_schema, context)
        assert intent == Intent.fill_field("New Delhi", 1, "city")

    def test_bare_name_without_focus(self, personal_schema):
        intent = IntentClassifier.classify("John Smith", personal_schema)
        assert intent == Intent.fill_field("John Smith", 1, "fullName")

    def test_long_utterance_uses_label_templates(self, contact_schema):
        context = _focused_on(contact_schema, "city")
        intent = IntentClassifier.classify(
            "oh right, my phone number is 9845012345 if that helps", contact_schema, context
        )
        assert intent.field_key == "phone"
        assert intent.value == "9845012345 if that helps"

    def test_nothing_recognized(self, gender_schema):
        intent = IntentClassifier.classify(
            "well I am not really sure what to say about this one", gender_schema
        )
        assert intent == Intent.fill_field()
        assert not intent.is_bound

    def test_empty_text(self, personal_schema):
        assert IntentClassifier.classify("   ", personal_schema) == Intent.fill_field()


class TestIntentModel:
    """Tagged-union construction rules."""

    def test_submit_cannot_carry_binding(self):
        with pytest.raises(ValueError):
            Intent(IntentType.SUBMIT, section_id=1, field_key="email")

    def test_to_dict_wire_shape(self):
        assert Intent.edit(1, "email", "a@b.com").to_dict() == {
            "intent": "edit", "sectionId": 1, "fieldKey": "email", "value": "a@b.com",
        }
        assert Intent.go_back().to_dict() == {"intent": "goBack"}
