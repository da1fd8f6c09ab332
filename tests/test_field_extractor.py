"""
Unit Tests for Field-Value Extraction

Tests for the label-template extractor over whole utterances.
"""

import re

from config.constants import LABEL_PATTERN_CACHE_SIZE
from services.ai.extraction.field_extractor import (
    FieldValueExtractor,
    compile_label_patterns,
    extract_field_values,
)
from services.ai.models import FieldUpdate, FormField, FormSchema


def _values(updates):
    return {u.field_key: u.value for u in updates}


class TestLabelTemplates:
    """One template per phrasing."""

    def test_my_label_is_value(self, contact_schema):
        updates = extract_field_values("my email is jane@example.com", contact_schema)
        assert FieldUpdate(2, "email", "jane@example.com") in updates

    def test_label_colon_value(self, contact_schema):
        updates = extract_field_values("Phone Number: 98450 12345", contact_schema)
        assert _values(updates)["phone"] == "98450 12345"

    def test_two_values_in_one_utterance(self, contact_schema):
        updates = extract_field_values(
            "my city is pune and my phone number is 9845012345", contact_schema
        )
        values = _values(updates)
        assert values["city"] == "pune"
        assert values["phone"] == "9845012345"

    def test_put_value_as_label(self, contact_schema):
        updates = extract_field_values("put mumbai as my city", contact_schema)
        assert _values(updates)["city"] == "mumbai"

    def test_values_are_lowercased(self, contact_schema):
        """Templates run on the lower-cased text."""
        updates = extract_field_values("My City is Chennai", contact_schema)
        assert _values(updates)["city"] == "chennai"

    def test_no_match(self, gender_schema):
        assert extract_field_values("hmm let me think", gender_schema) == []


class TestNameStep:
    """Step A routes a detected name to the first name field."""

    def test_name_goes_to_name_field(self, personal_schema):
        updates = extract_field_values("My name is Jane Doe", personal_schema)
        assert updates[0] == FieldUpdate(1, "fullName", "Jane Doe")

    def test_schema_without_name_field(self, gender_schema):
        assert extract_field_values("My name is Jane Doe", gender_schema) == []


class TestLabelEscaping:
    """Labels are regex-escaped before use."""

    def test_label_with_regex_metacharacters(self):
        schema = FormSchema.from_dict([
            {"id": 1, "title": "Misc", "fields": [
                {"fieldKey": "amount", "label": "Amount (INR)", "required": True},
            ]},
        ])
        updates = extract_field_values("my amount (inr) is 500", schema)
        assert _values(updates)["amount"] == "500"

    def test_patterns_are_cached_per_label(self):
        first = FieldValueExtractor.patterns_for("Email")
        second = FieldValueExtractor.patterns_for("email ")
        assert first is second
        assert all(isinstance(p, re.Pattern) for p in first)

    def test_pattern_cache_is_bounded(self):
        """Client-supplied labels must not grow the cache without limit."""
        for i in range(LABEL_PATTERN_CACHE_SIZE + 50):
            FieldValueExtractor.patterns_for(f"custom label {i}")

        info = compile_label_patterns.cache_info()
        assert info.maxsize == LABEL_PATTERN_CACHE_SIZE
        assert info.currsize <= LABEL_PATTERN_CACHE_SIZE

    def test_blank_label_is_skipped(self):
        form_field = FormField(field_key="x", label="  ")
        assert FieldValueExtractor.extract_for_field("anything is here", form_field) is None
