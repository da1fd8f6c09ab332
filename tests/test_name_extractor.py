"""
Unit Tests for Name Extraction

Tests for the rule-ordered person-name extractor.
"""

import pytest

from services.ai.extraction.name_extractor import NameExtractor, extract_person_name


class TestNamingPhrases:
    """Rule 1: explicit naming phrases."""

    def test_my_name_is_strips_trailing_period(self):
        assert extract_person_name("My name is Raj Kumar.") == "Raj Kumar"

    def test_my_name_is_stops_at_and(self):
        assert extract_person_name("my name is Priya Sharma and I live in Pune") == "Priya Sharma"

    def test_put_as_my_name(self):
        assert extract_person_name("put Raj Kumar as my name") == "Raj Kumar"

    def test_call_me(self):
        match = NameExtractor.match("you can call me Anita")
        assert match.value == "Anita"
        assert match.explicit is True

    def test_name_should_be(self):
        assert extract_person_name("the name should be Arjun Mehta") == "Arjun Mehta"

    def test_use_name_as(self):
        assert extract_person_name("please use my name as Kavya Rao") == "Kavya Rao"

    def test_i_am_is_not_explicit(self):
        """"I'm X" is a conversational opener, not a statement about the name slot."""
        match = NameExtractor.match("I'm Rahul")
        assert match.value == "Rahul"
        assert match.explicit is False


class TestBareReplies:
    """Bare answers, capitalised runs and short input."""

    def test_bare_two_word_name(self):
        assert extract_person_name("John Smith") == "John Smith"

    @pytest.mark.parametrize("text", ["yes", "Yes.", "okay", "no", "thanks"])
    def test_acknowledgements_are_not_names(self, text):
        assert extract_person_name(text) is None

    def test_capitalized_run_inside_sentence(self):
        match = NameExtractor.match("well it is definitely Meera Nair, thanks")
        assert match.value == "Meera Nair"
        assert match.rule == "capitalized"

    def test_short_input_with_symbols(self):
        """Rule 4 takes the whole short reply when nothing else matched."""
        match = NameExtractor.match("jane@example.com")
        assert match.rule == "short_input"
        assert match.explicit is False

    def test_single_letter_rejected(self):
        assert extract_person_name("a") is None


class TestDeterminism:
    """Same input, same answer."""

    @pytest.mark.parametrize("text", [
        "My name is Raj Kumar.",
        "put Raj Kumar as my name",
        "John Smith",
        "yes",
    ])
    def test_repeated_calls_agree(self, text):
        results = {extract_person_name(text) for _ in range(5)}
        assert len(results) == 1

    def test_empty_input(self):
        assert extract_person_name("") is None
        assert extract_person_name("   ") is None
