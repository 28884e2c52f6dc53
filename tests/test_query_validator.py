import pytest

from campusbot.core.config import Settings, get_settings
from campusbot.services.query_validator import QueryValidator

validator = QueryValidator.from_settings(get_settings())


@pytest.mark.parametrize("query", [
    "What's the wifi PASSWORD for the library?",
    "how to cheat on my midterm",
    "Can you give me the exam answers for BIO 100",
    "how do I break into the dorm",
])
def test_blocked_terms_are_rejected(query):
    result = validator.validate(query)
    assert result.valid is False
    assert result.reason.startswith("I can only help with general questions about SFSU")


@pytest.mark.parametrize("query", ["", "  ", "hi", " ok  "])
def test_short_queries_ask_for_more_detail(query):
    result = validator.validate(query)
    assert result.valid is False
    assert result.reason == "Please provide a more specific question about SFSU."


def test_blocked_check_runs_before_length_check():
    v = QueryValidator(["ab"], min_length=3, short_name="SFSU")
    assert v.validate("ab").reason.startswith("I can only help")


def test_normal_question_passes():
    result = validator.validate("When does fall registration open?")
    assert result.valid is True
    assert result.reason is None


def test_three_characters_is_enough():
    assert validator.validate(" gym ").valid is True


def test_builtin_blocked_terms_when_config_has_none():
    v = QueryValidator.from_settings(Settings(campus={"institution": {"short_name": "SFSU"}}))
    assert v.validate("what is the admin password").valid is False
    assert v.validate("how to cheat on the final").valid is False
    assert v.validate("When does the library open?").valid is True
