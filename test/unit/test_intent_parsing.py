"""Unit tests for classifier output sanitization."""

from __future__ import annotations

from conversations.intent import parse_classification, parse_intent


def test_fenced_json_parses_like_bare_json() -> None:
    bare = '{"intent":"task.create","title":"Buy milk","description":""}'
    fenced = f"```json\n{bare}\n```"

    assert parse_classification(fenced) == parse_classification(bare)
    assert parse_intent(fenced).intent == "task.create"


def test_object_is_extracted_from_surrounding_text() -> None:
    raw = 'Sure! Here is the result: {"intent":"alert.list"} hope it helps'

    assert parse_intent(raw).intent == "alert.list"


def test_trailing_comma_is_tolerated() -> None:
    raw = '{"intent":"note.create","title":"Ideas",}'

    payload = parse_intent(raw)

    assert payload.intent == "note.create"
    assert payload.text("title") == "Ideas"


def test_missing_intent_returns_none() -> None:
    assert parse_intent('{"title":"orphan"}') is None
    assert parse_intent('{"intent":""}') is None


def test_garbage_returns_none() -> None:
    assert parse_intent("I am not JSON at all") is None
    assert parse_intent("") is None
    assert parse_intent(None) is None
    assert parse_intent("[1, 2, 3]") is None


def test_unknown_intent_is_flagged() -> None:
    payload = parse_intent('{"intent":"weather.get"}')

    assert payload is not None
    assert payload.known is False


def test_text_normalizes_field_types() -> None:
    payload = parse_intent('{"intent":"Task.List","tag":null,"count":3,"title":"  x  "}')

    assert payload.intent == "task.list"
    assert payload.known is True
    assert payload.text("tag") == ""
    assert payload.text("count") == "3"
    assert payload.text("title") == "x"
