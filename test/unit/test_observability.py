"""Unit tests for logging configuration and per-turn context."""

from __future__ import annotations

import json
import logging

from observability import (
    ContextFilter,
    JsonFormatter,
    PlainFormatter,
    bind_context,
    clear_context,
    get_context,
)


def _record(message: str) -> logging.LogRecord:
    record = logging.LogRecord("aide.test", logging.INFO, __file__, 1, message, None, None)
    ContextFilter().filter(record)
    return record


def test_bind_context_merges_and_skips_none() -> None:
    clear_context()
    bind_context(channel_id="C1", user_id=7)
    bind_context(user_slack_id=None)

    assert get_context() == {"channel_id": "C1", "user_id": "7"}

    clear_context()
    assert get_context() == {}


def test_json_formatter_includes_context() -> None:
    """Bound values appear as top-level JSON fields."""
    bind_context(channel_id="C1")
    try:
        payload = json.loads(JsonFormatter().format(_record("turn handled")))
    finally:
        clear_context()

    assert payload["message"] == "turn handled"
    assert payload["level"] == "INFO"
    assert payload["channel_id"] == "C1"


def test_plain_formatter_appends_sorted_context() -> None:
    bind_context(user_id=3, channel_id="C9")
    try:
        line = PlainFormatter().format(_record("hello"))
    finally:
        clear_context()

    assert line.endswith("hello channel_id=C9 user_id=3")
