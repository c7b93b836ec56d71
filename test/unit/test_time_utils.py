"""Unit tests for timezone conversion and time expression helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from config import settings
from time_utils import (
    format_date_text,
    get_local_timezone,
    parse_time_expression,
    relative_time_compact,
    to_local,
    to_utc,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def test_get_local_timezone_uses_settings(monkeypatch) -> None:
    """Local timezone resolves from settings."""
    monkeypatch.setattr(settings.user, "timezone", "UTC", raising=False)
    tz = get_local_timezone()
    assert tz.key == "UTC"


def test_to_utc_converts_from_local(monkeypatch) -> None:
    """to_utc converts naive local times to UTC."""
    monkeypatch.setattr(settings.user, "timezone", "America/New_York", raising=False)
    local_time = datetime(2025, 1, 15, 12, 0, 0)
    converted = to_utc(local_time)

    assert converted.tzinfo == timezone.utc
    assert converted.hour == 17
    assert converted.minute == 0


def test_to_local_converts_from_utc(monkeypatch) -> None:
    """to_local converts aware UTC times to local timezone."""
    monkeypatch.setattr(settings.user, "timezone", "America/New_York", raising=False)
    utc_time = datetime(2025, 1, 15, 17, 0, 0, tzinfo=timezone.utc)
    converted = to_local(utc_time)

    assert converted.hour == 12
    assert converted.tzinfo is not None


def test_format_date_text_uses_local_time(monkeypatch) -> None:
    """Dates shown to users are rendered in the configured timezone."""
    monkeypatch.setattr(settings.user, "timezone", "America/Argentina/Buenos_Aires", raising=False)

    assert format_date_text(NOW) == "2026-03-02 09:00"


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("10m", timedelta(minutes=10)),
        ("1d2h30m", timedelta(days=1, hours=2, minutes=30)),
        ("10m30s", timedelta(minutes=10, seconds=30)),
        ("2w", timedelta(weeks=2)),
        ("in 10 minutes", timedelta(minutes=10)),
        ("2 hours and 15 mins", timedelta(hours=2, minutes=15)),
        ("1 day, 3 hrs", timedelta(days=1, hours=3)),
    ],
)
def test_parse_relative_expressions(expression: str, expected: timedelta) -> None:
    """Compact and spoken durations are added to the reference time."""
    assert parse_time_expression(expression, now=NOW) == NOW + expected


def test_parse_absolute_expression_uses_local_timezone(monkeypatch) -> None:
    """Absolute dates are read in local time and returned in UTC."""
    monkeypatch.setattr(settings.user, "timezone", "America/New_York", raising=False)

    parsed = parse_time_expression("2026-01-05 14:30", now=NOW)

    assert parsed == datetime(2026, 1, 5, 19, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "expression",
    ["", "   ", "soon", "10 parsecs", "m", "99999999999w", "in 99999999999 weeks"],
)
def test_parse_rejects_unknown_expressions(expression: str) -> None:
    with pytest.raises(ValueError):
        parse_time_expression(expression, now=NOW)


@pytest.mark.parametrize(
    ("offset", "label"),
    [
        (timedelta(minutes=5), "5m"),
        (timedelta(hours=2, minutes=10), "2h"),
        (timedelta(days=3, hours=1), "3d"),
        (-timedelta(hours=1, minutes=5), "overdue1h"),
        (-timedelta(minutes=30), "overdue30m"),
    ],
)
def test_relative_time_compact(offset: timedelta, label: str) -> None:
    assert relative_time_compact(NOW + offset, NOW) == label
