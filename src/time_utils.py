"""Time zone helpers for UTC storage, local presentation and time expressions."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from config import settings

_COMPACT_DURATION = re.compile(
    r"^(?:(?P<w>\d+)w)?(?:(?P<d>\d+)d)?(?:(?P<h>\d+)h)?(?:(?P<m>\d+)m)?(?:(?P<s>\d+)s)?$"
)
_SPOKEN_PART = re.compile(
    r"(\d+)\s*(weeks?|w|days?|d|hours?|hrs?|h|minutes?|mins?|m|seconds?|secs?|s)\b"
)
_ABSOLUTE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M", "%Y-%m-%d")
_UNIT_SECONDS = {"w": 7 * 86400, "d": 86400, "h": 3600, "m": 60, "s": 1}


def get_local_timezone() -> ZoneInfo:
    """Return the configured local timezone."""
    timezone_name = settings.user.timezone
    try:
        return ZoneInfo(timezone_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Invalid timezone: {timezone_name}") from exc


def to_local(value: datetime) -> datetime:
    """Convert a datetime to the configured local timezone."""
    local_tz = get_local_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=local_tz)
    return value.astimezone(local_tz)


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC."""
    local_value = to_local(value)
    return local_value.astimezone(timezone.utc)


def local_now() -> datetime:
    """Return the current time in the configured local timezone."""
    return datetime.now(get_local_timezone())


def utc_now() -> datetime:
    """Return the current aware UTC time."""
    return datetime.now(timezone.utc)


def _shift(base: datetime, seconds: int, text: str) -> datetime:
    try:
        return base + timedelta(seconds=seconds)
    except OverflowError as e:
        raise ValueError(f"Unrecognized time expression: {text!r}") from e


def parse_time_expression(text: str, now: datetime | None = None) -> datetime:
    """Resolve a user time expression into an aware UTC datetime.

    Accepts absolute dates (``2026-01-05 14:30``, local timezone), compact
    durations (``1d2h30m``) and spoken durations (``in 10 minutes``).

    Raises:
        ValueError: when the expression cannot be interpreted.
    """
    normalized = (text or "").strip().lower()
    if not normalized:
        raise ValueError("Time expression is empty")
    base = now or utc_now()

    for fmt in _ABSOLUTE_FORMATS:
        try:
            return to_utc(datetime.strptime(normalized.upper(), fmt))
        except ValueError:
            continue

    compact = _COMPACT_DURATION.match(normalized.replace(" ", ""))
    if compact and any(compact.groupdict().values()):
        seconds = sum(
            int(amount) * _UNIT_SECONDS[unit]
            for unit, amount in compact.groupdict().items()
            if amount
        )
        return _shift(base, seconds, text)

    spoken = normalized.removeprefix("in ").strip()
    parts = _SPOKEN_PART.findall(spoken)
    leftover = _SPOKEN_PART.sub("", spoken).replace("and", "").replace(",", "").strip()
    if parts and not leftover:
        seconds = sum(int(amount) * _UNIT_SECONDS[unit[0]] for amount, unit in parts)
        return _shift(base, seconds, text)

    raise ValueError(f"Unrecognized time expression: {text!r}")


def format_date_text(value: datetime) -> str:
    """Format a datetime for user-facing messages in local time."""
    return to_local(value).strftime("%Y-%m-%d %H:%M")


def relative_time_compact(target: datetime, now: datetime | None = None) -> str:
    """Return a compact relative label such as ``2h`` or ``overdue1h``."""
    reference = now or utc_now()
    delta = target - reference
    prefix = ""
    if delta.total_seconds() < 0:
        prefix = "overdue"
        delta = -delta
    minutes = int(delta.total_seconds() // 60)
    if minutes < 60:
        return f"{prefix}{minutes}m"
    hours = minutes // 60
    if hours < 24:
        return f"{prefix}{hours}h"
    return f"{prefix}{hours // 24}d"
