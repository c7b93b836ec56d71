"""Deterministic shorthand commands recognized before any parsing or AI call."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable, Literal, Union, cast

from conversations.schemas import AlertScope

RepeatPolicy = Literal["daily", "weekly"]

REPEAT_MINUTES: dict[str, int] = {"daily": 24 * 60, "weekly": 7 * 24 * 60}

_SNOOZE = re.compile(r"^snooze\s+#?(\d+)(?:\s+(\d+)([mh]))?")
_REPEAT = re.compile(r"^(?:alert\s+)?repeat\s+#?(\d+)\s+(daily|weekly)")
_ALERT_LIST = re.compile(r"^alerts?\s+(pending|all|snoozed|resolved|overdue)")
_ALERT_LIST_BARE = re.compile(r"^alerts\s*$")
_SNOOZE_PREFERENCE = re.compile(
    r"^(?:set|pref(?:erence)?)\s+(?:snooze\s+default|snooze)\s+(\d+)([mh])"
)
_SCOPE_PREFERENCE = re.compile(
    r"^(?:set|pref(?:erence)?)\s+alerts?\s+scope\s+(pending|all|snoozed|resolved|overdue)"
)
_DIGEST = re.compile(r"^digest\s*$")
_REMIND = re.compile(r"^remind me\s+(?:in\s+)?(.+?)\s+to\s+(.+)", re.IGNORECASE)


@dataclass(frozen=True)
class SnoozeAlert:
    alert_id: int
    minutes: int | None


@dataclass(frozen=True)
class RepeatAlert:
    alert_id: int
    policy: RepeatPolicy

    @property
    def minutes(self) -> int:
        return REPEAT_MINUTES[self.policy]


@dataclass(frozen=True)
class ListAlerts:
    """``scope`` None means the user's preferred scope."""

    scope: AlertScope | None


@dataclass(frozen=True)
class SetSnoozeDefault:
    minutes: int


@dataclass(frozen=True)
class SetAlertScope:
    scope: AlertScope


@dataclass(frozen=True)
class ShowDigest:
    pass


@dataclass(frozen=True)
class RemindMe:
    time_text: str
    message: str


AssistantCommand = Union[
    SnoozeAlert, RepeatAlert, ListAlerts, SetSnoozeDefault, SetAlertScope, ShowDigest, RemindMe
]


def _to_minutes(amount: str, unit: str) -> int:
    value = int(amount)
    return value * 60 if unit == "h" else value


def _snooze(text: str, lower: str) -> AssistantCommand | None:
    match = _SNOOZE.match(lower)
    if not match:
        return None
    amount, unit = match.group(2), match.group(3)
    minutes = _to_minutes(amount, unit) if amount else None
    return SnoozeAlert(alert_id=int(match.group(1)), minutes=minutes)


def _repeat(text: str, lower: str) -> AssistantCommand | None:
    match = _REPEAT.match(lower)
    if not match:
        return None
    return RepeatAlert(alert_id=int(match.group(1)), policy=cast(RepeatPolicy, match.group(2)))


def _list_alerts(text: str, lower: str) -> AssistantCommand | None:
    match = _ALERT_LIST.match(lower)
    if match:
        return ListAlerts(scope=cast(AlertScope, match.group(1)))
    if _ALERT_LIST_BARE.match(lower):
        return ListAlerts(scope=None)
    return None


def _snooze_preference(text: str, lower: str) -> AssistantCommand | None:
    match = _SNOOZE_PREFERENCE.match(lower)
    if not match:
        return None
    return SetSnoozeDefault(minutes=_to_minutes(match.group(1), match.group(2)))


def _scope_preference(text: str, lower: str) -> AssistantCommand | None:
    match = _SCOPE_PREFERENCE.match(lower)
    if not match:
        return None
    return SetAlertScope(scope=cast(AlertScope, match.group(1)))


def _digest(text: str, lower: str) -> AssistantCommand | None:
    return ShowDigest() if _DIGEST.match(lower) else None


def _remind(text: str, lower: str) -> AssistantCommand | None:
    match = _REMIND.match(text)
    if not match:
        return None
    return RemindMe(time_text=match.group(1).strip(), message=match.group(2).strip())


_MATCHERS: tuple[Callable[[str, str], AssistantCommand | None], ...] = (
    _snooze,
    _repeat,
    _list_alerts,
    _snooze_preference,
    _scope_preference,
    _digest,
    _remind,
)


def match_command(message: str) -> AssistantCommand | None:
    """Return the first matching shorthand command, in fixed priority order."""
    text = (message or "").strip()
    if not text:
        return None
    lower = text.lower()
    for matcher in _MATCHERS:
        command = matcher(text, lower)
        if command is not None:
            return command
    return None


__all__ = [
    "AssistantCommand",
    "ListAlerts",
    "RemindMe",
    "RepeatAlert",
    "SetAlertScope",
    "SetSnoozeDefault",
    "ShowDigest",
    "SnoozeAlert",
    "match_command",
]
