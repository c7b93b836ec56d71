"""Compact user-data and history excerpts embedded in classification prompts.

Example output of ``build_user_data_context``::

    [A:3] #15"Check server"2h #12"Deploy prod"overdue1h
    [T:2] #5"Refactor auth"[work] #8"Buy present"
    [N:1] #3"Sprint ideas"[dev]
"""

from __future__ import annotations

from datetime import datetime, timezone
import re
from typing import Sequence

from conversations.schemas import Role, UserMessage
from gateways.alerts import AlertRecord
from gateways.notes import NoteRecord
from gateways.tasks import TaskRecord
from time_utils import relative_time_compact, utc_now

NO_PRIOR_DATA = "[NO_PRIOR_DATA]"

_WHITESPACE = re.compile(r"\s+")
_TITLE_LIMIT = 20
_HISTORY_CONTENT_LIMIT = 60
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def truncate_text(text: str | None, max_length: int) -> str:
    """Collapse whitespace and cut to ``max_length`` characters, ending in ``..``."""
    collapsed = _WHITESPACE.sub(" ", text or "").strip()
    if len(collapsed) <= max_length:
        return collapsed
    return collapsed[: max(max_length - 2, 0)] + ".."


def _tag_suffix(tag: str | None) -> str:
    return f"[{tag}]" if tag else ""


def format_compact_alerts(
    alerts: Sequence[AlertRecord],
    max_items: int,
    now: datetime | None = None,
) -> str:
    reference = now or utc_now()
    ordered = sorted(alerts, key=lambda alert: alert.date)
    items = [
        f'#{alert.id}"{truncate_text(alert.message, _TITLE_LIMIT)}"'
        f"{relative_time_compact(alert.date, reference)}"
        for alert in ordered[:max_items]
    ]
    return f"[A:{len(alerts)}] " + " ".join(items)


def _format_titled(
    marker: str,
    records: Sequence[TaskRecord] | Sequence[NoteRecord],
    max_items: int,
) -> str:
    ordered = sorted(records, key=lambda record: record.created_at or _EPOCH, reverse=True)
    items = [
        f'#{record.id}"{truncate_text(record.title, _TITLE_LIMIT)}"{_tag_suffix(record.tag)}'
        for record in ordered[:max_items]
    ]
    return f"[{marker}:{len(records)}] " + " ".join(items)


def build_user_data_context(
    *,
    alerts: Sequence[AlertRecord] = (),
    tasks: Sequence[TaskRecord] = (),
    notes: Sequence[NoteRecord] = (),
    max_items: int = 5,
    now: datetime | None = None,
) -> str:
    """Render counts and a few recent items per entity type."""
    lines: list[str] = []
    if alerts:
        lines.append(format_compact_alerts(alerts, max_items, now))
    if tasks:
        lines.append(_format_titled("T", tasks, max_items))
    if notes:
        lines.append(_format_titled("N", notes, max_items))
    if not lines:
        return NO_PRIOR_DATA
    return "\n".join(lines)


def format_conversation_history(messages: Sequence[UserMessage], max_messages: int = 3) -> str:
    """Render the last turns as ``U:``/``A:`` lines."""
    if not messages or max_messages < 1:
        return ""
    lines = []
    for message in list(messages)[-max_messages:]:
        prefix = "U" if message.role is Role.USER else "A"
        lines.append(f"{prefix}:{truncate_text(message.content, _HISTORY_CONTENT_LIMIT)}")
    return "\n".join(lines)


__all__ = [
    "NO_PRIOR_DATA",
    "build_user_data_context",
    "format_compact_alerts",
    "format_conversation_history",
    "truncate_text",
]
