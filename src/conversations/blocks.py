"""Slack Block Kit payloads carried as ``contentBlock`` on assistant replies."""

from __future__ import annotations

from typing import Any, Sequence

from gateways.alerts import AlertRecord
from gateways.images import ImageRecord
from gateways.notes import NoteRecord
from gateways.tasks import TaskRecord
from time_utils import format_date_text

Block = dict[str, Any]

_DIVIDER: Block = {"type": "divider"}


def _markdown(text: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _context(text: str) -> Block:
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": text}]}


def _delete_button(label: str, entity_id: int, action_id: str) -> Block:
    return {
        "type": "actions",
        "elements": [
            {
                "type": "button",
                "text": {"type": "plain_text", "emoji": True, "text": label},
                "style": "danger",
                "value": str(entity_id),
                "action_id": action_id,
            }
        ],
    }


def _alert_fields(alert: AlertRecord) -> Block:
    local = format_date_text(alert.date)
    day, _, clock = local.partition(" ")
    return {
        "type": "section",
        "fields": [
            {"type": "mrkdwn", "text": f"*Day:*\n{day}"},
            {"type": "mrkdwn", "text": f"*At:*\n{clock}"},
        ],
    }


def alert_created(alert: AlertRecord) -> Block:
    return {"blocks": [_markdown(f"Alert created - Id: {alert.id}"), _alert_fields(alert)]}


def alert_detail(alert: AlertRecord) -> Block:
    state = "delivered" if alert.sent else "pending"
    return {
        "blocks": [
            _markdown(f"*#{alert.id}* {alert.message}"),
            _alert_fields(alert),
            _context(f"Status: {state}"),
        ]
    }


def with_context(block: Block, text: str) -> Block:
    """Return a copy of ``block`` with a context line appended."""
    return {"blocks": [*block.get("blocks", []), _context(text)]}


def alerts_list(alerts: Sequence[AlertRecord], title: str | None = None) -> Block:
    blocks: list[Block] = [
        _markdown(title or f"You have *{len(alerts)} alerts*"),
        _DIVIDER,
    ]
    for alert in alerts:
        blocks.append(_alert_fields(alert))
        blocks.append(_markdown(f"*#{alert.id}* {alert.message}"))
        blocks.append(_delete_button("Delete alert", alert.id, "delete_alert"))
        blocks.append(_DIVIDER)
    return {"blocks": blocks}


def task_created(task: TaskRecord) -> Block:
    blocks = [_markdown(f"Task created - Id: {task.id}"), _markdown(f"*{task.title}*")]
    if task.description:
        blocks.append(_markdown(task.description))
    if task.tag:
        blocks.append(_context(f"Tag: {task.tag}"))
    return {"blocks": blocks}


def tasks_list(tasks: Sequence[TaskRecord], title: str | None = None) -> Block:
    blocks: list[Block] = [_markdown(title or f"You have *{len(tasks)} tasks*"), _DIVIDER]
    for task in tasks:
        blocks.append(_markdown(f"*#{task.id} {task.title}*\n{task.description}".rstrip()))
        blocks.append(_delete_button("Delete task", task.id, "delete_task"))
        blocks.append(_DIVIDER)
    return {"blocks": blocks}


def note_created(note: NoteRecord) -> Block:
    blocks = [_markdown(f"Note created - Id: {note.id}"), _markdown(f"*{note.title}*")]
    if note.description:
        blocks.append(_markdown(note.description))
    if note.tag:
        blocks.append(_context(f"Tag: {note.tag}"))
    return {"blocks": blocks}


def notes_list(notes: Sequence[NoteRecord], title: str | None = None) -> Block:
    blocks: list[Block] = [_markdown(title or f"You have *{len(notes)} notes*"), _DIVIDER]
    for note in notes:
        blocks.append(_markdown(f"*#{note.id} {note.title}*\n{note.description}".rstrip()))
        blocks.append(_delete_button("Delete note", note.id, "delete_note"))
        blocks.append(_DIVIDER)
    return {"blocks": blocks}


def images_list(images: Sequence[ImageRecord], title: str | None = None) -> Block:
    blocks: list[Block] = [_markdown(title or f"You have *{len(images)} images*")]
    for image in images:
        blocks.append(
            {
                "type": "image",
                "image_url": image.url,
                "alt_text": image.prompt[:200] or f"image {image.id}",
            }
        )
    return {"blocks": blocks}


def alert_notification(alert_id: int, message: str) -> list[Block]:
    """Blocks posted by the notifier when an alert fires."""
    return [
        _markdown(f"💬 {message}"),
        _context(f"Alert #{alert_id} · `snooze {alert_id}` to postpone"),
    ]
