"""Note persistence facade."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from gateways.base import GatewayFailure, SessionGateway, from_storage
from models import Note
from results import MISSING_REQUIRED_FIELD, Result, not_found_error, validation_error


@dataclass(frozen=True)
class NoteRecord:
    id: int
    user_id: int
    title: str
    description: str
    tag: str | None
    channel_id: str | None
    created_at: datetime | None = None


def _to_record(note: Note) -> NoteRecord:
    return NoteRecord(
        id=note.id,
        user_id=note.user_id,
        title=note.title,
        description=note.description or "",
        tag=note.tag,
        channel_id=note.channel_id,
        created_at=from_storage(note.created_at),
    )


class NotesGateway(SessionGateway):
    """Create and query notes."""

    async def create_assistant_note(
        self,
        user_id: int,
        title: str,
        description: str = "",
        tag: str | None = None,
        channel_id: str | None = None,
    ) -> Result[NoteRecord]:
        if not (title or "").strip():
            return Result.failure(
                validation_error("Note title is required", code=MISSING_REQUIRED_FIELD)
            )

        def handler(session: Session) -> NoteRecord:
            note = Note(
                user_id=user_id,
                title=title.strip(),
                description=(description or "").strip(),
                tag=(tag or "").strip() or None,
                channel_id=channel_id,
            )
            session.add(note)
            session.flush()
            return _to_record(note)

        return await self._run("create_assistant_note", handler)

    async def get_notes_by_user_id(
        self,
        user_id: int,
        channel_id: str | None = None,
        tag: str | None = None,
    ) -> Result[list[NoteRecord]]:
        def handler(session: Session) -> list[NoteRecord]:
            stmt = select(Note).where(Note.user_id == user_id)
            if channel_id is not None:
                stmt = stmt.where(Note.channel_id == channel_id)
            if tag:
                stmt = stmt.where(Note.tag == tag)
            stmt = stmt.order_by(Note.created_at.desc(), Note.id.desc())
            return [_to_record(note) for note in session.scalars(stmt)]

        return await self._run("get_notes_by_user_id", handler)

    async def delete_note(self, note_id: int, user_id: int) -> Result[bool]:
        def handler(session: Session) -> bool:
            note = session.get(Note, note_id)
            if note is None or note.user_id != user_id:
                raise GatewayFailure(not_found_error(f"Note #{note_id} not found"))
            session.delete(note)
            return True

        return await self._run("delete_note", handler)


__all__ = ["NoteRecord", "NotesGateway"]
