"""Task persistence facade."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from gateways.base import GatewayFailure, SessionGateway, from_storage
from models import Task
from results import MISSING_REQUIRED_FIELD, Result, not_found_error, validation_error


@dataclass(frozen=True)
class TaskRecord:
    """Detached view of a task row."""

    id: int
    user_id: int
    title: str
    description: str
    tag: str | None
    status: str
    channel_id: str | None
    created_at: datetime | None = None


def _to_record(task: Task) -> TaskRecord:
    return TaskRecord(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description or "",
        tag=task.tag,
        status=task.status,
        channel_id=task.channel_id,
        created_at=from_storage(task.created_at),
    )


def _fetch_owned(session: Session, task_id: int, user_id: int) -> Task:
    task = session.get(Task, task_id)
    if task is None or task.user_id != user_id:
        raise GatewayFailure(not_found_error(f"Task #{task_id} not found"))
    return task


class TasksGateway(SessionGateway):
    """Create and query tasks."""

    async def create_assistant_task(
        self,
        user_id: int,
        title: str,
        description: str = "",
        tag: str | None = None,
        channel_id: str | None = None,
    ) -> Result[TaskRecord]:
        if not (title or "").strip():
            return Result.failure(
                validation_error("Task title is required", code=MISSING_REQUIRED_FIELD)
            )

        def handler(session: Session) -> TaskRecord:
            task = Task(
                user_id=user_id,
                title=title.strip(),
                description=(description or "").strip(),
                tag=(tag or "").strip() or None,
                status="pending",
                channel_id=channel_id,
            )
            session.add(task)
            session.flush()
            return _to_record(task)

        return await self._run("create_assistant_task", handler)

    async def get_tasks_by_user_id(
        self,
        user_id: int,
        channel_id: str | None = None,
        tag: str | None = None,
        status: str | None = "pending",
    ) -> Result[list[TaskRecord]]:
        """List tasks, newest first, optionally narrowed by channel, tag and status."""

        def handler(session: Session) -> list[TaskRecord]:
            stmt = select(Task).where(Task.user_id == user_id)
            if channel_id is not None:
                stmt = stmt.where(Task.channel_id == channel_id)
            if tag:
                stmt = stmt.where(Task.tag == tag)
            if status is not None:
                stmt = stmt.where(Task.status == status)
            stmt = stmt.order_by(Task.created_at.desc(), Task.id.desc())
            return [_to_record(task) for task in session.scalars(stmt)]

        return await self._run("get_tasks_by_user_id", handler)

    async def mark_task_resolved(self, task_id: int, user_id: int) -> Result[TaskRecord]:
        def handler(session: Session) -> TaskRecord:
            task = _fetch_owned(session, task_id, user_id)
            task.status = "completed"
            session.flush()
            return _to_record(task)

        return await self._run("mark_task_resolved", handler)

    async def delete_task(self, task_id: int, user_id: int) -> Result[bool]:
        def handler(session: Session) -> bool:
            session.delete(_fetch_owned(session, task_id, user_id))
            return True

        return await self._run("delete_task", handler)


__all__ = ["TaskRecord", "TasksGateway"]
