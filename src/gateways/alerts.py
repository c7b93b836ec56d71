"""Alert persistence facade used by the conversation engine and the notifier."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Any, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gateways.base import GatewayFailure, SessionGateway, from_storage, to_storage
from models import Alert, User
from results import (
    MISSING_REQUIRED_FIELD,
    Result,
    not_found_error,
    validation_error,
)
from time_utils import parse_time_expression, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertRecord:
    """Detached view of an alert row."""

    id: int
    user_id: int
    message: str
    date: datetime
    sent: bool
    channel_id: str | None
    created_at: datetime | None = None


@dataclass(frozen=True)
class DueAlert:
    """Alert due for delivery with its resolved destinations."""

    id: int
    user_id: int
    message: str
    date: datetime
    chat_channel_id: str | None
    push_subscription: dict[str, Any] | None


def _to_record(alert: Alert) -> AlertRecord:
    return AlertRecord(
        id=alert.id,
        user_id=alert.user_id,
        message=alert.message,
        date=from_storage(alert.date),
        sent=bool(alert.sent),
        channel_id=alert.channel_id,
        created_at=from_storage(alert.created_at),
    )


def _fetch_owned(session: Session, alert_id: int, user_id: int) -> Alert:
    alert = session.get(Alert, alert_id)
    if alert is None or alert.user_id != user_id:
        raise GatewayFailure(not_found_error(f"Alert #{alert_id} not found"))
    return alert


class AlertsGateway(SessionGateway):
    """Create, query and reschedule alerts."""

    async def create_assistant_alert(
        self,
        user_id: int,
        date_text: str,
        message: str,
        channel_id: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Result[AlertRecord]:
        """Create an alert from a user time expression.

        ``date_text`` accepts anything ``parse_time_expression`` understands;
        an unparseable expression yields a validation failure.
        """
        if not (message or "").strip():
            return Result.failure(
                validation_error("Alert message is required", code=MISSING_REQUIRED_FIELD)
            )
        try:
            when = parse_time_expression(date_text, now=now)
        except ValueError as exc:
            return Result.failure(validation_error(str(exc)))

        def handler(session: Session) -> AlertRecord:
            alert = Alert(
                user_id=user_id,
                message=message.strip(),
                date=to_storage(when),
                sent=False,
                channel_id=channel_id,
            )
            session.add(alert)
            session.flush()
            return _to_record(alert)

        result = await self._run("create_assistant_alert", handler)
        if result.ok:
            logger.info("Alert created: user_id=%s alert_id=%s", user_id, result.data.id)
        return result

    async def get_alerts_by_user_id(
        self,
        user_id: int,
        channel_id: str | None = None,
        sent: bool | None = False,
    ) -> Result[list[AlertRecord]]:
        """List a user's alerts ordered by date.

        ``sent=None`` returns alerts regardless of delivery state; a
        ``channel_id`` restricts the list to that shared channel.
        """

        def handler(session: Session) -> list[AlertRecord]:
            stmt = select(Alert).where(Alert.user_id == user_id)
            if channel_id is not None:
                stmt = stmt.where(Alert.channel_id == channel_id)
            if sent is not None:
                stmt = stmt.where(Alert.sent.is_(sent))
            stmt = stmt.order_by(Alert.date.asc(), Alert.id.asc())
            return [_to_record(alert) for alert in session.scalars(stmt)]

        return await self._run("get_alerts_by_user_id", handler)

    async def get_alert_by_id(self, alert_id: int, user_id: int) -> Result[AlertRecord]:
        def handler(session: Session) -> AlertRecord:
            return _to_record(_fetch_owned(session, alert_id, user_id))

        return await self._run("get_alert_by_id", handler)

    async def reschedule_alert(
        self,
        alert_id: int,
        user_id: int,
        minutes: int,
        *,
        now: datetime | None = None,
    ) -> Result[AlertRecord]:
        """Push an alert ``minutes`` past the later of its date and now."""

        def handler(session: Session) -> AlertRecord:
            alert = _fetch_owned(session, alert_id, user_id)
            reference = to_storage(now or utc_now())
            base = max(alert.date, reference)
            alert.date = base + timedelta(minutes=minutes)
            alert.sent = False
            session.flush()
            return _to_record(alert)

        return await self._run("reschedule_alert", handler)

    async def mark_alert_resolved(self, alert_id: int, user_id: int) -> Result[AlertRecord]:
        def handler(session: Session) -> AlertRecord:
            alert = _fetch_owned(session, alert_id, user_id)
            alert.sent = True
            session.flush()
            return _to_record(alert)

        return await self._run("mark_alert_resolved", handler)

    async def create_follow_up_alert(
        self,
        alert_id: int,
        user_id: int,
        minutes: int,
    ) -> Result[AlertRecord]:
        """Duplicate an alert ``minutes`` after the original date."""

        def handler(session: Session) -> AlertRecord:
            original = _fetch_owned(session, alert_id, user_id)
            follow_up = Alert(
                user_id=user_id,
                message=original.message,
                date=original.date + timedelta(minutes=minutes),
                sent=False,
                channel_id=original.channel_id,
            )
            session.add(follow_up)
            session.flush()
            return _to_record(follow_up)

        return await self._run("create_follow_up_alert", handler)

    async def delete_alert(self, alert_id: int, user_id: int) -> Result[bool]:
        def handler(session: Session) -> bool:
            session.delete(_fetch_owned(session, alert_id, user_id))
            return True

        return await self._run("delete_alert", handler)

    async def get_alerts_to_notify(self, now: datetime | None = None) -> Result[list[DueAlert]]:
        """Return unsent alerts dated at or before ``now`` with their destinations."""
        cutoff = to_storage(now or utc_now())

        def handler(session: Session) -> list[DueAlert]:
            stmt = (
                select(Alert, User)
                .join(User, Alert.user_id == User.id)
                .where(Alert.sent.is_(False), Alert.date <= cutoff)
                .order_by(Alert.date.asc(), Alert.id.asc())
            )
            due: list[DueAlert] = []
            for alert, user in session.execute(stmt):
                due.append(
                    DueAlert(
                        id=alert.id,
                        user_id=alert.user_id,
                        message=alert.message,
                        date=from_storage(alert.date),
                        chat_channel_id=alert.channel_id or user.slack_channel_id,
                        push_subscription=user.push_subscription or None,
                    )
                )
            return due

        return await self._run("get_alerts_to_notify", handler)

    async def mark_alerts_notified(self, alert_ids: Sequence[int]) -> Result[int]:
        """Flip ``sent`` for the whole batch in one UPDATE."""
        ids = list(alert_ids)
        if not ids:
            return Result.success(0)

        def handler(session: Session) -> int:
            outcome = session.execute(
                update(Alert).where(Alert.id.in_(ids)).values(sent=True)
            )
            return outcome.rowcount or 0

        return await self._run("mark_alerts_notified", handler)


__all__ = ["AlertRecord", "AlertsGateway", "DueAlert"]
