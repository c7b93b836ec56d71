"""Timer-driven delivery of due alerts to chat channels and push subscriptions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable

from conversations.blocks import alert_notification
from gateways.alerts import AlertsGateway, DueAlert
from services.push import PushClient
from services.slack import SlackClient
from time_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationRunReport:
    """Counts from one pipeline run."""

    fetched: int = 0
    chat_sent: int = 0
    push_sent: int = 0
    marked: int = 0


class AlertNotificationPipeline:
    """Fetch due alerts, deliver them, then mark the whole batch sent.

    Chat and push deliveries are independent: a missing or failing
    destination never blocks the other one. The batch is marked only after
    every delivery was attempted, so a crash mid-run may repeat a
    notification on the next tick but never marks an unnotified alert.
    """

    def __init__(
        self,
        alerts: AlertsGateway,
        *,
        chat: SlackClient | None = None,
        push: PushClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._alerts = alerts
        self._chat = chat
        self._push = push
        self._clock = clock

    async def _deliver_chat(self, alert: DueAlert) -> bool:
        if self._chat is None or not alert.chat_channel_id:
            return False
        try:
            return await self._chat.post_message(
                alert.chat_channel_id,
                f"💬 {alert.message}",
                blocks=alert_notification(alert.id, alert.message),
            )
        except Exception:
            logger.exception("Chat delivery failed: alert_id=%s", alert.id)
            return False

    async def _deliver_push(self, alert: DueAlert) -> bool:
        if self._push is None or not alert.push_subscription:
            return False
        try:
            return await self._push.send(
                alert.push_subscription,
                self._push.build_alert_payload(alert.id, alert.message),
            )
        except Exception:
            logger.exception("Push delivery failed: alert_id=%s", alert.id)
            return False

    async def run(self) -> NotificationRunReport:
        """Execute one notification pass."""
        try:
            fetched = await self._alerts.get_alerts_to_notify(self._clock())
        except Exception:
            logger.exception("Alert fetch failed; skipping run")
            return NotificationRunReport()
        if not fetched.ok:
            logger.error("Alert fetch failed; skipping run: %s", fetched.error.message)
            return NotificationRunReport()
        due = fetched.data
        if not due:
            logger.debug("No due alerts")
            return NotificationRunReport()

        chat_sent = 0
        push_sent = 0
        for alert in due:
            if await self._deliver_chat(alert):
                chat_sent += 1
            if await self._deliver_push(alert):
                push_sent += 1

        marked = 0
        try:
            outcome = await self._alerts.mark_alerts_notified([alert.id for alert in due])
        except Exception:
            logger.exception("Marking alerts as notified failed")
        else:
            if outcome.ok:
                marked = len(due)
            else:
                logger.error("Marking alerts as notified failed: %s", outcome.error.message)

        report = NotificationRunReport(
            fetched=len(due),
            chat_sent=chat_sent,
            push_sent=push_sent,
            marked=marked,
        )
        logger.info(
            "Alert notification run: fetched=%s chat_sent=%s push_sent=%s marked=%s",
            report.fetched,
            report.chat_sent,
            report.push_sent,
            report.marked,
        )
        return report


__all__ = ["AlertNotificationPipeline", "NotificationRunReport"]
