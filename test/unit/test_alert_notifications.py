"""Unit tests for the due-alert notification pipeline."""

from __future__ import annotations

from datetime import timedelta

import pytest

from gateways.alerts import AlertsGateway
from results import Result, dependency_error
from scheduler.alert_notifications import AlertNotificationPipeline, NotificationRunReport
from helpers.fakes import (
    FIXED_NOW,
    FakePushClient,
    FakeSlackClient,
    add_user,
    fixed_clock,
    make_session_factory,
)

SUBSCRIPTION = {"endpoint": "https://push.test/abc", "keys": {"p256dh": "k", "auth": "a"}}


async def _seed(gateway: AlertsGateway, user_id: int, when: str, text: str, channel_id=None) -> int:
    result = await gateway.create_assistant_alert(
        user_id, when, text, channel_id, now=FIXED_NOW - timedelta(hours=1)
    )
    return result.data.id


@pytest.mark.asyncio
async def test_due_alerts_are_delivered_and_marked(tmp_path) -> None:
    session_factory = make_session_factory(tmp_path)
    with_chat = add_user(session_factory, name="chat", slack_channel_id="D-CHAT")
    push_only = add_user(session_factory, name="push", push_subscription=SUBSCRIPTION)
    gateway = AlertsGateway(session_factory)
    first = await _seed(gateway, with_chat, "10m", "stand up")
    second = await _seed(gateway, push_only, "20m", "drink water")
    await _seed(gateway, with_chat, "3h", "not yet due")
    chat = FakeSlackClient()
    push = FakePushClient()

    report = await AlertNotificationPipeline(gateway, chat=chat, push=push, clock=fixed_clock).run()

    assert report == NotificationRunReport(fetched=2, chat_sent=1, push_sent=1, marked=2)
    assert chat.posts[0]["channel"] == "D-CHAT"
    assert chat.posts[0]["text"] == "💬 stand up"
    assert chat.posts[0]["blocks"][0]["text"]["text"] == "💬 stand up"
    assert push.sends[0]["subscription"] == SUBSCRIPTION
    assert push.sends[0]["payload"]["tag"] == f"new-alert-{second}"

    remaining = await gateway.get_alerts_to_notify(FIXED_NOW + timedelta(days=1))
    assert [alert.message for alert in remaining.data] == ["not yet due"]
    delivered = await gateway.get_alert_by_id(first, with_chat)
    assert delivered.data.sent is True


@pytest.mark.asyncio
async def test_alert_channel_overrides_user_channel(tmp_path) -> None:
    session_factory = make_session_factory(tmp_path)
    user_id = add_user(session_factory, slack_channel_id="D-USER")
    gateway = AlertsGateway(session_factory)
    await _seed(gateway, user_id, "10m", "team sync", channel_id="C-TEAM")
    chat = FakeSlackClient()

    await AlertNotificationPipeline(gateway, chat=chat, clock=fixed_clock).run()

    assert [post["channel"] for post in chat.posts] == ["C-TEAM"]


@pytest.mark.asyncio
async def test_push_failure_does_not_block_chat_or_marking(tmp_path) -> None:
    session_factory = make_session_factory(tmp_path)
    user_id = add_user(session_factory, slack_channel_id="D1", push_subscription=SUBSCRIPTION)
    gateway = AlertsGateway(session_factory)
    await _seed(gateway, user_id, "10m", "stretch")
    chat = FakeSlackClient()
    push = FakePushClient(error=RuntimeError("push gateway down"))

    report = await AlertNotificationPipeline(gateway, chat=chat, push=push, clock=fixed_clock).run()

    assert report == NotificationRunReport(fetched=1, chat_sent=1, push_sent=0, marked=1)


@pytest.mark.asyncio
async def test_undeliverable_alerts_are_still_marked(tmp_path) -> None:
    session_factory = make_session_factory(tmp_path)
    user_id = add_user(session_factory)
    gateway = AlertsGateway(session_factory)
    await _seed(gateway, user_id, "10m", "nowhere to go")

    report = await AlertNotificationPipeline(
        gateway, chat=FakeSlackClient(), push=FakePushClient(), clock=fixed_clock
    ).run()

    assert report == NotificationRunReport(fetched=1, chat_sent=0, push_sent=0, marked=1)


class _FailingAlerts:
    def __init__(self, *, raise_error: bool) -> None:
        self.raise_error = raise_error
        self.marked: list[list[int]] = []

    async def get_alerts_to_notify(self, now=None):
        if self.raise_error:
            raise ConnectionError("database unreachable")
        return Result.failure(dependency_error("Database error"))

    async def mark_alerts_notified(self, alert_ids):
        self.marked.append(list(alert_ids))
        return Result.success(len(alert_ids))


@pytest.mark.asyncio
@pytest.mark.parametrize("raise_error", [True, False])
async def test_fetch_failure_is_a_no_op(raise_error: bool) -> None:
    alerts = _FailingAlerts(raise_error=raise_error)
    chat = FakeSlackClient()

    report = await AlertNotificationPipeline(alerts, chat=chat, clock=fixed_clock).run()  # type: ignore[arg-type]

    assert report == NotificationRunReport()
    assert chat.posts == []
    assert alerts.marked == []


@pytest.mark.asyncio
async def test_nothing_due_marks_nothing(tmp_path) -> None:
    session_factory = make_session_factory(tmp_path)
    gateway = AlertsGateway(session_factory)

    report = await AlertNotificationPipeline(gateway, clock=fixed_clock).run()

    assert report == NotificationRunReport()
