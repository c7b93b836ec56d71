"""Celery entry point for the alert notification beat."""

from __future__ import annotations

import asyncio
from dataclasses import asdict
import os
from typing import Any

from celery import Celery

from config import settings
from gateways.alerts import AlertsGateway
from observability import configure_logging
from scheduler.alert_notifications import AlertNotificationPipeline
from services.database import create_session_factory, create_sync_engine
from services.push import PushClient
from services.slack import SlackClient, create_slack_client

NOTIFY_TASK_NAME = "alerts.notify_due_alerts"


def _env(var: str, default: str) -> str:
    return os.environ.get(var, default)


celery_app = Celery("aide.scheduler")
celery_app.conf.broker_url = _env("CELERY_BROKER_URL", settings.redis.url)
celery_app.conf.result_backend = _env("CELERY_RESULT_BACKEND", settings.redis.url)
celery_app.conf.task_default_queue = _env("CELERY_QUEUE_NAME", "alerts")
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.enable_utc = True
celery_app.conf.timezone = "UTC"

beat_schedule = celery_app.conf.get("beat_schedule")
if beat_schedule is None:
    beat_schedule = {}
beat_schedule[NOTIFY_TASK_NAME] = {
    "task": NOTIFY_TASK_NAME,
    "schedule": float(settings.alerts.notify_interval_seconds),
}
celery_app.conf.beat_schedule = beat_schedule

configure_logging(level=settings.log_level, json_output=settings.log_json)


def _build_pipeline() -> AlertNotificationPipeline:
    session_factory = create_session_factory(create_sync_engine(settings.database.url))
    chat = None
    if settings.slack.bot_token:
        chat = SlackClient(create_slack_client(settings.slack.bot_token))
    return AlertNotificationPipeline(
        AlertsGateway(session_factory),
        chat=chat,
        push=PushClient(settings.push),
    )


_PIPELINE = _build_pipeline()


@celery_app.task(name=NOTIFY_TASK_NAME)
def notify_due_alerts() -> dict[str, Any]:
    """Run one alert notification pass and return its counts."""
    report = asyncio.run(_PIPELINE.run())
    return asdict(report)
