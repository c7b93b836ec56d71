"""Composition root and command-line entry point for the assistant."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
import logging
import sys

from config import Settings
from conversations.flow_manager import ConversationFlowManager
from conversations.message_processor import MessageProcessor
from conversations.schemas import ChannelType
from conversations.service import ConversationService
from conversations.store import ConversationStore
from gateways import AlertsGateway, ImagesGateway, NotesGateway, TasksGateway
from llm import CompletionBackend, build_completion_backend
from observability import configure_logging
from scheduler.alert_notifications import AlertNotificationPipeline
from services.database import create_session_factory, create_sync_engine, init_db
from services.push import PushClient
from services.redis_store import RedisKeyValueStore
from services.slack import SlackClient, create_slack_client
from services.web_search import WebSearchClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssistantComponents:
    """Every long-lived component, wired once per process."""

    settings: Settings
    kv: RedisKeyValueStore
    store: ConversationStore
    completion: CompletionBackend
    alerts: AlertsGateway
    tasks: TasksGateway
    notes: NotesGateway
    images: ImagesGateway
    processor: MessageProcessor
    flows: ConversationFlowManager
    conversations: ConversationService
    notifier: AlertNotificationPipeline


def build_components(settings: Settings) -> AssistantComponents:
    """Construct the component graph from settings."""
    engine = create_sync_engine(settings.database.url)
    session_factory = create_session_factory(engine)
    kv = RedisKeyValueStore(config=settings.redis)
    store = ConversationStore(kv, settings.redis)
    completion = build_completion_backend(settings.llm)

    alerts = AlertsGateway(session_factory)
    tasks = TasksGateway(session_factory)
    notes = NotesGateway(session_factory)
    images = ImagesGateway(session_factory, settings.llm)

    processor = MessageProcessor(
        alerts=alerts,
        tasks=tasks,
        notes=notes,
        images=images,
        completion=completion,
        store=store,
        search=WebSearchClient(settings.search),
        config=settings.assistant,
    )
    flows = ConversationFlowManager(store)
    conversations = ConversationService(
        flow_manager=flows,
        store=store,
        processor=processor,
        config=settings.assistant,
    )

    chat = None
    if settings.slack.bot_token:
        chat = SlackClient(create_slack_client(settings.slack.bot_token))
    else:
        logger.warning("Slack bot token not configured; chat alert delivery disabled")
    notifier = AlertNotificationPipeline(alerts, chat=chat, push=PushClient(settings.push))

    return AssistantComponents(
        settings=settings,
        kv=kv,
        store=store,
        completion=completion,
        alerts=alerts,
        tasks=tasks,
        notes=notes,
        images=images,
        processor=processor,
        flows=flows,
        conversations=conversations,
        notifier=notifier,
    )


async def _chat_loop(components: AssistantComponents, channel_id: str, user_id: int) -> None:
    service = components.conversations
    if not await service.flow_started(channel_id):
        print(await service.start_flow(channel_id, ChannelType.WEB))
    print("Type a message (Ctrl-D to exit).")
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if not line.strip():
                continue
            command_reply = await service.handle_flow_command(line, channel_id, ChannelType.WEB)
            if command_reply is not None:
                print(command_reply)
                continue
            turn = await service.generate_flow_reply(line, user_id, channel_id)
            if turn is None:
                print("No active conversation. Type 'start conversation' to begin.")
            elif turn.skipped:
                print("(stored)")
            else:
                print(turn.response.content)
    finally:
        await components.kv.close()


async def _notify_once(components: AssistantComponents) -> None:
    try:
        report = await components.notifier.run()
        print(
            f"fetched={report.fetched} chat_sent={report.chat_sent} "
            f"push_sent={report.push_sent} marked={report.marked}"
        )
    finally:
        await components.kv.close()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aide", description="Personal assistant engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    chat = subparsers.add_parser("chat", help="Talk to the assistant in a local flow")
    chat.add_argument("--channel", required=True, help="Channel id for the flow")
    chat.add_argument("--user", required=True, type=int, help="User id owning the messages")

    subparsers.add_parser("notify-alerts", help="Run one alert notification pass")
    subparsers.add_parser("init-db", help="Create missing database tables")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)

    if args.command == "init-db":
        init_db(create_sync_engine(settings.database.url))
        return 0

    components = build_components(settings)
    if args.command == "chat":
        asyncio.run(_chat_loop(components, args.channel, args.user))
    else:
        asyncio.run(_notify_once(components))
    return 0


if __name__ == "__main__":
    sys.exit(main())
