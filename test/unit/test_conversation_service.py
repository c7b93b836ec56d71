"""Unit tests for turn handling over channel and personal flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from config import AssistantConfig
from conversations.constants import (
    BACKEND_UNAVAILABLE,
    FLOW_ALREADY_RUNNING,
    FLOW_ENDED,
    FLOW_START_FAILED,
    FLOW_STARTED,
    GENERIC_FAILURE,
    NO_CONVERSATION_SAVED,
)
from conversations.flow_manager import ConversationFlowManager
from conversations.message_processor import MessageProcessor
from conversations.schemas import (
    ChannelType,
    ConversationFlow,
    ConversationProvider,
    ProcessResult,
    Role,
    UserMessage,
    assistant_message,
)
from conversations.service import ConversationService
from conversations.store import ConversationStore
from helpers.fakes import FIXED_NOW, InMemoryKeyValueStore, fixed_clock


@dataclass
class ScriptedProcessor:
    """Processor double that answers every message with a fixed reply."""

    reply: str | None = "ok"
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    should_skip_ai = staticmethod(MessageProcessor.should_skip_ai)
    clean_skip_flag = staticmethod(MessageProcessor.clean_skip_flag)

    async def process(self, message, user_id, channel_id=None, is_channel_context=False, history=None):
        if self.error is not None:
            raise self.error
        self.calls.append(
            {
                "message": message,
                "user_id": user_id,
                "channel_id": channel_id,
                "is_channel_context": is_channel_context,
                "history": list(history or []),
            }
        )
        if self.reply is None:
            return ProcessResult(response=None)
        return ProcessResult(response=assistant_message(self.reply))


def _service(
    kv: InMemoryKeyValueStore,
    processor: ScriptedProcessor,
    history_limit: int = 20,
) -> tuple[ConversationService, ConversationStore]:
    store = ConversationStore(kv)
    service = ConversationService(
        flow_manager=ConversationFlowManager(store, clock=fixed_clock),
        store=store,
        processor=processor,  # type: ignore[arg-type]
        config=AssistantConfig(history_limit=history_limit),
        clock=fixed_clock,
    )
    return service, store


@pytest.mark.asyncio
async def test_flow_reply_without_active_flow_returns_none() -> None:
    processor = ScriptedProcessor()
    service, _ = _service(InMemoryKeyValueStore(), processor)

    assert await service.generate_flow_reply("hello", 1, "C1") is None
    assert processor.calls == []


@pytest.mark.asyncio
async def test_flow_reply_appends_user_and_assistant_turns() -> None:
    processor = ScriptedProcessor(reply="hi there")
    service, store = _service(InMemoryKeyValueStore(), processor)
    await service.start_flow("C1")

    turn = await service.generate_flow_reply("hello", 7, "C1", user_slack_id="U7")

    assert turn.skipped is False
    assert turn.response.content == "hi there"
    call = processor.calls[0]
    assert call["channel_id"] == "C1"
    assert call["is_channel_context"] is True
    assert call["history"] == []

    flow = await store.get_flow("C1")
    assert [(m.role, m.content) for m in flow.conversation] == [
        (Role.USER, "hello"),
        (Role.ASSISTANT, "hi there"),
    ]
    assert flow.conversation[0].user_id == "7"
    assert flow.conversation[0].user_slack_id == "U7"
    assert flow.conversation[0].provider is ConversationProvider.SLACK


@pytest.mark.asyncio
async def test_skip_message_is_stored_without_prefix_and_not_processed() -> None:
    processor = ScriptedProcessor()
    service, store = _service(InMemoryKeyValueStore(), processor)
    await service.start_flow("C1")

    turn = await service.generate_flow_reply("+  note to self", 1, "C1")

    assert turn.skipped is True
    assert turn.response is None
    assert turn.to_dict() == {"response": None, "skipped": True}
    assert processor.calls == []
    flow = await store.get_flow("C1")
    assert [m.content for m in flow.conversation] == ["note to self"]


@pytest.mark.asyncio
async def test_history_is_capped_after_a_turn() -> None:
    processor = ScriptedProcessor(reply="answer")
    kv = InMemoryKeyValueStore()
    service, store = _service(kv, processor, history_limit=20)
    seeded = ConversationFlow(
        channel_id="C1",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
        channel_type=ChannelType.SLACK,
        conversation=[UserMessage(role=Role.USER, content=f"m{index}") for index in range(19)],
    )
    await store.save_flow(seeded)

    await service.generate_flow_reply("question", 1, "C1")

    flow = await store.get_flow("C1")
    assert len(flow.conversation) == 20
    assert flow.conversation[0].content == "m1"
    assert [m.content for m in flow.conversation[-2:]] == ["question", "answer"]
    assert len(processor.calls[0]["history"]) == 19


@pytest.mark.asyncio
async def test_missing_reply_is_stored_as_backend_unavailable() -> None:
    service, store = _service(InMemoryKeyValueStore(), ScriptedProcessor(reply=None))
    await service.start_flow("C1")

    turn = await service.generate_flow_reply("hello", 1, "C1")

    assert turn.response.content == BACKEND_UNAVAILABLE
    flow = await store.get_flow("C1")
    assert flow.conversation[-1].content == BACKEND_UNAVAILABLE


@pytest.mark.asyncio
async def test_processor_crash_yields_generic_failure() -> None:
    service, _ = _service(InMemoryKeyValueStore(), ScriptedProcessor(error=RuntimeError("boom")))
    await service.start_flow("C1")

    turn = await service.generate_flow_reply("hello", 1, "C1")

    assert turn.response.content == GENERIC_FAILURE


@pytest.mark.asyncio
async def test_store_failure_returns_none() -> None:
    service, _ = _service(InMemoryKeyValueStore(fail=True), ScriptedProcessor())

    assert await service.generate_flow_reply("hello", 1, "C1") is None
    assert await service.generate_assistant_conversation("hello", 1) is None
    assert await service.flow_started("C1") is False
    assert await service.show_channels() == []


@pytest.mark.asyncio
async def test_personal_flow_is_created_lazily() -> None:
    processor = ScriptedProcessor(reply="sure")
    service, store = _service(InMemoryKeyValueStore(), processor)

    turn = await service.generate_assistant_conversation("plan my day", 42)

    assert turn.response.content == "sure"
    assert processor.calls[0]["is_channel_context"] is False
    assert processor.calls[0]["channel_id"] is None
    flow = await store.get_personal_flow(42)
    assert flow.channel_id == "42"
    assert flow.channel_type is ChannelType.ASSISTANT
    assert [m.content for m in flow.conversation] == ["plan my day", "sure"]


@pytest.mark.asyncio
async def test_personal_flow_passes_prior_turns_as_history() -> None:
    processor = ScriptedProcessor(reply="again")
    service, _ = _service(InMemoryKeyValueStore(), processor)

    await service.generate_assistant_conversation("first", 42)
    await service.generate_assistant_conversation("second", 42)

    history = processor.calls[1]["history"]
    assert [m.content for m in history] == ["first", "again"]


@pytest.mark.asyncio
async def test_handle_flow_command_round_trip() -> None:
    service, _ = _service(InMemoryKeyValueStore(), ScriptedProcessor(reply="pong"))

    assert await service.handle_flow_command("hello", "C1") is None
    assert await service.handle_flow_command("show conversation", "C1") == NO_CONVERSATION_SAVED
    assert await service.handle_flow_command("Start Conversation", "C1") == FLOW_STARTED
    assert await service.handle_flow_command("start conversation", "C1") == FLOW_ALREADY_RUNNING
    assert await service.flow_started("C1") is True

    await service.generate_flow_reply("ping", 1, "C1")
    assert await service.handle_flow_command("show conversation", "C1") == "user: ping\nassistant: pong"
    assert await service.show_channels() == ["C1"]

    assert await service.handle_flow_command("end conversation", "C1") == FLOW_ENDED
    assert await service.flow_started("C1") is False


@pytest.mark.asyncio
async def test_handle_flow_command_reports_failed_start() -> None:
    service, _ = _service(InMemoryKeyValueStore(fail=True), ScriptedProcessor())

    assert await service.handle_flow_command("start conversation", "C1") == FLOW_START_FAILED


@pytest.mark.asyncio
async def test_send_message_to_flow_stores_turn_without_processing() -> None:
    processor = ScriptedProcessor()
    service, store = _service(InMemoryKeyValueStore(), processor)

    assert await service.send_message_to_flow("hi", 3, "C9") is None

    await service.start_flow("C9", ChannelType.WEB)
    turn = await service.send_message_to_flow(" hi ", 3, "C9")

    assert turn.content == "hi"
    assert turn.provider is ConversationProvider.WEB
    assert processor.calls == []
    flow = await store.get_flow("C9")
    assert [m.content for m in flow.conversation] == ["hi"]
    assert flow.updated_at == FIXED_NOW
