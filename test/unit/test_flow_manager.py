"""Unit tests for the conversation flow life cycle."""

from __future__ import annotations

import pytest

from conversations.constants import (
    FLOW_ALREADY_RUNNING,
    FLOW_ENDED,
    FLOW_NOT_RUNNING,
    FLOW_STARTED,
)
from conversations.flow_manager import ConversationFlowManager, append_turn
from conversations.schemas import ChannelType, Role, UserMessage
from conversations.store import ConversationStore, flow_key
from results import StoreError
from helpers.fakes import FIXED_NOW, InMemoryKeyValueStore, fixed_clock


def _manager(kv: InMemoryKeyValueStore) -> ConversationFlowManager:
    return ConversationFlowManager(ConversationStore(kv), clock=fixed_clock)


def _turn(content: str) -> UserMessage:
    return UserMessage(role=Role.USER, content=content)


@pytest.mark.asyncio
async def test_start_twice_persists_one_flow() -> None:
    kv = InMemoryKeyValueStore()
    manager = _manager(kv)

    first = await manager.start("C1", ChannelType.SLACK)
    second = await manager.start("C1", ChannelType.SLACK)

    assert first == FLOW_STARTED
    assert second == FLOW_ALREADY_RUNNING
    assert kv.set_calls == [flow_key("C1")]

    flow = await manager.get_context("C1")
    assert flow.channel_id == "C1"
    assert flow.channel_type is ChannelType.SLACK
    assert flow.conversation == []
    assert flow.created_at == FIXED_NOW


@pytest.mark.asyncio
async def test_end_without_flow_does_not_delete() -> None:
    kv = InMemoryKeyValueStore()
    manager = _manager(kv)

    assert await manager.end("C404") == FLOW_NOT_RUNNING
    assert kv.delete_calls == []


@pytest.mark.asyncio
async def test_end_removes_active_flow() -> None:
    kv = InMemoryKeyValueStore()
    manager = _manager(kv)
    await manager.start("C1", ChannelType.WEB, socket_channel="room-1")

    assert await manager.end("C1") == FLOW_ENDED
    assert await manager.get_context("C1") is None


@pytest.mark.asyncio
async def test_store_failures_are_reported_as_none() -> None:
    manager = _manager(InMemoryKeyValueStore(fail=True))

    assert await manager.start("C1", ChannelType.SLACK) is None
    assert await manager.end("C1") is None
    with pytest.raises(StoreError):
        await manager.get_context("C1")


def test_append_turn_caps_history_keeping_newest() -> None:
    history = [_turn(str(index)) for index in range(20)]

    capped = append_turn(history, _turn("new"), 20)

    assert len(capped) == 20
    assert capped[0].content == "1"
    assert capped[-1].content == "new"


def test_append_turn_with_limit_one_keeps_only_message() -> None:
    assert [turn.content for turn in append_turn([_turn("old")], _turn("new"), 1)] == ["new"]
