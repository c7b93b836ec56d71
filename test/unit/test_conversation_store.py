"""Unit tests for typed documents over the key/value store."""

from __future__ import annotations

import json

import pytest

from config import RedisConfig
from conversations.schemas import (
    AlertMetadata,
    AssistantPreference,
    AssistantPreferences,
    ChannelType,
    ConversationFlow,
    DigestSnapshot,
)
from conversations.store import (
    ConversationStore,
    alert_metadata_key,
    digest_key,
    flow_key,
    preferences_key,
    snooze_key,
)
from results import StoreError
from helpers.fakes import FIXED_NOW, InMemoryKeyValueStore


def _config() -> RedisConfig:
    return RedisConfig(
        preferences_ttl_seconds=100,
        digest_ttl_seconds=200,
        alert_metadata_ttl_seconds=300,
    )


@pytest.mark.asyncio
async def test_flow_round_trip_uses_camel_case_and_no_ttl() -> None:
    kv = InMemoryKeyValueStore()
    store = ConversationStore(kv, _config())
    flow = ConversationFlow(
        channel_id="C1",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
        channel_type=ChannelType.SLACK,
    )

    await store.save_flow(flow)

    raw = json.loads(kv.values[flow_key("C1")])
    assert raw["channelId"] == "C1"
    assert raw["channelType"] == "slack"
    assert kv.ttls[flow_key("C1")] is None
    assert await store.get_flow("C1") == flow


@pytest.mark.asyncio
async def test_null_turns_are_dropped_on_read() -> None:
    kv = InMemoryKeyValueStore()
    kv.values[flow_key("C1")] = json.dumps(
        {
            "channelId": "C1",
            "createdAt": FIXED_NOW.isoformat(),
            "updatedAt": FIXED_NOW.isoformat(),
            "channelType": "slack",
            "conversation": [None, {"role": "user", "content": "hi", "provider": "slack"}, None],
        }
    )

    flow = await ConversationStore(kv).get_flow("C1")

    assert [turn.content for turn in flow.conversation] == ["hi"]


@pytest.mark.asyncio
async def test_unreadable_document_raises_store_error() -> None:
    kv = InMemoryKeyValueStore()
    kv.values[flow_key("C1")] = "{not json"

    with pytest.raises(StoreError):
        await ConversationStore(kv).get_flow("C1")


@pytest.mark.asyncio
async def test_backend_failure_raises_store_error() -> None:
    store = ConversationStore(InMemoryKeyValueStore(fail=True))

    with pytest.raises(StoreError):
        await store.get_flow("C1")
    with pytest.raises(StoreError):
        await store.list_flow_channels()
    with pytest.raises(StoreError):
        await store.save_preferences(1, AssistantPreferences())


@pytest.mark.asyncio
async def test_list_flow_channels_is_sorted_and_ignores_other_keys() -> None:
    kv = InMemoryKeyValueStore()
    store = ConversationStore(kv)
    for channel in ("C2", "C1"):
        await store.save_flow(
            ConversationFlow(
                channel_id=channel,
                created_at=FIXED_NOW,
                updated_at=FIXED_NOW,
                channel_type=ChannelType.WEB,
            )
        )
    kv.values["cb_pf_7"] = "{}"

    assert await store.list_flow_channels() == ["C1", "C2"]


@pytest.mark.asyncio
async def test_preference_documents_carry_their_ttls() -> None:
    kv = InMemoryKeyValueStore()
    store = ConversationStore(kv, _config())

    await store.save_snooze_preference(AssistantPreference(user_id="7", default_snooze_minutes=15))
    await store.save_preferences(7, AssistantPreferences(preferred_alert_scope="all"))
    await store.save_digest(7, DigestSnapshot(generated_at=FIXED_NOW, text="Digest"))
    await store.save_alert_metadata(3, AlertMetadata(snooze_count=1))

    assert kv.ttls[snooze_key(7)] == 100
    assert kv.ttls[preferences_key(7)] == 100
    assert kv.ttls[digest_key(7)] == 200
    assert kv.ttls[alert_metadata_key(3)] == 300
    assert (await store.get_snooze_preference(7)).default_snooze_minutes == 15
    assert (await store.get_preferences(7)).preferred_alert_scope == "all"
    assert (await store.get_alert_metadata(3)).snooze_count == 1


@pytest.mark.asyncio
async def test_missing_preferences_fall_back_to_defaults() -> None:
    store = ConversationStore(InMemoryKeyValueStore())

    preferences = await store.get_preferences(99)

    assert preferences.preferred_alert_scope == "pending"
    assert json.loads(preferences.to_json()) == {"preferredAlertScope": "pending"}
    assert await store.get_snooze_preference(99) is None
    assert await store.get_digest(99) is None
