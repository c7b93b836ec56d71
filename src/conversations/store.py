"""Key/value persistence of conversation flows and per-user assistant state."""

from __future__ import annotations

from typing import TypeVar

from pydantic import ValidationError

from config import RedisConfig
from conversations.schemas import (
    AlertMetadata,
    AssistantPreference,
    AssistantPreferences,
    ConversationFlow,
    DigestSnapshot,
    Document,
)
from results import StoreError
from services.redis_store import KeyValueStore

D = TypeVar("D", bound=Document)

FLOW_PREFIX = "cb_fs_"
PERSONAL_FLOW_PREFIX = "cb_pf_"
SNOOZE_PREFIX = "cb_alert_snooze_"
PREFERENCES_PREFIX = "cb_assistant_prefs_"
DIGEST_PREFIX = "cb_assistant_digest_"
ALERT_METADATA_PREFIX = "cb_alert_meta_"


def flow_key(channel_id: str) -> str:
    return f"{FLOW_PREFIX}{channel_id}"


def personal_flow_key(user_id: int | str) -> str:
    return f"{PERSONAL_FLOW_PREFIX}{user_id}"


def snooze_key(user_id: int | str) -> str:
    return f"{SNOOZE_PREFIX}{user_id}"


def preferences_key(user_id: int | str) -> str:
    return f"{PREFERENCES_PREFIX}{user_id}"


def digest_key(user_id: int | str) -> str:
    return f"{DIGEST_PREFIX}{user_id}"


def alert_metadata_key(alert_id: int) -> str:
    return f"{ALERT_METADATA_PREFIX}{alert_id}"


class ConversationStore:
    """Typed documents over a raw key/value adapter.

    Every failure of the underlying service, and every stored value that
    does not decode into its document type, surfaces as ``StoreError``.
    """

    def __init__(self, kv: KeyValueStore, config: RedisConfig | None = None) -> None:
        self._kv = kv
        self._config = config or RedisConfig()

    async def _read(self, key: str, model: type[D]) -> D | None:
        try:
            raw = await self._kv.get(key)
        except Exception as exc:
            raise StoreError(f"Failed to read {key}") from exc
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreError(f"Unreadable document at {key}") from exc

    async def _write(self, key: str, document: Document, ttl_seconds: int | None = None) -> None:
        try:
            await self._kv.set(key, document.to_json(), ttl_seconds=ttl_seconds)
        except Exception as exc:
            raise StoreError(f"Failed to write {key}") from exc

    async def _delete(self, key: str) -> bool:
        try:
            return await self._kv.delete(key)
        except Exception as exc:
            raise StoreError(f"Failed to delete {key}") from exc

    # Channel flows

    async def get_flow(self, channel_id: str) -> ConversationFlow | None:
        return await self._read(flow_key(channel_id), ConversationFlow)

    async def save_flow(self, flow: ConversationFlow) -> None:
        await self._write(flow_key(flow.channel_id), flow)

    async def delete_flow(self, channel_id: str) -> bool:
        return await self._delete(flow_key(channel_id))

    async def list_flow_channels(self) -> list[str]:
        """Return channel ids that currently hold a flow."""
        try:
            keys = await self._kv.keys(f"{FLOW_PREFIX}*")
        except Exception as exc:
            raise StoreError("Failed to list conversation flows") from exc
        return sorted(key[len(FLOW_PREFIX):] for key in keys)

    # Personal assistant flows

    async def get_personal_flow(self, user_id: int | str) -> ConversationFlow | None:
        return await self._read(personal_flow_key(user_id), ConversationFlow)

    async def save_personal_flow(self, user_id: int | str, flow: ConversationFlow) -> None:
        await self._write(personal_flow_key(user_id), flow)

    # Preferences

    async def get_snooze_preference(self, user_id: int | str) -> AssistantPreference | None:
        return await self._read(snooze_key(user_id), AssistantPreference)

    async def save_snooze_preference(self, preference: AssistantPreference) -> None:
        await self._write(
            snooze_key(preference.user_id),
            preference,
            ttl_seconds=self._config.preferences_ttl_seconds,
        )

    async def get_preferences(self, user_id: int | str) -> AssistantPreferences:
        """Return stored preferences, or defaults when none were saved."""
        stored = await self._read(preferences_key(user_id), AssistantPreferences)
        return stored or AssistantPreferences()

    async def save_preferences(self, user_id: int | str, preferences: AssistantPreferences) -> None:
        await self._write(
            preferences_key(user_id),
            preferences,
            ttl_seconds=self._config.preferences_ttl_seconds,
        )

    # Digest snapshots

    async def get_digest(self, user_id: int | str) -> DigestSnapshot | None:
        return await self._read(digest_key(user_id), DigestSnapshot)

    async def save_digest(self, user_id: int | str, snapshot: DigestSnapshot) -> None:
        await self._write(
            digest_key(user_id),
            snapshot,
            ttl_seconds=self._config.digest_ttl_seconds,
        )

    # Alert metadata

    async def get_alert_metadata(self, alert_id: int) -> AlertMetadata | None:
        return await self._read(alert_metadata_key(alert_id), AlertMetadata)

    async def save_alert_metadata(self, alert_id: int, metadata: AlertMetadata) -> None:
        await self._write(
            alert_metadata_key(alert_id),
            metadata,
            ttl_seconds=self._config.alert_metadata_ttl_seconds,
        )

    async def delete_alert_metadata(self, alert_id: int) -> bool:
        return await self._delete(alert_metadata_key(alert_id))
