"""Conversation documents persisted in the key/value store and engine results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChannelType(str, Enum):
    SLACK = "slack"
    WEB = "web"
    ASSISTANT = "assistant"


class ConversationProvider(str, Enum):
    SLACK = "slack"
    WEB = "web"
    ASSISTANT = "assistant"


class Document(BaseModel):
    """Base for camelCase JSON documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class UserMessage(Document):
    """One conversation turn; immutable once appended."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    role: Role
    content: str
    provider: ConversationProvider = ConversationProvider.ASSISTANT
    user_id: str | None = None
    user_slack_id: str | None = None
    content_block: dict[str, Any] | None = None

    def as_prompt(self) -> dict[str, str]:
        """Return the provider-neutral ``{role, content}`` mapping."""
        return {"role": self.role.value, "content": self.content}


class ConversationFlow(Document):
    """Channel-scoped conversation session with its turn history."""

    channel_id: str
    created_at: datetime
    updated_at: datetime
    channel_type: ChannelType
    conversation: list[UserMessage] = Field(default_factory=list)
    socket_channel: str | None = None

    @field_validator("conversation", mode="before")
    @classmethod
    def drop_null_turns(cls, value: Any) -> Any:
        """Stored histories may contain null entries; they are discarded."""
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value


class AssistantPreference(Document):
    """Per-user snooze default."""

    user_id: str
    default_snooze_minutes: int


AlertScope = Literal["pending", "all", "snoozed", "overdue", "resolved"]


class AssistantPreferences(Document):
    """Per-user assistant preferences beyond the snooze default."""

    preferred_alert_scope: AlertScope = "pending"


class AlertMetadata(Document):
    """Snooze/repeat bookkeeping kept beside an alert."""

    snooze_count: int = 0
    snoozed_until: datetime | None = None
    last_snooze_minutes: int | None = None
    repeat_policy: Literal["daily", "weekly"] | None = None


class DigestSnapshot(Document):
    """Last digest rendered for a user."""

    generated_at: datetime
    text: str
    blocks: list[dict[str, Any]] = Field(default_factory=list)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of processing one inbound message."""

    response: UserMessage | None
    should_skip_ai: bool = False


@dataclass(frozen=True)
class TurnResponse:
    """Shape returned to the transport layer for one turn."""

    response: UserMessage | None
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = None
        if self.response is not None:
            payload = self.response.model_dump(
                by_alias=True,
                include={"role", "content", "content_block", "provider"},
                exclude_none=True,
                mode="json",
            )
        return {"response": payload, "skipped": self.skipped}


def assistant_message(content: str, block: dict[str, Any] | None = None) -> UserMessage:
    """Build an assistant reply, optionally carrying a Block Kit payload."""
    return UserMessage(
        role=Role.ASSISTANT,
        content=content,
        content_block=block,
        provider=ConversationProvider.ASSISTANT,
    )
