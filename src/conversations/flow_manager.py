"""Life cycle of channel conversation flows (absent -> active -> absent)."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Callable, Sequence

from conversations.constants import (
    FLOW_ALREADY_RUNNING,
    FLOW_ENDED,
    FLOW_NOT_RUNNING,
    FLOW_STARTED,
)
from conversations.schemas import ChannelType, ConversationFlow, UserMessage
from conversations.store import ConversationStore
from time_utils import utc_now

logger = logging.getLogger(__name__)


def append_turn(
    conversation: Sequence[UserMessage],
    message: UserMessage,
    limit: int,
) -> list[UserMessage]:
    """Append ``message`` keeping at most ``limit`` turns, newest last."""
    if limit <= 1:
        return [message]
    return [*list(conversation)[-(limit - 1):], message]


def new_flow(
    channel_id: str,
    channel_type: ChannelType,
    now: datetime,
    socket_channel: str | None = None,
) -> ConversationFlow:
    return ConversationFlow(
        channel_id=channel_id,
        created_at=now,
        updated_at=now,
        channel_type=channel_type,
        conversation=[],
        socket_channel=socket_channel,
    )


class ConversationFlowManager:
    """Start, end and read channel flows.

    ``start`` and ``end`` never raise: persistence failures are logged and
    reported as ``None`` so callers answer "try again later".
    """

    def __init__(
        self,
        store: ConversationStore,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._clock = clock

    async def start(
        self,
        channel_id: str,
        channel_type: ChannelType,
        socket_channel: str | None = None,
    ) -> str | None:
        try:
            if await self._store.get_flow(channel_id) is not None:
                return FLOW_ALREADY_RUNNING
            await self._store.save_flow(
                new_flow(channel_id, channel_type, self._clock(), socket_channel)
            )
        except Exception:
            logger.exception("Failed to start conversation flow: channel_id=%s", channel_id)
            return None
        logger.info("Conversation flow started: channel_id=%s", channel_id)
        return FLOW_STARTED

    async def end(self, channel_id: str) -> str | None:
        try:
            if await self._store.get_flow(channel_id) is None:
                return FLOW_NOT_RUNNING
            await self._store.delete_flow(channel_id)
        except Exception:
            logger.exception("Failed to end conversation flow: channel_id=%s", channel_id)
            return None
        logger.info("Conversation flow ended: channel_id=%s", channel_id)
        return FLOW_ENDED

    async def get_context(self, channel_id: str) -> ConversationFlow | None:
        """Return the active flow without creating one.

        Raises:
            StoreError: when the store cannot be read.
        """
        return await self._store.get_flow(channel_id)


__all__ = ["ConversationFlowManager", "append_turn", "new_flow"]
