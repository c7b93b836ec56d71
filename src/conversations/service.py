"""Transport-facing conversation operations for channel and personal flows."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Awaitable, Callable

from config import AssistantConfig
from conversations.constants import (
    BACKEND_UNAVAILABLE,
    FLOW_END_FAILED,
    FLOW_START_FAILED,
    GENERIC_FAILURE,
    NO_CONVERSATION_SAVED,
    FlowKey,
)
from conversations.flow_manager import ConversationFlowManager, append_turn, new_flow
from conversations.message_processor import MessageProcessor
from conversations.schemas import (
    ChannelType,
    ConversationFlow,
    ConversationProvider,
    Role,
    TurnResponse,
    UserMessage,
    assistant_message,
)
from conversations.store import ConversationStore
from observability import bind_context, clear_context
from results import StoreError
from time_utils import utc_now

logger = logging.getLogger(__name__)


class ConversationService:
    """Runs turns against stored flows and keeps their history capped."""

    def __init__(
        self,
        *,
        flow_manager: ConversationFlowManager,
        store: ConversationStore,
        processor: MessageProcessor,
        config: AssistantConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._flows = flow_manager
        self._store = store
        self._processor = processor
        self._config = config
        self._clock = clock

    def _with_turns(self, flow: ConversationFlow, *turns: UserMessage) -> ConversationFlow:
        conversation = list(flow.conversation)
        for turn in turns:
            conversation = append_turn(conversation, turn, self._config.history_limit)
        return flow.model_copy(update={"conversation": conversation, "updated_at": self._clock()})

    # Flow life cycle

    async def start_flow(
        self,
        channel_id: str,
        channel_type: ChannelType = ChannelType.SLACK,
        socket_channel: str | None = None,
    ) -> str | None:
        return await self._flows.start(channel_id, channel_type, socket_channel)

    async def end_flow(self, channel_id: str) -> str | None:
        return await self._flows.end(channel_id)

    async def flow_started(self, channel_id: str) -> bool:
        try:
            return await self._flows.get_context(channel_id) is not None
        except StoreError:
            logger.warning("Flow state unavailable: channel_id=%s", channel_id)
            return False

    async def show_flow_messages(self, channel_id: str) -> list[UserMessage] | None:
        """Return the stored turns, or None when no flow is active or readable."""
        try:
            flow = await self._flows.get_context(channel_id)
        except StoreError:
            logger.warning("Flow state unavailable: channel_id=%s", channel_id)
            return None
        if flow is None:
            return None
        return list(flow.conversation)

    async def show_flow(self, channel_id: str) -> str:
        messages = await self.show_flow_messages(channel_id)
        if not messages:
            return NO_CONVERSATION_SAVED
        return "\n".join(f"{message.role.value}: {message.content}" for message in messages)

    async def show_channels(self) -> list[str]:
        try:
            return await self._store.list_flow_channels()
        except StoreError:
            logger.warning("Flow channels unavailable")
            return []

    async def handle_flow_command(
        self,
        text: str,
        channel_id: str,
        channel_type: ChannelType = ChannelType.SLACK,
    ) -> str | None:
        """Answer ``start/end/show conversation``; None when ``text`` is none of them."""
        try:
            key = FlowKey((text or "").strip().lower())
        except ValueError:
            return None
        if key is FlowKey.START:
            return await self.start_flow(channel_id, channel_type) or FLOW_START_FAILED
        if key is FlowKey.END:
            return await self.end_flow(channel_id) or FLOW_END_FAILED
        return await self.show_flow(channel_id)

    # Turns

    async def generate_flow_reply(
        self,
        message: str,
        user_id: int,
        channel_id: str,
        user_slack_id: str | None = None,
        provider: ConversationProvider = ConversationProvider.SLACK,
    ) -> TurnResponse | None:
        """Run one turn in a shared channel flow.

        Returns None when the channel has no active flow or the store is
        unavailable. A ``+`` message is stored without its prefix and
        answered with ``skipped=True``.
        """
        bind_context(channel_id=channel_id, user_id=user_id)
        try:
            flow = await self._flows.get_context(channel_id)
            if flow is None:
                return None
            return await self._run_turn(
                flow,
                message,
                user_id=user_id,
                user_slack_id=user_slack_id,
                provider=provider,
                channel_id=channel_id,
                is_channel_context=True,
                save=self._store.save_flow,
            )
        except StoreError:
            logger.exception("Flow turn aborted: store unavailable")
            return None
        except Exception:
            logger.exception("Flow turn failed")
            return TurnResponse(response=assistant_message(GENERIC_FAILURE))
        finally:
            clear_context()

    async def generate_assistant_conversation(
        self,
        message: str,
        user_id: int,
        provider: ConversationProvider = ConversationProvider.ASSISTANT,
    ) -> TurnResponse | None:
        """Run one turn in the user's personal flow, creating it on first use."""
        bind_context(user_id=user_id)
        try:
            flow = await self._store.get_personal_flow(user_id)
            if flow is None:
                flow = new_flow(str(user_id), ChannelType.ASSISTANT, self._clock())

            async def save(updated: ConversationFlow) -> None:
                await self._store.save_personal_flow(user_id, updated)

            return await self._run_turn(
                flow,
                message,
                user_id=user_id,
                user_slack_id=None,
                provider=provider,
                channel_id=None,
                is_channel_context=False,
                save=save,
            )
        except StoreError:
            logger.exception("Assistant turn aborted: store unavailable")
            return None
        except Exception:
            logger.exception("Assistant turn failed")
            return TurnResponse(response=assistant_message(GENERIC_FAILURE))
        finally:
            clear_context()

    async def _run_turn(
        self,
        flow: ConversationFlow,
        message: str,
        *,
        user_id: int,
        user_slack_id: str | None,
        provider: ConversationProvider,
        channel_id: str | None,
        is_channel_context: bool,
        save: Callable[[ConversationFlow], Awaitable[None]],
    ) -> TurnResponse:
        skipped = self._processor.should_skip_ai(message)
        content = self._processor.clean_skip_flag(message) if skipped else message.strip()
        user_turn = UserMessage(
            role=Role.USER,
            content=content,
            provider=provider,
            user_id=str(user_id),
            user_slack_id=user_slack_id,
        )
        if skipped:
            await save(self._with_turns(flow, user_turn))
            return TurnResponse(response=None, skipped=True)

        result = await self._processor.process(
            message,
            user_id,
            channel_id=channel_id,
            is_channel_context=is_channel_context,
            history=list(flow.conversation),
        )
        response = result.response or assistant_message(BACKEND_UNAVAILABLE)
        await save(self._with_turns(flow, user_turn, response))
        return TurnResponse(response=response)

    async def send_message_to_flow(
        self,
        message: str,
        user_id: int,
        channel_id: str,
        provider: ConversationProvider = ConversationProvider.WEB,
        user_slack_id: str | None = None,
    ) -> UserMessage | None:
        """Append a user turn without any automation; None when no flow is active."""
        try:
            flow = await self._flows.get_context(channel_id)
            if flow is None:
                return None
            turn = UserMessage(
                role=Role.USER,
                content=message.strip(),
                provider=provider,
                user_id=str(user_id),
                user_slack_id=user_slack_id,
            )
            await self._store.save_flow(self._with_turns(flow, turn))
        except StoreError:
            logger.exception("Message not stored: channel_id=%s", channel_id)
            return None
        return turn


__all__ = ["ConversationService"]
