"""Turn one inbound message into an assistant reply.

Layers, first match wins:

1. skip-AI escape hatch (``+`` prefix), no automation at all;
2. deterministic shorthand commands (snooze, repeat, alert lists,
   preferences, digest, "remind me ... to ...");
3. structured variables parsed by the command grammar (``.alert``,
   ``.task``, ``.note``, ``.image``, ``.question``);
4. intent classification through the completion backend.
"""

from __future__ import annotations

from datetime import datetime
import logging
import re
from typing import Any, Awaitable, Callable, Sequence

from config import AssistantConfig
from conversations import blocks
from conversations.command_parser import ParsedCommand, parse
from conversations.commands import (
    AssistantCommand,
    ListAlerts,
    RemindMe,
    RepeatAlert,
    SetAlertScope,
    SetSnoozeDefault,
    ShowDigest,
    SnoozeAlert,
    match_command,
)
from conversations.constants import (
    BACKEND_UNAVAILABLE,
    GENERIC_FAILURE,
    NOT_UNDERSTOOD,
    Flag,
    Variable,
)
from conversations.context import build_user_data_context, format_conversation_history
from conversations.intent import IntentPayload, parse_intent
from conversations.prompts import (
    ASSISTANT_PROMPT,
    SEARCH_SUMMARY_PROMPT,
    SEARCH_SUMMARY_REQUEST,
    build_classification_prompt,
    with_date_context,
)
from conversations.schemas import (
    AlertMetadata,
    AlertScope,
    AssistantPreference,
    DigestSnapshot,
    ProcessResult,
    Role,
    UserMessage,
    assistant_message,
)
from conversations.store import ConversationStore
from gateways.alerts import AlertRecord, AlertsGateway
from gateways.images import ImageOptions, ImagesGateway
from gateways.notes import NoteRecord, NotesGateway
from gateways.tasks import TaskRecord, TasksGateway
from llm import CompletionBackend
from results import ErrorCategory, Result, StoreError
from services.web_search import WebSearchClient, condense_results
from time_utils import format_date_text, utc_now

logger = logging.getLogger(__name__)

_SKIP_FLAG = re.compile(r"^\+\s*")

_SCOPE_TITLES: dict[str, str] = {
    "all": "These are all your alerts.",
    "pending": "Pending alerts in detail.",
    "snoozed": "Alerts with an active snooze.",
    "resolved": "Alerts marked as resolved.",
    "overdue": "Overdue alerts that need attention.",
}
_SCOPE_EMPTY: dict[str, str] = {
    "all": "You have no saved alerts.",
    "pending": "You have no pending alerts.",
    "snoozed": "You have no snoozed alerts.",
    "resolved": "You have no resolved alerts.",
    "overdue": "You have no overdue alerts.",
}


def _plural(amount: int, word: str) -> str:
    return f"{amount} {word}{'' if amount == 1 else 's'}"


def _failure_text(result: Result[Any], fallback: str) -> str:
    """User-facing text for a failed gateway result."""
    error = result.error
    if error is not None and error.category in (ErrorCategory.VALIDATION, ErrorCategory.NOT_FOUND):
        return f"{fallback} {error.message}."
    return fallback


def _alert_lines(alerts: Sequence[AlertRecord]) -> str:
    return "\n".join(
        f"• #{alert.id} *{alert.message}*: {format_date_text(alert.date)}" for alert in alerts
    )


def _titled_lines(records: Sequence[TaskRecord] | Sequence[NoteRecord]) -> str:
    return "\n".join(
        f"• #{record.id} *{record.title}*: {record.description}".rstrip(": ")
        for record in records
    )


def _parse_count(raw: str | bool | None) -> int:
    try:
        return max(1, int(str(raw).strip()))
    except (TypeError, ValueError):
        return 1


class MessageProcessor:
    """Routes a message through commands, variables and intent fallback."""

    def __init__(
        self,
        *,
        alerts: AlertsGateway,
        tasks: TasksGateway,
        notes: NotesGateway,
        images: ImagesGateway,
        completion: CompletionBackend,
        store: ConversationStore,
        search: WebSearchClient,
        config: AssistantConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._alerts = alerts
        self._tasks = tasks
        self._notes = notes
        self._images = images
        self._completion = completion
        self._store = store
        self._search = search
        self._config = config
        self._clock = clock

    @staticmethod
    def should_skip_ai(message: str) -> bool:
        return (message or "").strip().startswith("+")

    @staticmethod
    def clean_skip_flag(message: str) -> str:
        return _SKIP_FLAG.sub("", (message or "").strip())

    async def process(
        self,
        message: str,
        user_id: int,
        channel_id: str | None = None,
        is_channel_context: bool = False,
        history: Sequence[UserMessage] | None = None,
    ) -> ProcessResult:
        """Process one message.

        Args:
            message: Raw inbound text
            user_id: Owning user
            channel_id: Channel the message arrived on
            is_channel_context: True inside a shared channel; domain queries
                are then scoped to ``channel_id``
            history: Prior turns of the flow, oldest first

        Returns:
            ``ProcessResult``; ``should_skip_ai`` is set for ``+`` messages
        """
        if self.should_skip_ai(message):
            return ProcessResult(response=None, should_skip_ai=True)
        scope_channel_id = channel_id if is_channel_context else None
        try:
            response = await self._handle_command(message, user_id, scope_channel_id)
            if response is None:
                response = await self._handle_variables(
                    message, user_id, scope_channel_id, list(history or [])
                )
        except Exception:
            logger.exception("Message processing failed: user_id=%s", user_id)
            return ProcessResult(response=assistant_message(GENERIC_FAILURE))
        return ProcessResult(response=response)

    # Deterministic shorthand commands

    async def _handle_command(
        self,
        message: str,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage | None:
        command = match_command(message)
        if command is None:
            return None
        logger.info("Assistant command matched: %s", type(command).__name__)
        handlers: dict[type, Callable[[Any, int, str | None], Awaitable[UserMessage]]] = {
            SnoozeAlert: self._snooze,
            RepeatAlert: self._repeat,
            ListAlerts: self._list_alerts_command,
            SetSnoozeDefault: self._set_snooze_default,
            SetAlertScope: self._set_alert_scope,
            ShowDigest: self._digest,
            RemindMe: self._remind,
        }
        return await handlers[type(command)](command, user_id, channel_id)

    async def _snooze_minutes(self, user_id: int) -> int:
        try:
            preference = await self._store.get_snooze_preference(user_id)
        except StoreError:
            logger.warning("Snooze preference unavailable; using default: user_id=%s", user_id)
            return self._config.default_snooze_minutes
        if preference is None:
            return self._config.default_snooze_minutes
        return preference.default_snooze_minutes

    async def _save_snooze_minutes(self, user_id: int, minutes: int) -> bool:
        try:
            await self._store.save_snooze_preference(
                AssistantPreference(user_id=str(user_id), default_snooze_minutes=minutes)
            )
        except StoreError:
            logger.warning("Snooze preference not saved: user_id=%s", user_id)
            return False
        return True

    async def _update_alert_metadata(
        self,
        alert_id: int,
        update: Callable[[AlertMetadata], dict[str, Any]],
    ) -> None:
        try:
            current = await self._store.get_alert_metadata(alert_id) or AlertMetadata()
            await self._store.save_alert_metadata(
                alert_id, current.model_copy(update=update(current))
            )
        except StoreError:
            logger.warning("Alert metadata not saved: alert_id=%s", alert_id)

    async def _snooze(self, command: SnoozeAlert, user_id: int, channel_id: str | None) -> UserMessage:
        if command.minutes is not None and command.minutes <= 0:
            return assistant_message("Use a positive number of minutes or hours to snooze.")
        minutes = command.minutes or await self._snooze_minutes(user_id)
        result = await self._alerts.reschedule_alert(
            command.alert_id, user_id, minutes, now=self._clock()
        )
        if not result.ok:
            return assistant_message(_failure_text(result, "Could not snooze the alert. 😅"))
        if command.minutes is not None:
            await self._save_snooze_minutes(user_id, minutes)
        await self._update_alert_metadata(
            command.alert_id,
            lambda current: {
                "snooze_count": current.snooze_count + 1,
                "snoozed_until": result.data.date,
                "last_snooze_minutes": minutes,
            },
        )
        return assistant_message(
            f"Alert #{command.alert_id} snoozed for {_plural(minutes, 'minute')}.",
            blocks.alert_detail(result.data),
        )

    async def _repeat(self, command: RepeatAlert, user_id: int, channel_id: str | None) -> UserMessage:
        result = await self._alerts.create_follow_up_alert(
            command.alert_id, user_id, command.minutes
        )
        if not result.ok:
            return assistant_message(_failure_text(result, "Could not set up the repetition. 😅"))
        await self._update_alert_metadata(
            command.alert_id, lambda current: {"repeat_policy": command.policy}
        )
        cadence = "every day" if command.policy == "daily" else "every week"
        block = blocks.with_context(
            blocks.alert_created(result.data),
            f"Alert #{command.alert_id} repeats {cadence}.",
        )
        return assistant_message(f"Done, alert #{command.alert_id} will repeat {cadence}.", block)

    async def _preferred_scope(self, user_id: int) -> AlertScope:
        try:
            preferences = await self._store.get_preferences(user_id)
        except StoreError:
            logger.warning("Assistant preferences unavailable: user_id=%s", user_id)
            return "pending"
        return preferences.preferred_alert_scope

    async def _is_snoozed(self, alert: AlertRecord) -> bool:
        try:
            metadata = await self._store.get_alert_metadata(alert.id)
        except StoreError:
            return False
        return metadata is not None and metadata.snooze_count > 0

    async def _filter_by_scope(
        self,
        alerts: Sequence[AlertRecord],
        scope: AlertScope,
    ) -> list[AlertRecord]:
        now = self._clock()
        if scope == "pending":
            return [alert for alert in alerts if not alert.sent]
        if scope == "overdue":
            return [alert for alert in alerts if not alert.sent and alert.date < now]
        if scope == "resolved":
            return [alert for alert in alerts if alert.sent]
        if scope == "snoozed":
            return [alert for alert in alerts if not alert.sent and await self._is_snoozed(alert)]
        return list(alerts)

    async def list_alerts_by_scope(
        self,
        user_id: int,
        scope: AlertScope,
        channel_id: str | None = None,
    ) -> UserMessage:
        """Reply with the user's alerts filtered by ``scope``."""
        result = await self._alerts.get_alerts_by_user_id(user_id, channel_id=channel_id, sent=None)
        if not result.ok:
            return assistant_message("Could not fetch your alerts. 😅")
        if not result.data:
            return assistant_message(_SCOPE_EMPTY["all"])
        filtered = await self._filter_by_scope(result.data, scope)
        if not filtered:
            return assistant_message(_SCOPE_EMPTY[scope])
        return assistant_message(
            f"{_SCOPE_TITLES[scope]}\n{_alert_lines(filtered)}",
            blocks.alerts_list(filtered, _SCOPE_TITLES[scope]),
        )

    async def _list_alerts_command(
        self,
        command: ListAlerts,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        scope = command.scope or await self._preferred_scope(user_id)
        return await self.list_alerts_by_scope(user_id, scope, channel_id)

    async def _set_snooze_default(
        self,
        command: SetSnoozeDefault,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        if command.minutes <= 0:
            return assistant_message("Use a positive number to set the snooze default.")
        if not await self._save_snooze_minutes(user_id, command.minutes):
            return assistant_message("Could not save your snooze preference. 😅")
        return assistant_message(
            f"Preferred snooze updated to {_plural(command.minutes, 'minute')}."
        )

    async def _set_alert_scope(
        self,
        command: SetAlertScope,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        try:
            preferences = await self._store.get_preferences(user_id)
            await self._store.save_preferences(
                user_id, preferences.model_copy(update={"preferred_alert_scope": command.scope})
            )
        except StoreError:
            logger.warning("Alert scope preference not saved: user_id=%s", user_id)
            return assistant_message("Could not save your alert scope preference. 😅")
        return assistant_message(f"Default alert list scope set to {command.scope}.")

    async def _digest(self, command: ShowDigest, user_id: int, channel_id: str | None) -> UserMessage:
        alerts = await self._alerts.get_alerts_by_user_id(user_id, channel_id=channel_id)
        tasks = await self._tasks.get_tasks_by_user_id(user_id, channel_id=channel_id)
        notes = await self._notes.get_notes_by_user_id(user_id, channel_id=channel_id)
        now = self._clock()
        pending = alerts.data if alerts.ok else []
        lines = [f"Digest for {format_date_text(now)}"]
        lines.append(f"• {_plural(len(pending), 'pending alert')}")
        if pending:
            upcoming = pending[0]
            lines[-1] += f" (next: #{upcoming.id} {upcoming.message} at {format_date_text(upcoming.date)})"
        lines.append(f"• {_plural(len(tasks.data) if tasks.ok else 0, 'pending task')}")
        lines.append(f"• {_plural(len(notes.data) if notes.ok else 0, 'note')}")
        text = "\n".join(lines)
        digest_blocks = blocks.alerts_list(pending[: self._config.context_max_items], text)
        snapshot = DigestSnapshot(generated_at=now, text=text, blocks=digest_blocks["blocks"])
        try:
            await self._store.save_digest(user_id, snapshot)
        except StoreError:
            logger.warning("Digest snapshot not saved: user_id=%s", user_id)
        return assistant_message(text, digest_blocks)

    async def _remind(self, command: RemindMe, user_id: int, channel_id: str | None) -> UserMessage:
        result = await self._alerts.create_assistant_alert(
            user_id, command.time_text, command.message, channel_id, now=self._clock()
        )
        if not result.ok:
            return assistant_message("I couldn't create that alert, try another time format.")
        return assistant_message(
            f"Done, I'll remind you to {command.message} ({format_date_text(result.data.date)}).",
            blocks.alert_created(result.data),
        )

    # Structured variables

    async def _handle_variables(
        self,
        message: str,
        user_id: int,
        channel_id: str | None,
        history: list[UserMessage],
    ) -> UserMessage:
        if not message.strip():
            return assistant_message(NOT_UNDERSTOOD)
        parsed = parse(message)
        if parsed.variable is None:
            return await self._intent_fallback(parsed.clean_message, user_id, channel_id, history)
        logger.info("Assistant variable: %s", parsed.variable.value)
        if parsed.variable is Variable.ALERT:
            return await self._alert_variable(parsed, user_id, channel_id)
        if parsed.variable is Variable.TASK:
            return await self._task_variable(parsed, user_id, channel_id)
        if parsed.variable is Variable.NOTE:
            return await self._note_variable(parsed, user_id, channel_id)
        if parsed.variable is Variable.IMAGE:
            return await self._image_variable(parsed, user_id, channel_id)
        return await self._question_variable(parsed, history)

    async def _alert_variable(
        self,
        parsed: ParsedCommand,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        if parsed.has_flag(Flag.LIST):
            return await self._list_pending_alerts(user_id, channel_id)
        if not parsed.value or not parsed.clean_message:
            return assistant_message(
                "To create an alert send a time and a message, e.g. `.alert 10m check the oven`. 😅"
            )
        return await self._create_alert(user_id, str(parsed.value), parsed.clean_message, channel_id)

    async def _list_pending_alerts(self, user_id: int, channel_id: str | None) -> UserMessage:
        result = await self._alerts.get_alerts_by_user_id(user_id, channel_id=channel_id)
        if not result.ok:
            return assistant_message("Could not fetch your alerts. 😅")
        if not result.data:
            return assistant_message("You have no alerts.", blocks.alerts_list([]))
        return assistant_message(_alert_lines(result.data), blocks.alerts_list(result.data))

    async def _create_alert(
        self,
        user_id: int,
        time_text: str,
        text: str,
        channel_id: str | None,
    ) -> UserMessage:
        result = await self._alerts.create_assistant_alert(
            user_id, time_text, text, channel_id, now=self._clock()
        )
        if not result.ok:
            return assistant_message(_failure_text(result, "Could not create the alert. 😅"))
        alert = result.data
        return assistant_message(
            f"Alert created for {format_date_text(alert.date)} with id: #{alert.id}",
            blocks.alert_created(alert),
        )

    @staticmethod
    def _list_tag(parsed: ParsedCommand) -> str | None:
        """Tag requested by ``-list_tag``; ``""`` means the general list."""
        if not parsed.has_flag(Flag.LIST_TAG):
            return None
        return str(parsed.flag(Flag.LIST_TAG) or "").strip()

    @staticmethod
    def _tag(parsed: ParsedCommand) -> str | None:
        return str(parsed.flag(Flag.TAG) or "").strip() or None

    async def _task_variable(
        self,
        parsed: ParsedCommand,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        if parsed.has_flag(Flag.LIST):
            return await self._list_tasks(user_id, channel_id)
        tag = self._list_tag(parsed)
        if tag is not None:
            return await self._list_tasks(user_id, channel_id, tag or None)
        if not parsed.value:
            return assistant_message("To create a task send a title, e.g. `.task prepare deck`. 😅")
        return await self._create_task(
            user_id,
            str(parsed.value),
            str(parsed.flag(Flag.DESCRIPTION) or ""),
            self._tag(parsed),
            channel_id,
        )

    async def _list_tasks(
        self,
        user_id: int,
        channel_id: str | None,
        tag: str | None = None,
    ) -> UserMessage:
        result = await self._tasks.get_tasks_by_user_id(user_id, channel_id=channel_id, tag=tag)
        if not result.ok:
            return assistant_message("Could not fetch your tasks. 😅")
        tasks = result.data
        body = _titled_lines(tasks) if tasks else "You have no tasks."
        if tag:
            title = f"Tasks tagged {tag}: {len(tasks)}"
            return assistant_message(f"{title}\n{body}", blocks.tasks_list(tasks, title))
        return assistant_message(body, blocks.tasks_list(tasks))

    async def _create_task(
        self,
        user_id: int,
        title: str,
        description: str,
        tag: str | None,
        channel_id: str | None,
    ) -> UserMessage:
        result = await self._tasks.create_assistant_task(
            user_id, title, description, tag, channel_id
        )
        if not result.ok:
            return assistant_message(_failure_text(result, "Could not create the task. 😅"))
        return assistant_message(
            f"Task created with id: #{result.data.id}", blocks.task_created(result.data)
        )

    async def _note_variable(
        self,
        parsed: ParsedCommand,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        if parsed.has_flag(Flag.LIST):
            return await self._list_notes(user_id, channel_id)
        tag = self._list_tag(parsed)
        if tag is not None:
            return await self._list_notes(user_id, channel_id, tag or None)
        if not parsed.value:
            return assistant_message("To create a note send a title, e.g. `.note sprint ideas`. 😅")
        return await self._create_note(
            user_id,
            str(parsed.value),
            str(parsed.flag(Flag.DESCRIPTION) or ""),
            self._tag(parsed),
            channel_id,
        )

    async def _list_notes(
        self,
        user_id: int,
        channel_id: str | None,
        tag: str | None = None,
    ) -> UserMessage:
        result = await self._notes.get_notes_by_user_id(user_id, channel_id=channel_id, tag=tag)
        if not result.ok:
            return assistant_message("Could not fetch your notes. 😅")
        notes = result.data
        body = _titled_lines(notes) if notes else "You have no notes."
        if tag:
            title = f"Notes tagged {tag}: {len(notes)}"
            return assistant_message(f"{title}\n{body}", blocks.notes_list(notes, title))
        return assistant_message(body, blocks.notes_list(notes))

    async def _create_note(
        self,
        user_id: int,
        title: str,
        description: str,
        tag: str | None,
        channel_id: str | None,
    ) -> UserMessage:
        result = await self._notes.create_assistant_note(
            user_id, title, description, tag, channel_id
        )
        if not result.ok:
            return assistant_message(_failure_text(result, "Could not create the note. 😅"))
        return assistant_message(
            f"Note created with id: #{result.data.id}", blocks.note_created(result.data)
        )

    async def _image_variable(
        self,
        parsed: ParsedCommand,
        user_id: int,
        channel_id: str | None,
    ) -> UserMessage:
        if parsed.has_flag(Flag.LIST):
            return await self._list_images(user_id, channel_id)
        tag = self._list_tag(parsed)
        if tag is not None:
            return await self._list_images(user_id, channel_id, tag or None)
        if not parsed.value:
            return assistant_message(
                "To generate an image send a prompt, e.g. `.image a red fox -size 1024x1024`. 😅"
            )
        options = ImageOptions(
            size=str(parsed.flag(Flag.SIZE) or "").strip() or None,
            quality=str(parsed.flag(Flag.QUALITY) or "").strip() or None,
            style=str(parsed.flag(Flag.STYLE) or "").strip() or None,
            number=_parse_count(parsed.flag(Flag.NUMBER)),
            tag=self._tag(parsed),
        )
        return await self._create_image(user_id, str(parsed.value), options, channel_id)

    async def _list_images(
        self,
        user_id: int,
        channel_id: str | None,
        tag: str | None = None,
    ) -> UserMessage:
        result = await self._images.get_images_by_user_id(user_id, channel_id=channel_id, tag=tag)
        if not result.ok:
            return assistant_message("Could not fetch your images. 😅")
        images = result.data
        if not images:
            return assistant_message("You have no images.")
        body = "\n".join(f"• #{image.id} {image.prompt}: {image.url}" for image in images)
        return assistant_message(body, blocks.images_list(images))

    async def _create_image(
        self,
        user_id: int,
        prompt: str,
        options: ImageOptions,
        channel_id: str | None,
    ) -> UserMessage:
        result = await self._images.create_image(user_id, prompt, options, channel_id)
        if not result.ok:
            return assistant_message(_failure_text(result, "Could not generate the image. 😅"))
        urls = "\n".join(image.url for image in result.data)
        return assistant_message(
            f"Image generated ({_plural(len(result.data), 'image')}):\n{urls}",
            blocks.images_list(result.data, f"Images for: {prompt}"),
        )

    async def _question_variable(
        self,
        parsed: ParsedCommand,
        history: list[UserMessage],
    ) -> UserMessage:
        if not parsed.clean_message:
            return assistant_message("Write your question after `.q`, e.g. `.q what is a VAPID key?`")
        return await self._answer(parsed.clean_message, history)

    async def _answer(self, question: str, history: Sequence[UserMessage]) -> UserMessage:
        prompt: list[UserMessage | dict[str, str]] = [
            {"role": Role.SYSTEM.value, "content": with_date_context(ASSISTANT_PROMPT)}
        ]
        prompt.extend(turn for turn in history if turn.role is not Role.SYSTEM)
        prompt.append({"role": Role.USER.value, "content": question})
        response = await self._completion.complete(prompt)
        if response is None:
            return assistant_message(BACKEND_UNAVAILABLE)
        return response

    # Intent fallback

    async def _user_context(self, user_id: int, channel_id: str | None) -> str:
        alerts = await self._alerts.get_alerts_by_user_id(user_id, channel_id=channel_id)
        tasks = await self._tasks.get_tasks_by_user_id(user_id, channel_id=channel_id)
        notes = await self._notes.get_notes_by_user_id(user_id, channel_id=channel_id)
        return build_user_data_context(
            alerts=alerts.data if alerts.ok else [],
            tasks=tasks.data if tasks.ok else [],
            notes=notes.data if notes.ok else [],
            max_items=self._config.context_max_items,
            now=self._clock(),
        )

    async def _intent_fallback(
        self,
        text: str,
        user_id: int,
        channel_id: str | None,
        history: list[UserMessage],
    ) -> UserMessage:
        if not text.strip():
            return assistant_message(NOT_UNDERSTOOD)
        system_prompt = build_classification_prompt(
            await self._user_context(user_id, channel_id),
            format_conversation_history(history, self._config.history_excerpt_messages),
        )
        verdict = await self._completion.complete(
            [
                {"role": Role.SYSTEM.value, "content": system_prompt},
                {"role": Role.USER.value, "content": text},
            ],
            mode="classification",
        )
        if verdict is None:
            return assistant_message(BACKEND_UNAVAILABLE)
        payload = parse_intent(verdict.content)
        if payload is None or not payload.known:
            logger.info("Unrecognized classification: %s", payload.intent if payload else None)
            return assistant_message(NOT_UNDERSTOOD)
        logger.info("Intent classified: %s", payload.intent)
        return await self._dispatch_intent(payload, text, user_id, channel_id, history)

    async def _dispatch_intent(
        self,
        payload: IntentPayload,
        text: str,
        user_id: int,
        channel_id: str | None,
        history: list[UserMessage],
    ) -> UserMessage:
        intent = payload.intent
        tag = payload.text("tag") or None
        if intent == "alert.create":
            time_text, title = payload.text("time"), payload.text("title")
            if not time_text or not title:
                return self._clarify(payload, "I need a time and a title to create the alert.")
            return await self._create_alert(user_id, time_text, title, channel_id)
        if intent == "alert.list":
            return await self._list_pending_alerts(user_id, channel_id)
        if intent == "task.create":
            if not payload.text("title"):
                return self._clarify(payload, "I need a title to create the task.")
            return await self._create_task(
                user_id, payload.text("title"), payload.text("description"), tag, channel_id
            )
        if intent == "task.list":
            return await self._list_tasks(user_id, channel_id, tag)
        if intent == "note.create":
            if not payload.text("title"):
                return self._clarify(payload, "I need a title to create the note.")
            return await self._create_note(
                user_id, payload.text("title"), payload.text("description"), tag, channel_id
            )
        if intent == "note.list":
            return await self._list_notes(user_id, channel_id, tag)
        if intent == "image.create":
            prompt = payload.text("prompt") or payload.text("title")
            if not prompt:
                return self._clarify(payload, "Describe the image you want me to generate.")
            return await self._create_image(user_id, prompt, ImageOptions(tag=tag), channel_id)
        if intent == "image.list":
            return await self._list_images(user_id, channel_id, tag)
        if intent == "search":
            if not payload.text("query"):
                return assistant_message(NOT_UNDERSTOOD)
            return await self.search_and_summarize(text, payload.text("query"))
        return await self._answer(text, history)

    @staticmethod
    def _clarify(payload: IntentPayload, fallback: str) -> UserMessage:
        return assistant_message(payload.text("errorMessage") or fallback)

    async def search_and_summarize(self, question: str, query: str) -> UserMessage:
        """Search the web for ``query`` and summarize the hits for ``question``."""
        results = await self._search.search(query)
        if not results:
            return assistant_message("I couldn't find reliable results right now.")
        request = SEARCH_SUMMARY_REQUEST.format(
            question=question, query=query.strip(), results=condense_results(results)
        )
        summary = await self._completion.complete(
            [
                {"role": Role.SYSTEM.value, "content": with_date_context(SEARCH_SUMMARY_PROMPT)},
                {"role": Role.USER.value, "content": request},
            ]
        )
        if summary is None:
            return assistant_message("Could not generate a summary.")
        return assistant_message(summary.content)


__all__ = ["MessageProcessor"]
