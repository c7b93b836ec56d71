"""Command grammar vocabulary, flow keys and canned replies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

VARIABLE_PREFIX = "."
FLAG_PREFIX = "-"


class Variable(str, Enum):
    ALERT = "alert"
    TASK = "task"
    NOTE = "note"
    IMAGE = "image"
    QUESTION = "question"


class Flag(str, Enum):
    DESCRIPTION = "description"
    LIST = "list"
    LIST_TAG = "list_tag"
    TAG = "tag"
    SIZE = "size"
    QUALITY = "quality"
    STYLE = "style"
    NUMBER = "number"


VARIABLE_ALIASES: dict[str, Variable] = {
    "alert": Variable.ALERT,
    "a": Variable.ALERT,
    "task": Variable.TASK,
    "t": Variable.TASK,
    "note": Variable.NOTE,
    "n": Variable.NOTE,
    "question": Variable.QUESTION,
    "q": Variable.QUESTION,
    "image": Variable.IMAGE,
    "img": Variable.IMAGE,
    "i": Variable.IMAGE,
}

FLAG_ALIASES: dict[str, Flag] = {
    "description": Flag.DESCRIPTION,
    "d": Flag.DESCRIPTION,
    "tag": Flag.TAG,
    "t": Flag.TAG,
    "list": Flag.LIST,
    "l": Flag.LIST,
    "listTag": Flag.LIST_TAG,
    "lt": Flag.LIST_TAG,
    "size": Flag.SIZE,
    "s": Flag.SIZE,
    "quality": Flag.QUALITY,
    "qty": Flag.QUALITY,
    "style": Flag.STYLE,
    "st": Flag.STYLE,
    "number": Flag.NUMBER,
    "num": Flag.NUMBER,
}


@dataclass(frozen=True)
class VariableOptions:
    """How a variable consumes the words that follow it.

    ``default_value`` other than None means the variable takes no value and
    the rest of the message becomes the clean prompt. ``flags`` maps each
    accepted flag to its own default (None means it accumulates words).
    """

    default_value: bool | None = None
    many_words: bool = False
    flags: dict[Flag, bool | None] = field(default_factory=dict)


VARIABLE_CONFIG: dict[Variable, VariableOptions] = {
    Variable.ALERT: VariableOptions(flags={Flag.LIST: True}),
    Variable.TASK: VariableOptions(
        many_words=True,
        flags={
            Flag.DESCRIPTION: None,
            Flag.LIST: True,
            Flag.TAG: None,
            Flag.LIST_TAG: None,
        },
    ),
    Variable.NOTE: VariableOptions(
        many_words=True,
        flags={
            Flag.DESCRIPTION: None,
            Flag.LIST: True,
            Flag.TAG: None,
            Flag.LIST_TAG: None,
        },
    ),
    Variable.IMAGE: VariableOptions(
        many_words=True,
        flags={
            Flag.LIST: True,
            Flag.LIST_TAG: None,
            Flag.TAG: None,
            Flag.SIZE: None,
            Flag.QUALITY: None,
            Flag.STYLE: None,
            Flag.NUMBER: None,
        },
    ),
    Variable.QUESTION: VariableOptions(default_value=True),
}


class FlowKey(str, Enum):
    START = "start conversation"
    END = "end conversation"
    SHOW = "show conversation"


INTENTS = (
    "alert.create",
    "alert.list",
    "task.create",
    "task.list",
    "note.create",
    "note.list",
    "image.create",
    "image.list",
    "search",
    "question",
)

FLOW_ALREADY_RUNNING = "A conversation is already running in this channel."
FLOW_NOT_RUNNING = "There is no conversation running in this channel."
FLOW_STARTED = "Conversation started."
FLOW_ENDED = "Conversation ended."
FLOW_START_FAILED = "Could not start the conversation 🤷‍♂️"
FLOW_END_FAILED = "Could not end the conversation 🤷‍♂️"
NO_CONVERSATION_SAVED = "There is no saved conversation 🤷‍♂️"

NOT_UNDERSTOOD = "Sorry, I didn't understand your message. Could you rephrase it or be more specific?"
BACKEND_UNAVAILABLE = "Sorry, I can't answer right now. Please try again later. 🙏"
GENERIC_FAILURE = "Oops! Something went wrong processing your message. 😅"
