"""Prefix grammar parser for structured assistant commands.

A message such as ``.task prepare deck -tag work finish today`` selects a
variable (``task``), accumulates its value (``prepare deck``), records
whitelisted flags (``tag=work``) and leaves the unconsumed words as the
clean message (``finish today``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

from conversations.constants import (
    FLAG_ALIASES,
    FLAG_PREFIX,
    VARIABLE_ALIASES,
    VARIABLE_CONFIG,
    VARIABLE_PREFIX,
    Flag,
    Variable,
    VariableOptions,
)

_FLAG_LOOKUP = {alias.lower(): flag for alias, flag in FLAG_ALIASES.items()}


class _State(Enum):
    SEEKING_VARIABLE = "seeking_variable"
    ACCUMULATING_VALUE = "accumulating_value"
    SEEKING_FLAG = "seeking_flag"
    ACCUMULATING_FLAG_VALUE = "accumulating_flag_value"


@dataclass(frozen=True)
class ParsedCommand:
    """Immutable parse of one message."""

    variable: Variable | None
    value: str | bool | None
    flags: Mapping[str, str | bool] = field(default_factory=lambda: MappingProxyType({}))
    clean_message: str = ""

    def flag(self, name: Flag) -> str | bool | None:
        """Return a flag value or None when absent."""
        return self.flags.get(name.value)

    def has_flag(self, name: Flag) -> bool:
        return name.value in self.flags


class _Machine:
    """Single-use state machine over the message tokens."""

    def __init__(self) -> None:
        self.state = _State.SEEKING_VARIABLE
        self.variable: Variable | None = None
        self.options: VariableOptions | None = None
        self.value_words: list[str] = []
        self.default_value: bool | None = None
        self.flags: dict[str, str | bool] = {}
        self.flag_words: dict[str, list[str]] = {}
        self.active_flag: Flag | None = None
        self.clean_words: list[str] = []

    def feed(self, tokens: Iterable[str]) -> None:
        for token in tokens:
            if self.state is _State.SEEKING_VARIABLE:
                self._seek_variable(token)
            elif _is_flag_token(token):
                self._open_flag(token)
            elif self.state is _State.ACCUMULATING_VALUE:
                self._accumulate_value(token)
            elif self.state is _State.ACCUMULATING_FLAG_VALUE:
                self.flag_words[self.active_flag.value].append(token)
            else:
                self.clean_words.append(token)

    def _seek_variable(self, token: str) -> None:
        variable = _lookup_variable(token)
        if variable is None:
            self.clean_words.append(token)
            return
        self.variable = variable
        self.options = VARIABLE_CONFIG[variable]
        if self.options.default_value is not None:
            self.default_value = self.options.default_value
            self.state = _State.SEEKING_FLAG
        else:
            self.state = _State.ACCUMULATING_VALUE

    def _accumulate_value(self, token: str) -> None:
        self.value_words.append(token)
        if not self.options.many_words:
            self.state = _State.SEEKING_FLAG

    def _open_flag(self, token: str) -> None:
        # Any flag token closes the running accumulation, known or not.
        self.active_flag = None
        self.state = _State.SEEKING_FLAG
        flag = _FLAG_LOOKUP.get(token[len(FLAG_PREFIX):].lower())
        if flag is None or flag not in self.options.flags:
            return
        default = self.options.flags[flag]
        if default is not None:
            self.flags[flag.value] = default
            return
        self.active_flag = flag
        self.flag_words[flag.value] = []
        self.state = _State.ACCUMULATING_FLAG_VALUE

    def result(self) -> ParsedCommand:
        if self.variable is None:
            value = None
        elif self.default_value is not None:
            value = self.default_value
        else:
            value = " ".join(self.value_words)
        flags = dict(self.flags)
        for name, words in self.flag_words.items():
            flags[name] = " ".join(words)
        return ParsedCommand(
            variable=self.variable,
            value=value,
            flags=MappingProxyType(flags),
            clean_message=" ".join(self.clean_words),
        )


def _is_flag_token(token: str) -> bool:
    return len(token) > len(FLAG_PREFIX) and token.startswith(FLAG_PREFIX)


def _lookup_variable(token: str) -> Variable | None:
    if len(token) <= len(VARIABLE_PREFIX) or not token.startswith(VARIABLE_PREFIX):
        return None
    return VARIABLE_ALIASES.get(token[len(VARIABLE_PREFIX):].lower())


def parse(message: str) -> ParsedCommand:
    """Parse a message into variable, value, flags and clean message.

    Unknown variable tokens are kept as plain words. A flag outside the
    active variable's whitelist is dropped and the words after it fall
    through to the clean message.

    Raises:
        ValueError: when the message is empty or whitespace only.
    """
    tokens = (message or "").split()
    if not tokens:
        raise ValueError("Cannot parse an empty message")
    machine = _Machine()
    machine.feed(tokens)
    return machine.result()


__all__ = ["ParsedCommand", "parse"]
