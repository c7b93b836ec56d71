"""Lenient parsing of classifier output into an intent payload."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import re
from typing import Any, Mapping

from conversations.constants import INTENTS

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_END = re.compile(r"```$")
_TRAILING_COMMA = re.compile(r",\s*}")


@dataclass(frozen=True)
class IntentPayload:
    """Classifier verdict with its string fields."""

    intent: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def text(self, name: str) -> str:
        """Return a field as stripped text; missing or non-string values become ``""``."""
        value = self.fields.get(name)
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return ""

    @property
    def known(self) -> bool:
        return self.intent in INTENTS


def strip_code_fences(raw: str) -> str:
    text = (raw or "").strip()
    text = _FENCE_START.sub("", text, count=1)
    text = _FENCE_END.sub("", text, count=1)
    return text.strip()


def _candidates(text: str) -> list[str]:
    candidates = [text]
    if not (text.startswith("{") and text.endswith("}")):
        start = text.find("{")
        end = text.rfind("}")
        if start != -1 and end > start:
            candidates.append(text[start : end + 1])
    candidates.extend(_TRAILING_COMMA.sub("}", candidate) for candidate in list(candidates))
    return candidates


def parse_classification(raw: str | None) -> dict[str, Any] | None:
    """Decode a JSON object from classifier text.

    Tries, in order: the fence-stripped text, the outermost ``{...}`` span,
    then both again with trailing commas before ``}`` removed. Returns None
    when nothing decodes to a JSON object.
    """
    text = strip_code_fences(raw or "")
    if not text:
        return None
    for candidate in _candidates(text):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    logger.info("Classifier output could not be decoded as JSON")
    return None


def parse_intent(raw: str | None) -> IntentPayload | None:
    """Return the intent payload, or None when there is no usable ``intent`` field."""
    parsed = parse_classification(raw)
    if parsed is None:
        return None
    intent = parsed.get("intent")
    if not isinstance(intent, str) or not intent.strip():
        return None
    fields = {key: value for key, value in parsed.items() if key != "intent"}
    return IntentPayload(intent=intent.strip().lower(), fields=fields)


__all__ = ["IntentPayload", "parse_classification", "parse_intent", "strip_code_fences"]
