"""Completion backends using LiteLLM for model abstraction.

Exactly one backend is active per process, selected by ``llm.provider``.
Every backend returns ``None`` instead of raising so callers can degrade
to an apology without retrying.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

import litellm
from litellm import acompletion

from config import LlmConfig
from conversations.schemas import ConversationProvider, Role, UserMessage

logger = logging.getLogger(__name__)

PromptMessage = UserMessage | Mapping[str, Any]


class CompletionBackend(Protocol):
    """Contract shared by every completion provider."""

    name: str

    async def complete(
        self,
        messages: Sequence[PromptMessage],
        *,
        mode: str | None = None,
    ) -> UserMessage | None: ...


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when an exception signals provider rate limiting."""
    if isinstance(exc, litellm.RateLimitError):
        return True
    if getattr(exc, "status_code", None) == 429:
        return True
    text = str(exc).lower()
    return "429" in text or "rate limit" in text


def _to_prompt(message: PromptMessage) -> dict[str, str]:
    if isinstance(message, UserMessage):
        return message.as_prompt()
    role = message.get("role", Role.USER.value)
    if isinstance(role, Role):
        role = role.value
    return {"role": str(role), "content": str(message.get("content") or "")}


class LiteLLMCompletionBackend:
    """Chat-format completion through any LiteLLM-routed model."""

    name = "litellm"

    def __init__(self, config: LlmConfig):
        self._config = config

    def _model_for(self, mode: str | None) -> str:
        if mode == "classification" and self._config.classification_model:
            return self._config.classification_model
        return self._config.model

    def _litellm_kwargs(self) -> dict[str, Any]:
        """Build LiteLLM keyword arguments from settings."""
        extra: dict[str, Any] = {}
        if self._config.base_url:
            extra["api_base"] = self._config.base_url
        if self._config.api_key:
            extra["api_key"] = self._config.api_key
        return extra

    def build_request(
        self,
        messages: Sequence[PromptMessage],
        mode: str | None = None,
    ) -> dict[str, Any]:
        """Build the provider request payload."""
        return {
            "model": self._model_for(mode),
            "messages": [_to_prompt(message) for message in messages],
            "temperature": 0.0 if mode == "classification" else self._config.temperature,
            "timeout": self._config.timeout,
            **self._litellm_kwargs(),
        }

    async def complete(
        self,
        messages: Sequence[PromptMessage],
        *,
        mode: str | None = None,
    ) -> UserMessage | None:
        """Async completion request.

        Args:
            messages: Prompt turns, as ``UserMessage`` or ``{role, content}``
            mode: ``"classification"`` for deterministic intent routing

        Returns:
            Assistant message, or None when no completion is available
        """
        request = self.build_request(messages, mode)
        try:
            response = await acompletion(**request)
            content = response.choices[0].message.content
        except Exception as exc:
            if is_rate_limit_error(exc):
                logger.warning("%s rate limit exceeded; no completion available.", self.name)
            else:
                logger.error("%s completion failed: %s", self.name, exc)
            return None
        if not content:
            logger.warning("%s returned an empty completion.", self.name)
            return None
        return UserMessage(
            role=Role.ASSISTANT,
            content=content,
            provider=ConversationProvider.ASSISTANT,
        )


class GeminiCompletionBackend(LiteLLMCompletionBackend):
    """Gemini completion; the prompt is flattened into one content string."""

    name = "gemini"
    default_model = "gemini/gemini-2.0-flash"

    def _model_for(self, mode: str | None) -> str:
        model = super()._model_for(mode)
        if model.startswith("gemini/"):
            return model
        return self.default_model

    def build_request(
        self,
        messages: Sequence[PromptMessage],
        mode: str | None = None,
    ) -> dict[str, Any]:
        request = super().build_request(messages, mode)
        contents = " ".join(item["content"] for item in request["messages"])
        request["messages"] = [{"role": Role.USER.value, "content": contents}]
        return request


COMPLETION_BACKENDS: dict[str, type[LiteLLMCompletionBackend]] = {
    LiteLLMCompletionBackend.name: LiteLLMCompletionBackend,
    GeminiCompletionBackend.name: GeminiCompletionBackend,
}


def build_completion_backend(config: LlmConfig) -> CompletionBackend:
    """Instantiate the configured completion backend."""
    try:
        backend_cls = COMPLETION_BACKENDS[config.provider]
    except KeyError as exc:
        raise ValueError(f"Unknown completion provider: {config.provider}") from exc
    logger.info("Completion backend selected: %s", backend_cls.name)
    return backend_cls(config)
