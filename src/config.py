"""Configuration management for the aide assistant engine."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]
_DEFAULT_CONFIG_PATH = _REPO_ROOT / "config" / "aide.yml"
_USER_CONFIG_PATHS = [
    Path("~/.config/aide/aide.yml").expanduser(),
    Path("/config/aide.yml"),
]
_USER_SECRETS_PATHS = [
    Path("~/.config/aide/secrets.yml").expanduser(),
    Path("/config/secrets.yml"),
]

SUPPORTED_PROVIDERS = ("litellm", "gemini")


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk, returning an empty mapping if missing."""
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def _yaml_settings_source(paths: list[Path]):
    """Create a Pydantic settings source for a list of YAML paths."""

    def source() -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for path in paths:
            merged.update(_load_yaml(path))
        return merged

    return source


def _set_nested_value(target: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted-path value on a nested mapping, creating containers."""
    parts = path.split(".")
    cursor = target
    for key in parts[:-1]:
        node = cursor.get(key)
        if not isinstance(node, dict):
            node = {}
            cursor[key] = node
        cursor = node
    cursor[parts[-1]] = value


def _parse_env_value(raw: str, kind: str) -> Any:
    """Parse an environment value into the requested primitive type."""
    if kind == "int":
        return int(raw)
    if kind == "bool":
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return raw


def _env_settings_source():
    """Create a settings source that maps environment variables to config keys."""
    mapping = {
        "LOG_LEVEL": ("log_level", "str"),
        "LOG_JSON": ("log_json", "bool"),
        "AI_PROVIDER": ("llm.provider", "str"),
        "LLM_MODEL": ("llm.model", "str"),
        "LLM_CLASSIFICATION_MODEL": ("llm.classification_model", "str"),
        "LLM_BASE_URL": ("llm.base_url", "str"),
        "LLM_API_KEY": ("llm.api_key", "str"),
        "LLM_TIMEOUT": ("llm.timeout", "int"),
        "LLM_IMAGE_MODEL": ("llm.image_model", "str"),
        "REDIS_URL": ("redis.url", "str"),
        "DATABASE_URL": ("database.url", "str"),
        "SLACK_BOT_TOKEN": ("slack.bot_token", "str"),
        "WEB_PUSH_PRIVATE_KEY": ("push.vapid_private_key", "str"),
        "WEB_PUSH_SUBJECT": ("push.vapid_subject", "str"),
        "WEB_PUSH_CLICK_URL": ("push.click_url", "str"),
        "SEARCH_API_KEY": ("search.api_key", "str"),
        "SEARCH_API_KEY_CX": ("search.cx", "str"),
        "ALERTS_NOTIFY_INTERVAL_SECONDS": ("alerts.notify_interval_seconds", "int"),
        "USER_TIMEZONE": ("user.timezone", "str"),
    }

    def source() -> dict[str, Any]:
        data: dict[str, Any] = {}
        for env_key, (path, kind) in mapping.items():
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            _set_nested_value(data, path, _parse_env_value(raw, kind))
        return data

    return source


class LlmConfig(BaseModel):
    """Completion backend selection and request defaults."""

    provider: str = "litellm"
    model: str = "gpt-4o-mini"
    classification_model: str | None = None
    base_url: str | None = None
    api_key: str | None = None
    timeout: int = 120
    temperature: float = 0.6
    image_model: str = "dall-e-3"

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        """Ensure the provider is one of the registered backends."""
        normalized = value.strip().lower()
        if normalized not in SUPPORTED_PROVIDERS:
            raise ValueError(f"llm.provider must be one of: {', '.join(SUPPORTED_PROVIDERS)}.")
        return normalized


class RedisConfig(BaseModel):
    """Key/value store connectivity and document lifetimes."""

    url: str = "redis://redis:6379/0"
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    socket_timeout_seconds: float = Field(default=5.0, gt=0)
    preferences_ttl_seconds: int = 365 * 24 * 60 * 60
    digest_ttl_seconds: int = 30 * 24 * 60 * 60
    alert_metadata_ttl_seconds: int = 90 * 24 * 60 * 60


class DatabaseConfig(BaseModel):
    """Relational store connection configuration."""

    url: str = "sqlite:///aide.db"


class SlackConfig(BaseModel):
    """Slack Web API credentials."""

    bot_token: str | None = None


class PushConfig(BaseModel):
    """Web push (VAPID) settings."""

    vapid_private_key: str | None = None
    vapid_subject: str = "mailto:admin@localhost"
    click_url: str = "https://localhost:3000/"


class SearchConfig(BaseModel):
    """Web search provider settings."""

    api_key: str | None = None
    cx: str | None = None
    endpoint: str = "https://www.googleapis.com/customsearch/v1"
    timeout: float = 15.0
    max_results: int = 5


class AssistantConfig(BaseModel):
    """Conversation engine behaviour."""

    history_limit: int = 20
    default_snooze_minutes: int = 10
    context_max_items: int = 5
    history_excerpt_messages: int = 3

    @field_validator("history_limit")
    @classmethod
    def validate_history_limit(cls, value: int) -> int:
        """Ensure at least the incoming turn is kept."""
        if value < 1:
            raise ValueError("assistant.history_limit must be >= 1.")
        return value

    @field_validator("default_snooze_minutes")
    @classmethod
    def validate_default_snooze(cls, value: int) -> int:
        """Ensure the snooze default is positive."""
        if value < 1:
            raise ValueError("assistant.default_snooze_minutes must be >= 1.")
        return value


class AlertsConfig(BaseModel):
    """Alert notification pipeline scheduling."""

    notify_interval_seconds: int = 60

    @field_validator("notify_interval_seconds")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Ensure the beat interval is positive."""
        if value < 1:
            raise ValueError("alerts.notify_interval_seconds must be >= 1.")
        return value


class UserConfig(BaseModel):
    """Presentation timezone for dates shown to users."""

    timezone: str = "America/Argentina/Buenos_Aires"

    @model_validator(mode="after")
    def validate_timezone(self) -> "UserConfig":
        """Ensure the configured timezone is valid."""
        try:
            ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Invalid timezone: {self.timezone}") from exc
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables and YAML."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Layer settings sources in descending order of precedence."""
        return (
            init_settings,
            _env_settings_source(),
            _yaml_settings_source(_USER_SECRETS_PATHS),
            _yaml_settings_source(_USER_CONFIG_PATHS),
            _yaml_settings_source([_DEFAULT_CONFIG_PATH]),
        )

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    llm: LlmConfig = Field(default_factory=LlmConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    slack: SlackConfig = Field(default_factory=SlackConfig)
    push: PushConfig = Field(default_factory=PushConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    assistant: AssistantConfig = Field(default_factory=AssistantConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    user: UserConfig = Field(default_factory=UserConfig)


# Process-level instance for entry points; components take settings explicitly.
settings = Settings()
