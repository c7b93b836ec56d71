"""Unit tests for YAML configuration loading."""

import pytest
from pydantic import ValidationError

import config as config_module


def _clear_env(monkeypatch, keys):
    """Clear environment variables for config tests."""
    for key in keys:
        monkeypatch.delenv(key, raising=False)


def _use_paths(monkeypatch, default, user=(), secrets=()):
    monkeypatch.setattr(config_module, "_DEFAULT_CONFIG_PATH", default)
    monkeypatch.setattr(config_module, "_USER_CONFIG_PATHS", list(user))
    monkeypatch.setattr(config_module, "_USER_SECRETS_PATHS", list(secrets))


def test_yaml_precedence(monkeypatch, tmp_path):
    """Environment variables override secrets, user, and default YAML."""
    defaults = tmp_path / "defaults.yml"
    user_cfg = tmp_path / "user.yml"
    secrets = tmp_path / "secrets.yml"

    defaults.write_text(
        "\n".join(
            [
                "user:",
                "  timezone: UTC",
                "llm:",
                "  timeout: 100",
                "redis:",
                "  url: redis://default:6379/0",
                "assistant:",
                "  history_limit: 10",
            ]
        ),
        encoding="utf-8",
    )
    user_cfg.write_text(
        "\n".join(
            [
                "llm:",
                "  timeout: 200",
                "redis:",
                "  url: redis://user:6379/0",
            ]
        ),
        encoding="utf-8",
    )
    secrets.write_text(
        "\n".join(
            [
                "llm:",
                "  timeout: 300",
                "redis:",
                "  url: redis://secrets:6379/0",
            ]
        ),
        encoding="utf-8",
    )

    _clear_env(monkeypatch, ["REDIS_URL", "LLM_TIMEOUT", "USER_TIMEZONE"])
    monkeypatch.setenv("LLM_TIMEOUT", "400")
    _use_paths(monkeypatch, defaults, [user_cfg], [secrets])

    settings = config_module.Settings()

    assert settings.llm.timeout == 400
    assert settings.redis.url == "redis://secrets:6379/0"
    assert settings.assistant.history_limit == 10
    assert settings.user.timezone == "UTC"


def test_missing_yaml_files(monkeypatch, tmp_path):
    """Missing YAML files fall back to environment settings and defaults."""
    _clear_env(monkeypatch, ["REDIS_URL", "SLACK_BOT_TOKEN", "ALERTS_NOTIFY_INTERVAL_SECONDS"])
    monkeypatch.setenv("REDIS_URL", "redis://env:6379/1")
    monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-env")
    monkeypatch.setenv("ALERTS_NOTIFY_INTERVAL_SECONDS", "30")
    _use_paths(
        monkeypatch,
        tmp_path / "missing-default.yml",
        [tmp_path / "missing-user.yml"],
        [tmp_path / "missing-secrets.yml"],
    )

    settings = config_module.Settings()

    assert settings.redis.url == "redis://env:6379/1"
    assert settings.slack.bot_token == "xoxb-env"
    assert settings.alerts.notify_interval_seconds == 30
    assert settings.assistant.history_limit == 20
    assert settings.assistant.default_snooze_minutes == 10


def test_non_mapping_yaml_raises(monkeypatch, tmp_path):
    """Non-mapping YAML raises a validation error."""
    defaults = tmp_path / "defaults.yml"
    defaults.write_text("- just\n- a\n- list\n", encoding="utf-8")
    _use_paths(monkeypatch, defaults)

    with pytest.raises(ValueError, match="Config file must contain a mapping"):
        config_module.Settings()


def test_unknown_provider_is_rejected(monkeypatch, tmp_path):
    """Only registered completion providers are accepted."""
    monkeypatch.setenv("AI_PROVIDER", "carrier-pigeon")
    _use_paths(monkeypatch, tmp_path / "missing.yml")

    with pytest.raises(ValidationError, match="llm.provider must be one of"):
        config_module.Settings()


def test_provider_is_normalized(monkeypatch, tmp_path):
    monkeypatch.setenv("AI_PROVIDER", "  Gemini ")
    _use_paths(monkeypatch, tmp_path / "missing.yml")

    assert config_module.Settings().llm.provider == "gemini"


def test_invalid_timezone_is_rejected(monkeypatch, tmp_path):
    monkeypatch.setenv("USER_TIMEZONE", "Mars/Olympus_Mons")
    _use_paths(monkeypatch, tmp_path / "missing.yml")

    with pytest.raises(ValidationError, match="Invalid timezone"):
        config_module.Settings()


def test_history_limit_must_keep_a_turn(monkeypatch, tmp_path):
    defaults = tmp_path / "defaults.yml"
    defaults.write_text("assistant:\n  history_limit: 0\n", encoding="utf-8")
    _use_paths(monkeypatch, defaults)

    with pytest.raises(ValidationError, match="history_limit"):
        config_module.Settings()


@pytest.mark.parametrize(
    ("raw", "kind", "expected"),
    [
        ("45", "int", 45),
        ("Yes", "bool", True),
        ("0", "bool", False),
        ('{"a": 1}', "str", '{"a": 1}'),
    ],
)
def test_env_values_are_coerced_by_kind(raw, kind, expected):
    assert config_module._parse_env_value(raw, kind) == expected
