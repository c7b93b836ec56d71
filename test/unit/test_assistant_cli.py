"""Unit tests for the composition root and command-line entry point."""

from __future__ import annotations

import pytest

import assistant
from config import Settings


def _settings(tmp_path, **overrides) -> Settings:
    settings = Settings()
    return settings.model_copy(
        update={
            "database": settings.database.model_copy(
                update={"url": f"sqlite:///{tmp_path / 'cli.db'}"}
            ),
            **overrides,
        }
    )


def test_build_components_wires_shared_store(tmp_path) -> None:
    """One store instance backs the processor, flow manager and service."""
    components = assistant.build_components(_settings(tmp_path))

    assert components.completion.name == "litellm"
    assert components.processor._store is components.store
    assert components.flows._store is components.store
    assert components.conversations._processor is components.processor
    assert components.notifier._chat is None


def test_build_components_enables_slack_with_token(tmp_path) -> None:
    settings = _settings(tmp_path)
    settings = settings.model_copy(
        update={"slack": settings.slack.model_copy(update={"bot_token": "xoxb-test"})}
    )

    components = assistant.build_components(settings)

    assert components.notifier._chat is not None


def test_init_db_command_creates_tables(monkeypatch, tmp_path) -> None:
    database = tmp_path / "init.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{database}")
    monkeypatch.setattr(assistant, "configure_logging", lambda **kwargs: None)

    assert assistant.main(["init-db"]) == 0
    assert database.exists()


def test_chat_requires_channel_and_user() -> None:
    with pytest.raises(SystemExit):
        assistant.main(["chat", "--channel", "C1"])
