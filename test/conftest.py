"""Pytest configuration for the aide test suite."""

import os
import sys
from pathlib import Path


def _ensure_test_env() -> None:
    """Seed environment variables so settings load without external services."""
    os.environ.setdefault("AI_PROVIDER", "litellm")
    os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
    os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
    os.environ.setdefault("USER_TIMEZONE", "UTC")
    os.environ.setdefault("LOG_JSON", "false")


_ensure_test_env()

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
TEST = ROOT / "test"
sys.path.insert(0, str(SRC))
sys.path.insert(0, str(TEST))
