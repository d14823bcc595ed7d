"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

import pytest
import yaml

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in ["CAT_CHAT_CONFIG", "OPENAI_API_KEY", "MONGODB_URI", "HOST", "PORT", "LOG_LEVEL"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("CAT_CHAT__"):
            monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Minimal config with demo seeding and mock delay off."""
    cfg = {
        "server": {"environment": "test", "port": 3000},
        "store": {"ceiling": 100, "floor": 50, "seed_demo": False},
        "ai": {"mock_delay": 0.0},
        "database": {"uri": ""},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


class StepClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def step_clock() -> Iterator[StepClock]:
    yield StepClock()
