from __future__ import annotations

import pytest

from cat_chat.database import Database, create_from_config


class RecordingConnector:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[str, int]] = []

    def __call__(self, uri: str, timeout_ms: int):
        self.calls.append((uri, timeout_ms))
        if self.error:
            raise self.error
        return object()


def test_unconfigured_uri_stays_in_memory():
    connector = RecordingConnector()
    db = Database("", connector=connector)
    assert db.connect() is False
    assert db.backend == "memory"
    assert connector.calls == []


def test_successful_connect_sets_flag():
    connector = RecordingConnector()
    db = Database("mongodb://localhost:27017/catchat", timeout_ms=1234, connector=connector)
    assert db.connect() is True
    assert db.connected is True
    assert db.backend == "mongodb"
    assert connector.calls == [("mongodb://localhost:27017/catchat", 1234)]


def test_failed_connect_is_absorbed():
    connector = RecordingConnector(error=ConnectionError("refused"))
    db = Database("mongodb+srv://cluster.example/catchat", connector=connector)
    assert db.connect() is False
    assert db.status() == {"backend": "memory", "connected": False, "error": "refused"}


def test_connect_is_attempted_once():
    connector = RecordingConnector(error=TimeoutError("slow"))
    db = Database("mongodb://db/catchat", connector=connector)
    db.connect()
    db.connect()
    assert len(connector.calls) == 1


def test_create_from_config_prefers_env(monkeypatch: pytest.MonkeyPatch):
    cfg = {"database": {"uri": "mongodb://fromfile/x", "uri_env": "MONGODB_URI", "timeout_ms": 200}}
    assert create_from_config(cfg).uri == "mongodb://fromfile/x"

    monkeypatch.setenv("MONGODB_URI", "mongodb://fromenv/x")
    db = create_from_config(cfg)
    assert db.uri == "mongodb://fromenv/x"
    assert db.timeout_ms == 200
