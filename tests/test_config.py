from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from cat_chat.config import DEFAULTS, chat_descriptors, load_config, secret


def test_missing_file_falls_back_to_defaults(tmp_path: Path):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg["store"] == DEFAULTS["store"]
    assert [c.id for c in chat_descriptors(cfg)] == ["general", "ai", "support"]


def test_file_values_merge_over_defaults(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text(yaml.safe_dump({"store": {"ceiling": 10}}), encoding="utf-8")

    cfg = load_config(str(path))
    assert cfg["store"]["ceiling"] == 10
    assert cfg["store"]["floor"] == 50  # untouched default
    assert cfg["ai"]["model"] == "gpt-3.5-turbo"


def test_env_var_selects_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "env.yaml"
    path.write_text(yaml.safe_dump({"server": {"environment": "staging"}}), encoding="utf-8")
    monkeypatch.setenv("CAT_CHAT_CONFIG", str(path))

    assert load_config()["server"]["environment"] == "staging"


def test_env_overrides_are_coerced(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CAT_CHAT__STORE__CEILING", "200")
    monkeypatch.setenv("CAT_CHAT__STORE__SEED_DEMO", "false")
    monkeypatch.setenv("CAT_CHAT__AI__TEMPERATURE", "0.2")
    monkeypatch.setenv("CAT_CHAT__DEPLOYMENT__REGION", "eu-west")

    cfg = load_config(str(tmp_path / "missing.yaml"))
    assert cfg["store"]["ceiling"] == 200
    assert cfg["store"]["seed_demo"] is False
    assert cfg["ai"]["temperature"] == 0.2
    assert cfg["deployment"]["region"] == "eu-west"


def test_defaults_are_not_mutated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CAT_CHAT__STORE__FLOOR", "5")
    load_config(str(tmp_path / "missing.yaml"))
    assert DEFAULTS["store"]["floor"] == 50


def test_invalid_yaml_raises(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("store: [unclosed", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_non_mapping_yaml_raises(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_secret_reads_named_env_var(monkeypatch: pytest.MonkeyPatch):
    cfg = {"ai": {"api_key_env": "MY_KEY"}}
    assert secret(cfg, "ai", "api_key_env") is None
    monkeypatch.setenv("MY_KEY", "sk-test")
    assert secret(cfg, "ai", "api_key_env") == "sk-test"


def test_shipped_default_config_loads(project_root: Path):
    cfg = load_config(str(project_root / "config" / "default.yaml"))
    assert cfg["store"]["ceiling"] > cfg["store"]["floor"]
    chats = chat_descriptors(cfg)
    assert {c.id for c in chats} == {"general", "ai", "support"}
    assert next(c for c in chats if c.id == "ai").participants == 1
