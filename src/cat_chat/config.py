"""Configuration loading utilities for the CAT CHAT backend.

This module handles layered configuration:
1. Built-in defaults (lowest precedence)
2. YAML file: explicit path argument, else environment variable
   CAT_CHAT_CONFIG, else "config/default.yaml"
3. Environment overrides with prefix ``CAT_CHAT__`` (highest precedence),
   e.g. CAT_CHAT__STORE__CEILING=200

Secrets are never kept in the YAML file. The ``ai.api_key_env`` and
``database.uri_env`` keys name the environment variables they are read from.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .models import ChatDescriptor

logger = logging.getLogger(__name__)

ENV_PREFIX = "CAT_CHAT__"

DEFAULTS: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
        "environment": "development",
        "version": "2.0.0",
        "service_name": "CAT CHAT Backend",
        "cors_origins": ["*"],
    },
    "store": {
        "ceiling": 100,
        "floor": 50,
        "seed_demo": True,
        "placeholder": "Start chatting!",
    },
    "ai": {
        "model": "gpt-3.5-turbo",
        "temperature": 0.7,
        "max_tokens": 200,
        "mock_delay": 0.0,
        "api_key_env": "OPENAI_API_KEY",
    },
    "database": {
        "uri": "",
        "uri_env": "MONGODB_URI",
        "timeout_ms": 5000,
    },
    "auth": {
        "email_domain": "catchat.local",
    },
    "deployment": {
        "platform": "local",
        "service": "cat-chat-backend",
        "region": "unknown",
        "service_id": "local",
        "deployment_id": "latest",
        "url": "http://localhost:3000",
    },
    "chats": [
        {"id": "general", "name": "General Chat", "type": "group", "icon": "💬",
         "placeholder": "Start chatting!"},
        {"id": "ai", "name": "AI Assistant", "type": "ai", "icon": "🤖",
         "placeholder": "How can I assist you today?", "participants": 1},
        {"id": "support", "name": "Support", "type": "channel", "icon": "🛠️",
         "placeholder": "Need help?", "participants": 3},
    ],
    "settings": {
        "theme": "dark",
        "aiPersonality": "default",
        "features": {
            "realTime": True,
            "encryption": True,
            "backups": True,
            "monitoring": True,
        },
    },
}


def _coerce(value: str) -> Any:
    # Attempt to parse simple types (bool, int, float)
    if value.lower() in {"true", "false"}:
        return value.lower() == "true"
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix CAT_CHAT__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., CAT_CHAT__STORE__CEILING -> cfg["store"]["ceiling"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        sub[parts[-1]] = _coerce(value)
    return cfg


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration for the backend.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``CAT_CHAT_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Defaults merged with the file contents, with environment overrides
        applied.
    """
    cfg = copy.deepcopy(DEFAULTS)

    if path is None:
        path = os.environ.get("CAT_CHAT_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        return _apply_env_overrides(cfg)

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse config file {path_obj}: {e}")

    if not isinstance(loaded, dict):
        raise RuntimeError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(deep_merge(cfg, loaded))


def secret(cfg: Dict[str, Any], section: str, env_key: str) -> Optional[str]:
    """Read the secret whose environment variable name is ``cfg[section][env_key]``."""
    var = (cfg.get(section) or {}).get(env_key)
    if not var:
        return None
    return os.environ.get(str(var)) or None


def chat_descriptors(cfg: Dict[str, Any]) -> List[ChatDescriptor]:
    return [ChatDescriptor.from_dict(raw) for raw in cfg.get("chats") or []]
