"""Optional database capability: one connection attempt, then a status flag.

Messages always live in :class:`~cat_chat.store.MessageStore`; the database
only reports whether a MongoDB deployment was reachable at startup.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from .config import secret
from .errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

Connector = Callable[[str, int], Any]


def mongo_connector(uri: str, timeout_ms: int) -> Any:
    """Open a pymongo client and ping the server; return the client."""
    from pymongo import MongoClient

    client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
    client.admin.command("ping")
    return client


class Database:
    """Best-effort database handle.

    ``connect()`` is meant to be called once at process start. It never
    raises for an unreachable server; it records the failure and leaves the
    backend on ``"memory"``.
    """

    def __init__(self, uri: Optional[str], *, timeout_ms: int = 5000, connector: Optional[Connector] = None) -> None:
        self.uri = (uri or "").strip()
        self.timeout_ms = timeout_ms
        self._connector = connector or mongo_connector
        self.client: Any = None
        self.connected = False
        self.last_error: Optional[str] = None
        self._attempted = False

    @property
    def configured(self) -> bool:
        return self.uri.startswith(("mongodb://", "mongodb+srv://"))

    @property
    def backend(self) -> str:
        return "mongodb" if self.connected else "memory"

    def connect(self) -> bool:
        if self._attempted:
            return self.connected
        self._attempted = True

        if not self.configured:
            logger.info("No database configured; using in-memory store.")
            return False
        try:
            self.client = self._try_connect()
        except CollaboratorUnavailable as e:
            self.last_error = e.reason
            logger.warning("Using in-memory database (%s)", e.reason)
            return False
        self.connected = True
        logger.info("Connected to MongoDB")
        return True

    def _try_connect(self) -> Any:
        try:
            return self._connector(self.uri, self.timeout_ms)
        except Exception as e:
            raise CollaboratorUnavailable("mongodb", str(e)) from e

    def status(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "connected": self.connected,
            "error": self.last_error,
        }


def create_from_config(cfg: Dict[str, Any]) -> Database:
    db_cfg = (cfg or {}).get("database", {})
    uri = secret(cfg, "database", "uri_env") or db_cfg.get("uri") or ""
    return Database(uri, timeout_ms=int(db_cfg.get("timeout_ms", 5000)))
