"""CAT CHAT backend: in-memory chat store, demo auth and AI replies over FastAPI.

This package provides a FastAPI application factory named ``create_app``
inside ``cat_chat/server.py`` (see :func:`create_app`).

Typical usage
-------------
from cat_chat import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 0.0.0.0 --port 3000
"""

from __future__ import annotations

from .errors import CatChatError, CollaboratorUnavailable, ValidationError
from .models import ChatDescriptor, ChatSummary, Message
from .store import MessageStore

__all__ = [
    "create_app",
    "get_version",
    "__version__",
    "MessageStore",
    "Message",
    "ChatSummary",
    "ChatDescriptor",
    "CatChatError",
    "ValidationError",
    "CollaboratorUnavailable",
]

# ---------------------------------------------------------------------
# Version handling
# ---------------------------------------------------------------------
__version__ = "2.0.0"


def get_version() -> str:
    """Return the package version."""
    return __version__


def create_app(*args, **kwargs):
    """Return a configured FastAPI application.

    This forwards to :func:`cat_chat.server.create_app`; the import is
    deferred so the store can be used without the web stack loaded.
    """
    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)
