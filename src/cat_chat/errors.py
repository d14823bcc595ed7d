"""Exception types shared by the store, collaborators and HTTP layer."""
from __future__ import annotations


class CatChatError(Exception):
    """Base class for all cat_chat errors."""


class ValidationError(CatChatError):
    """A required field was missing or empty.

    The store raises this and leaves its state untouched; the caller decides
    how to surface it (the HTTP layer answers with a 400).
    """

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class CollaboratorUnavailable(CatChatError):
    """An optional external service (AI completion, database) cannot be used."""

    def __init__(self, collaborator: str, reason: str) -> None:
        super().__init__(f"{collaborator} unavailable: {reason}")
        self.collaborator = collaborator
        self.reason = reason
