"""Value types for messages, chats and chat summaries."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


def iso_utc(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Message:
    """A single chat message as held by :class:`~cat_chat.store.MessageStore`."""

    id: str
    chat_id: str
    text: str
    sender: str
    timestamp: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)
    reactions: List[Any] = field(default_factory=list)
    status: str = "sent"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "chatId": self.chat_id,
            "text": self.text,
            "sender": self.sender,
            "timestamp": iso_utc(self.timestamp),
            "metadata": dict(self.metadata),
            "reactions": list(self.reactions),
            "status": self.status,
        }


@dataclass(frozen=True)
class ChatSummary:
    """Aggregated view of one chat, computed on demand from the message list."""

    chat_id: str
    message_count: int
    last_message: str
    last_updated: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chatId": self.chat_id,
            "totalMessages": self.message_count,
            "lastMessage": self.last_message,
            "lastUpdated": iso_utc(self.last_updated),
        }


@dataclass(frozen=True)
class ChatDescriptor:
    """Externally supplied chat metadata (the store has no notion of chats)."""

    id: str
    name: str
    type: str = "group"
    icon: str = ""
    placeholder: str = "Start chatting!"
    participants: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ChatDescriptor":
        chat_id = str(raw.get("id") or "").strip()
        if not chat_id:
            raise ValueError(f"chat descriptor without id: {raw!r}")
        participants = raw.get("participants")
        return cls(
            id=chat_id,
            name=str(raw.get("name") or chat_id),
            type=str(raw.get("type") or "group"),
            icon=str(raw.get("icon") or ""),
            placeholder=str(raw.get("placeholder") or "Start chatting!"),
            participants=int(participants) if participants is not None else None,
        )
