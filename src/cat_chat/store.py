"""In-memory chat message store with bounded growth (thread-safe)."""
from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import ValidationError
from .models import ChatSummary, Message


Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Welcome messages shown on a fresh start.
DEMO_MESSAGES: List[Dict[str, str]] = [
    {"chat_id": "general", "text": "Welcome to CAT CHAT!", "sender": "system"},
    {"chat_id": "general", "text": "Backend is up and running.", "sender": "system"},
    {
        "chat_id": "ai",
        "text": "Hello! I am your AI assistant. How can I help you today?",
        "sender": "ai",
    },
]


@dataclass
class RetentionPolicy:
    """Controls how the message list is trimmed."""
    ceiling: int = 100   # trimming fires once the list grows past this
    floor: int = 50      # number of most recent messages kept after trimming

    def __post_init__(self) -> None:
        if self.ceiling <= 0 or self.floor <= 0:
            raise ValueError("ceiling and floor must be positive")
        if self.floor > self.ceiling:
            raise ValueError(f"floor ({self.floor}) must not exceed ceiling ({self.ceiling})")


# -----------------------------
# MessageStore
# -----------------------------
class MessageStore:
    """Insertion-ordered list of chat messages shared by every chat.

    Chats are not stored; they are computed from the ``chat_id`` of the
    messages on every query. Growth is bounded by :class:`RetentionPolicy`:
    when an append takes the list past ``ceiling`` the oldest messages are
    dropped in bulk down to ``floor``. From then on the store holds at most
    ``floor`` messages, sliding the window forward as new ones arrive, so
    any run of N > ``ceiling`` appends retains exactly the last ``floor``
    (105 appends at 100/50 keep messages 56-105). The cost is one
    O(``floor``) slice per append once trimming has started, instead of a
    single bulk drop every ``ceiling - floor`` appends.

    All operations hold a single re-entrant lock. Queries return copies, and
    trimming swaps the list in one assignment, so readers never see a
    partially trimmed list.
    """

    def __init__(
        self,
        *,
        ceiling: int = 100,
        floor: int = 50,
        annotations: Optional[Mapping[str, Any]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.policy = RetentionPolicy(ceiling=ceiling, floor=floor)
        self.annotations: Dict[str, Any] = dict(annotations or {})
        self._clock = clock or _utc_now
        self._messages: List[Message] = []
        self._ids = itertools.count(1)
        self._last_ts: Optional[datetime] = None
        self._trimmed = False
        self._lock = threading.RLock()

    # --------- core API ----------
    def append(
        self,
        chat_id: str,
        text: str,
        sender: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Message:
        """Create a message at the end of the list and trim if needed.

        Raises :class:`ValidationError` (without touching the store) when
        ``text`` is empty after stripping or ``chat_id`` is blank.
        """
        clean_text = str(text or "").strip()
        if not clean_text:
            raise ValidationError("text", "Message cannot be empty")
        if not isinstance(chat_id, str) or not chat_id.strip():
            raise ValidationError("chatId", "Chat id cannot be empty")

        # Store annotations first so caller keys win.
        merged: Dict[str, Any] = dict(self.annotations)
        merged.update(metadata or {})

        with self._lock:
            message = Message(
                id=f"msg_{next(self._ids):08d}",
                chat_id=chat_id,
                text=clean_text,
                sender=sender or "user",
                timestamp=self._next_timestamp(),
                metadata=merged,
                reactions=[],
                status="sent",
            )
            self._messages.append(message)
            self._trim_if_needed()
            return message

    def list_by_chat(self, chat_id: str) -> List[Message]:
        """Return the messages of ``chat_id`` in insertion order (may be empty)."""
        with self._lock:
            return [m for m in self._messages if m.chat_id == chat_id]

    def summarize_chats(
        self,
        chat_ids: Iterable[str],
        placeholder: str = "Start chatting!",
        placeholders: Optional[Mapping[str, str]] = None,
    ) -> List[ChatSummary]:
        """Summarize each of ``chat_ids``, in the order given.

        Empty chats report ``placeholder`` (or their entry in
        ``placeholders``) as last message and the summary's own creation
        time as last update.
        """
        placeholders = placeholders or {}
        with self._lock:
            snapshot = list(self._messages)
        now = self._clock()

        counts: Dict[str, int] = {}
        last: Dict[str, Message] = {}
        for m in snapshot:
            counts[m.chat_id] = counts.get(m.chat_id, 0) + 1
            last[m.chat_id] = m

        out: List[ChatSummary] = []
        for chat_id in chat_ids:
            latest = last.get(chat_id)
            if latest is None:
                out.append(ChatSummary(
                    chat_id=chat_id,
                    message_count=0,
                    last_message=placeholders.get(chat_id, placeholder),
                    last_updated=now,
                ))
                continue
            out.append(ChatSummary(
                chat_id=chat_id,
                message_count=counts[chat_id],
                last_message=latest.text,
                last_updated=latest.timestamp,
            ))
        return out

    # --------- convenience ----------
    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def messages(self) -> List[Message]:
        """Snapshot of every retained message, oldest first."""
        with self._lock:
            return list(self._messages)

    def last_message(self) -> Optional[Message]:
        with self._lock:
            return self._messages[-1] if self._messages else None

    def chat_ids(self) -> List[str]:
        """Distinct chat ids in order of first appearance."""
        with self._lock:
            seen: Dict[str, None] = {}
            for m in self._messages:
                seen.setdefault(m.chat_id, None)
            return list(seen)

    def clear(self) -> None:
        with self._lock:
            self._messages = []
            self._trimmed = False

    def seed(self, entries: Sequence[Mapping[str, Any]]) -> List[Message]:
        """Append a batch of ``{chat_id, text, sender?, metadata?}`` entries."""
        with self._lock:
            return [
                self.append(
                    e["chat_id"],
                    e["text"],
                    sender=e.get("sender"),
                    metadata=e.get("metadata"),
                )
                for e in entries
            ]

    def seed_demo(self) -> List[Message]:
        return self.seed(DEMO_MESSAGES)

    # --------- internals ----------
    def _next_timestamp(self) -> datetime:
        ts = self._clock()
        if self._last_ts is not None and ts < self._last_ts:
            ts = self._last_ts
        self._last_ts = ts
        return ts

    def _trim_if_needed(self) -> None:
        p = self.policy
        n = len(self._messages)
        if n > p.ceiling:
            self._trimmed = True
        if self._trimmed and n > p.floor:
            self._messages = self._messages[-p.floor:]
