"""Demo authentication: any credentials log in, registrations live in memory."""
from __future__ import annotations

import itertools
import secrets
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


def _avatar(seed: str) -> str:
    return f"https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


def _default_settings() -> Dict[str, bool]:
    return {
        "notifications": True,
        "haptics": True,
        "translation": True,
        "incognito": False,
    }


@dataclass
class User:
    id: int
    username: str
    email: str
    display_name: str
    avatar: str
    theme: str = "dark"
    ai_personality: str = "friendly"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    settings: Dict[str, bool] = field(default_factory=_default_settings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "displayName": self.display_name,
            "avatar": self.avatar,
            "theme": self.theme,
            "aiPersonality": self.ai_personality,
            "createdAt": self.created_at.isoformat(),
            "settings": dict(self.settings),
        }


def issue_token(prefix: str = "catchat") -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_urlsafe(16)}"


class UserDirectory:
    """In-memory user list seeded with a single demo account."""

    def __init__(self, *, email_domain: str = "catchat.local") -> None:
        self.email_domain = email_domain
        self._ids = itertools.count(1)
        self._users: List[User] = []
        self._lock = threading.RLock()
        self._add("demouser", f"user@{email_domain}", "Demo User")

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def _add(self, username: str, email: str, display_name: str) -> User:
        with self._lock:
            user = User(
                id=next(self._ids),
                username=username,
                email=email,
                display_name=display_name,
                avatar=_avatar(username),
            )
            self._users.append(user)
            return user

    def register(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Tuple[User, str]:
        # Password is accepted for API compatibility and discarded.
        del password
        with self._lock:
            suffix = f"{int(time.time() * 1000)}{len(self._users)}"
            name = (username or "").strip() or f"user_{suffix}"
            mail = (email or "").strip() or f"{suffix}@{self.email_domain}"
            user = self._add(name, mail, (username or "").strip() or "CAT CHAT User")
        return user, issue_token()

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> Tuple[User, str]:
        """Accept any credentials and return the matching user, else the demo user."""
        del password
        with self._lock:
            user = next((u for u in self._users if username and u.username == username), self._users[0])
        return user, issue_token("catchat_token")
