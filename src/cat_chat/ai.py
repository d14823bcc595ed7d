"""AI chat replies: OpenAI when configured, deterministic canned replies otherwise."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from .config import secret
from .errors import CollaboratorUnavailable

if TYPE_CHECKING:
    from openai import OpenAI

logger = logging.getLogger(__name__)


# -----------------------------
# Canned replies
# -----------------------------

PERSONALITIES = ("friendly", "professional", "witty", "supportive", "default")

_CANNED: Dict[str, str] = {
    "friendly": "😊 Hello! \"{text}\" is interesting! As your friendly AI, I'm here to help any time.",
    "professional": "📊 Analysis: \"{text}\" presents several considerations worth discussing.",
    "witty": "😼 Meow! \"{text}\"? Purr-fect topic for our always-on chat!",
    "supportive": "🤗 I appreciate you sharing \"{text}\". I'm here for you.",
    "default": "🐱 I'm your CAT CHAT assistant! Regarding \"{text}\", that's an excellent topic to chat about!",
}


def normalize_personality(personality: Optional[str]) -> str:
    p = (personality or "").strip().lower()
    return p if p in _CANNED else "default"


def canned_reply(text: str, personality: Optional[str] = None) -> str:
    """Deterministic fallback reply keyed by personality."""
    return _CANNED[normalize_personality(personality)].format(text=text)


def _clean_context(context: Optional[Sequence[Any]]) -> List[Dict[str, str]]:
    """Keep only well-formed {role, content} entries."""
    out: List[Dict[str, str]] = []
    for item in context or []:
        if not isinstance(item, dict):
            continue
        role = str(item.get("role") or "").strip()
        content = item.get("content")
        if role not in {"system", "user", "assistant"} or not isinstance(content, str):
            continue
        out.append({"role": role, "content": content})
    return out


@dataclass
class AIReply:
    response: str
    personality: str
    real_ai: bool
    source: str
    model: Optional[str] = None
    tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "response": self.response,
            "personality": self.personality,
            "realAI": self.real_ai,
            "source": self.source,
        }
        if self.model:
            data["model"] = self.model
            data["tokens"] = self.tokens
        return data


# -----------------------------
# OpenAI wrapper
# -----------------------------

class OpenAIReplier:
    """Thin wrapper around the :mod:`openai` chat completions API."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.7,
        max_tokens: int = 200,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client: Optional[OpenAI] = None

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def build_messages(
        self, text: str, personality: str, context: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, str]]:
        msgs: List[Dict[str, str]] = [
            {"role": "system", "content": f"You are a {personality} AI assistant in the CAT CHAT app."}
        ]
        msgs.extend(_clean_context(context))
        msgs.append({"role": "user", "content": text})
        return msgs

    def reply(self, text: str, personality: str, context: Optional[Sequence[Any]] = None) -> AIReply:
        """Ask the completion API for a reply.

        Raises :class:`CollaboratorUnavailable` when no key is configured or
        the request fails for any reason.
        """
        if not self.available:
            raise CollaboratorUnavailable("openai", "no API key configured")
        try:
            completion = self._get_client().chat.completions.create(
                model=self.model,
                messages=self.build_messages(text, personality, context),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
            content = completion.choices[0].message.content or ""
        except Exception as e:
            raise CollaboratorUnavailable("openai", str(e)) from e
        if not content.strip():
            raise CollaboratorUnavailable("openai", "empty completion")

        usage = getattr(completion, "usage", None)
        return AIReply(
            response=content,
            personality=personality,
            real_ai=True,
            source="openai",
            model=self.model,
            tokens=int(getattr(usage, "total_tokens", 0) or 0),
        )


# -----------------------------
# Reply service
# -----------------------------

class ReplyService:
    """Produce a reply, absorbing collaborator failures with a canned answer."""

    def __init__(self, replier: Optional[OpenAIReplier] = None, *, mock_delay: float = 0.0) -> None:
        self.replier = replier
        self.mock_delay = max(0.0, float(mock_delay))

    @property
    def real_ai_enabled(self) -> bool:
        return self.replier is not None and self.replier.available

    def reply(self, text: str, personality: Optional[str] = None, context: Optional[Sequence[Any]] = None) -> AIReply:
        persona = normalize_personality(personality)
        if self.replier is not None:
            try:
                return self.replier.reply(text, persona, context)
            except CollaboratorUnavailable as e:
                logger.warning("AI collaborator unavailable, using canned reply: %s", e.reason)

        if self.mock_delay:
            time.sleep(self.mock_delay)
        return AIReply(
            response=canned_reply(text, persona),
            personality=persona,
            real_ai=False,
            source="mock",
        )


def create_from_config(cfg: Dict[str, Any]) -> ReplyService:
    """Create a ReplyService from a config dict (e.g., loaded YAML)."""
    ai_cfg = (cfg or {}).get("ai", {}) if isinstance(cfg, dict) else {}
    api_key = secret(cfg, "ai", "api_key_env")
    replier = OpenAIReplier(
        api_key,
        model=str(ai_cfg.get("model", "gpt-3.5-turbo")),
        temperature=float(ai_cfg.get("temperature", 0.7)),
        max_tokens=int(ai_cfg.get("max_tokens", 200)),
    )
    if not replier.available:
        logger.info("No AI key configured; replies will be canned.")
    return ReplyService(replier, mock_delay=float(ai_cfg.get("mock_delay", 0.0)))
