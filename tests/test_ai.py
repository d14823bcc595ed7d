from __future__ import annotations

from types import SimpleNamespace

import pytest

from cat_chat.ai import (
    PERSONALITIES,
    OpenAIReplier,
    ReplyService,
    canned_reply,
    create_from_config,
)
from cat_chat.errors import CollaboratorUnavailable


class FakeCompletions:
    def __init__(self, content: str = "real answer", error: Exception | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(total_tokens=42),
        )


def _replier_with(completions: FakeCompletions) -> OpenAIReplier:
    replier = OpenAIReplier("sk-test")
    replier._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return replier


@pytest.mark.parametrize("personality", PERSONALITIES)
def test_canned_reply_is_deterministic(personality):
    first = canned_reply("cats", personality)
    assert first == canned_reply("cats", personality)
    assert "cats" in first


def test_unknown_personality_maps_to_default():
    assert canned_reply("x", "grumpy") == canned_reply("x", "default")
    assert canned_reply("x", None) == canned_reply("x", "default")


def test_replier_without_key_is_unavailable():
    with pytest.raises(CollaboratorUnavailable):
        OpenAIReplier(None).reply("hi", "friendly")


def test_replier_builds_messages_with_context():
    completions = FakeCompletions()
    replier = _replier_with(completions)
    context = [
        {"role": "user", "content": "earlier"},
        {"role": "assistant", "content": "reply"},
        {"role": "bogus", "content": "dropped"},
        "not a dict",
    ]

    reply = replier.reply("now", "witty", context)

    assert reply.response == "real answer"
    assert reply.real_ai is True
    assert reply.tokens == 42
    sent = completions.calls[0]["messages"]
    assert sent[0]["role"] == "system" and "witty" in sent[0]["content"]
    assert sent[1:] == [
        {"role": "user", "content": "earlier"},
        {"role": "assistant", "content": "reply"},
        {"role": "user", "content": "now"},
    ]
    assert completions.calls[0]["max_tokens"] == 200


def test_service_falls_back_when_request_fails():
    service = ReplyService(_replier_with(FakeCompletions(error=RuntimeError("boom"))))
    reply = service.reply("hello", "supportive")
    assert reply.real_ai is False
    assert reply.source == "mock"
    assert reply.response == canned_reply("hello", "supportive")


def test_service_falls_back_without_key():
    service = ReplyService(OpenAIReplier(""))
    assert service.real_ai_enabled is False
    assert service.reply("hello", "professional").response == canned_reply("hello", "professional")


def test_service_uses_real_ai_when_available():
    service = ReplyService(_replier_with(FakeCompletions(content="from model")))
    data = service.reply("hello", "friendly").to_dict()
    assert data["response"] == "from model"
    assert data["realAI"] is True
    assert data["model"] == "gpt-3.5-turbo"


def test_empty_completion_counts_as_unavailable():
    service = ReplyService(_replier_with(FakeCompletions(content="   ")))
    assert service.reply("hello").real_ai is False


def test_create_from_config_reads_key_from_env(monkeypatch: pytest.MonkeyPatch):
    cfg = {"ai": {"api_key_env": "OPENAI_API_KEY", "model": "gpt-4o-mini", "mock_delay": 0}}
    assert create_from_config(cfg).real_ai_enabled is False

    monkeypatch.setenv("OPENAI_API_KEY", "sk-live")
    service = create_from_config(cfg)
    assert service.real_ai_enabled is True
    assert service.replier.model == "gpt-4o-mini"
