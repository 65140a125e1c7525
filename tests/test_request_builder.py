"""Tests for provider request construction."""

import pytest

from sightedit.llm.request_builder import (
    ANTHROPIC_VERSION,
    build_claude_request,
    build_gemini_request,
    build_request,
)
from sightedit.types import Provider, Role, create_message


@pytest.fixture
def conversation():
    return [
        create_message(Role.SYSTEM, "You are a careful editor."),
        create_message(Role.USER, "Fix this sentence."),
        create_message(Role.ASSISTANT, "Which one?"),
        create_message(Role.USER, "The first."),
    ]


class TestGeminiRequest:
    def test_url_and_headers(self, conversation):
        req = build_gemini_request(conversation, "gemini-2.5-pro", "g-key")
        assert req.provider is Provider.GEMINI
        assert req.url == (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "gemini-2.5-pro:streamGenerateContent?alt=sse"
        )
        assert req.headers["x-goog-api-key"] == "g-key"
        assert "g-key" not in req.url

    def test_roles_mapped(self, conversation):
        body = build_gemini_request(conversation, "m", "k").body
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
        assert body["contents"][1]["parts"] == [{"text": "Which one?"}]

    def test_system_instruction(self, conversation):
        body = build_gemini_request(conversation, "m", "k").body
        assert body["systemInstruction"] == {"parts": [{"text": "You are a careful editor."}]}

    def test_no_system_instruction_without_system_messages(self):
        body = build_gemini_request([create_message("user", "hi")], "m", "k").body
        assert "systemInstruction" not in body

    def test_generation_config(self):
        body = build_gemini_request(
            [create_message("user", "hi")], "m", "k", max_tokens=1024, temperature=0.2,
        ).body
        assert body["generationConfig"] == {
            "temperature": 0.2,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 1024,
        }

    def test_base_url_trailing_slash(self):
        req = build_gemini_request([], "m", "k", base_url="http://proxy.local/v1beta/")
        assert req.url == "http://proxy.local/v1beta/models/m:streamGenerateContent?alt=sse"


class TestClaudeRequest:
    def test_url_and_headers(self, conversation):
        req = build_claude_request(conversation, "claude-3-5-sonnet-20241022", "c-key")
        assert req.provider is Provider.CLAUDE
        assert req.url == "https://api.anthropic.com/v1/messages"
        assert req.headers["x-api-key"] == "c-key"
        assert req.headers["anthropic-version"] == ANTHROPIC_VERSION == "2023-06-01"

    def test_body(self, conversation):
        body = build_claude_request(
            conversation, "claude-3-haiku-20240307", "k", max_tokens=4096,
        ).body
        assert body["model"] == "claude-3-haiku-20240307"
        assert body["max_tokens"] == 4096
        assert body["stream"] is True
        assert body["system"] == "You are a careful editor."
        assert body["messages"] == [
            {"role": "user", "content": "Fix this sentence."},
            {"role": "assistant", "content": "Which one?"},
            {"role": "user", "content": "The first."},
        ]

    def test_no_system_key_without_system_messages(self):
        body = build_claude_request([create_message("user", "hi")], "m", "k").body
        assert "system" not in body


class TestDispatch:
    def test_build_request_by_name(self, conversation):
        assert build_request("gemini", conversation, "m", "k").provider is Provider.GEMINI
        assert build_request(Provider.CLAUDE, conversation, "m", "k").provider is Provider.CLAUDE

    def test_unknown_provider(self, conversation):
        with pytest.raises(ValueError):
            build_request("openai", conversation, "m", "k")
