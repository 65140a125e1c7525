"""Tests for message and stream event types."""

import dataclasses
from datetime import datetime

import pytest

from sightedit.types import (
    Message,
    ParseResult,
    Provider,
    ProviderError,
    Role,
    Stop,
    TextDelta,
    create_message,
)


class TestMessage:
    def test_create_message_defaults(self):
        m = create_message(Role.USER, "hello")
        assert m.role is Role.USER
        assert m.content == "hello"
        assert isinstance(m.timestamp, datetime)
        assert m.timestamp.tzinfo is not None
        assert dict(m.metadata) == {}

    def test_provider_and_model_in_metadata(self):
        m = create_message("assistant", "hi", {"tokens": 3}, provider="claude", model="c-1")
        assert m.role is Role.ASSISTANT
        assert dict(m.metadata) == {"provider": "claude", "model": "c-1", "tokens": 3}

    def test_immutable(self):
        m = create_message(Role.USER, "x", {"a": 1})
        with pytest.raises(dataclasses.FrozenInstanceError):
            m.content = "y"  # type: ignore[misc]
        with pytest.raises(TypeError):
            m.metadata["a"] = 2  # type: ignore[index]

    def test_metadata_copied(self):
        meta = {"a": 1}
        m = Message(role=Role.USER, content="x", metadata=meta)
        meta["a"] = 2
        assert m.metadata["a"] == 1

    def test_hashable_despite_metadata(self):
        m = create_message(Role.USER, "x", {"a": 1}, provider="gemini")
        twin = Message(role=m.role, content=m.content, timestamp=m.timestamp,
                       metadata={"a": 1, "provider": "gemini"})
        assert m == twin
        assert hash(m) == hash(twin)
        assert len({m, twin}) == 1

    def test_invalid_role(self):
        with pytest.raises(ValueError):
            create_message("robot", "x")


class TestParseResult:
    def test_text_joins_deltas_only(self):
        result = ParseResult(events=[TextDelta("a"), Stop(), TextDelta("b"), ProviderError("x")])
        assert result.text == "ab"

    def test_events_compare_by_value(self):
        assert TextDelta("a") == TextDelta("a")
        assert Stop() == Stop()
        assert ProviderError("x") != ProviderError("y")


def test_provider_values():
    assert Provider("gemini") is Provider.GEMINI
    assert Provider.CLAUDE.value == "claude"
