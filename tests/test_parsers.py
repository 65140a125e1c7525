"""Tests for the Gemini and Claude frame parsers."""

from __future__ import annotations

import json

import pytest

from sightedit.llm.parsers import ClaudeParser, GeminiParser, parser_for
from sightedit.types import Provider, ProviderError, Stop, TextDelta


def _gemini_line(text: str) -> str:
    payload = {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _claude_frame(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


def _claude_delta(text: str) -> str:
    return _claude_frame("content_block_delta", {
        "type": "content_block_delta",
        "index": 0,
        "delta": {"type": "text_delta", "text": text},
    })


def _feed_in_pieces(parser, pieces: list[str]):
    events = []
    remainder = ""
    for piece in pieces:
        result = parser.feed(remainder + piece)
        events.extend(result.events)
        remainder = result.remainder
    return events, remainder


GEMINI_STREAM = (
    _gemini_line("Hel")
    + _gemini_line("lo, ")
    + ": keep-alive\n"
    + "data: {not json}\n"
    + _gemini_line("wörld 🌍")
    + "data: [DONE]\n"
)

CLAUDE_STREAM = (
    _claude_frame("message_start", {"type": "message_start", "message": {"id": "m1"}})
    + _claude_frame("content_block_start", {"type": "content_block_start", "index": 0})
    + _claude_frame("ping", {"type": "ping"})
    + _claude_delta("Hello")
    + _claude_delta(" wörld 🌍")
    + _claude_frame("content_block_stop", {"type": "content_block_stop", "index": 0})
    + _claude_frame("message_stop", {"type": "message_stop"})
)


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

class TestGeminiParser:
    def test_complete_lines(self):
        result = GeminiParser().feed(_gemini_line("Hello") + _gemini_line(" World"))
        assert result.events == [TextDelta("Hello"), TextDelta(" World")]
        assert result.remainder == ""

    def test_partial_last_line_is_remainder(self):
        line = _gemini_line("Hello")
        buffer = line + line[:20]
        result = GeminiParser().feed(buffer)
        assert result.events == [TextDelta("Hello")]
        assert result.remainder == line[:20]
        assert buffer.endswith(result.remainder)

    def test_done_sentinel_emits_nothing(self):
        result = GeminiParser().feed("data: [DONE]\n")
        assert result.events == []

    def test_malformed_json_is_skipped(self):
        result = GeminiParser().feed("data: {broken\n" + _gemini_line("ok"))
        assert result.events == [TextDelta("ok")]

    def test_non_data_lines_ignored(self):
        result = GeminiParser().feed(": comment\nevent: whatever\n\n" + _gemini_line("x"))
        assert result.events == [TextDelta("x")]

    def test_multiple_parts_joined_into_one_delta(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        result = GeminiParser().feed(f"data: {json.dumps(payload)}\n")
        assert result.events == [TextDelta("ab")]

    def test_payload_without_text(self):
        payload = {"candidates": [{"finishReason": "STOP"}], "usageMetadata": {}}
        result = GeminiParser().feed(f"data: {json.dumps(payload)}\n")
        assert result.events == []

    def test_crlf_line_endings(self):
        result = GeminiParser().feed(_gemini_line("Hi").replace("\n", "\r\n"))
        assert result.events == [TextDelta("Hi")]

    def test_in_body_error(self):
        payload = {"error": {"code": 503, "message": "The model is overloaded."}}
        result = GeminiParser().feed(f"data: {json.dumps(payload)}\n")
        assert result.events == [ProviderError("The model is overloaded.")]

    def test_example_scenario(self):
        chunks = [
            'data: {"candidates":[{"content":{"parts":[{"text":"Hel',
            'lo"}]}}]}\n\n',
            "data: [DONE]\n",
        ]
        events, remainder = _feed_in_pieces(GeminiParser(), chunks)
        assert events == [TextDelta("Hello")]
        assert remainder == ""


# ---------------------------------------------------------------------------
# Claude
# ---------------------------------------------------------------------------

class TestClaudeParser:
    def test_parses_delta_frames(self):
        result = ClaudeParser().feed(_claude_delta("Hello") + _claude_delta(" World"))
        assert result.events == [TextDelta("Hello"), TextDelta(" World")]
        assert result.remainder == ""

    def test_incomplete_frame_retained_verbatim(self):
        pending = 'event: content_block_delta\ndata: {"type":"content_block_delta","delta":{"text":"x"}}\n'
        result = ClaudeParser().feed(_claude_delta("Hello") + pending)
        assert result.events == [TextDelta("Hello")]
        assert result.remainder == pending

    def test_event_line_without_data_yet(self):
        result = ClaudeParser().feed(_claude_delta("Hello") + "event: content_block_delta")
        assert result.events == [TextDelta("Hello")]
        assert result.remainder == "event: content_block_delta"

    def test_message_stop(self):
        result = ClaudeParser().feed(_claude_frame("message_stop", {"type": "message_stop"}))
        assert result.events == [Stop()]

    def test_error_event(self):
        frame = _claude_frame("error", {
            "type": "error",
            "error": {"type": "overloaded_error", "message": "Overloaded"},
        })
        assert ClaudeParser().feed(frame).events == [ProviderError("Overloaded")]

    def test_error_event_without_message(self):
        result = ClaudeParser().feed("event: error\ndata: {}\n\n")
        assert result.events == [ProviderError("{}")]

    def test_other_events_ignored(self):
        result = ClaudeParser().feed(
            _claude_frame("ping", {"type": "ping"})
            + _claude_frame("message_delta", {"type": "message_delta", "delta": {"stop_reason": "end_turn"}})
        )
        assert result.events == []

    def test_type_field_used_when_event_line_missing(self):
        data = {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "hi"}}
        result = ClaudeParser().feed(f"data: {json.dumps(data)}\n\n")
        assert result.events == [TextDelta("hi")]

    def test_malformed_data_skipped(self):
        result = ClaudeParser().feed(
            "event: content_block_delta\ndata: {oops\n\n" + _claude_delta("ok"),
        )
        assert result.events == [TextDelta("ok")]

    def test_non_text_delta_ignored(self):
        frame = _claude_frame("content_block_delta", {
            "type": "content_block_delta",
            "delta": {"type": "input_json_delta", "partial_json": "{\"a\""},
        })
        assert ClaudeParser().feed(frame).events == []

    def test_crlf_frames(self):
        result = ClaudeParser().feed(_claude_delta("Hi").replace("\n", "\r\n"))
        assert result.events == [TextDelta("Hi")]

    def test_comment_lines_ignored(self):
        result = ClaudeParser().feed(": heartbeat\n\n" + _claude_delta("x"))
        assert result.events == [TextDelta("x")]


# ---------------------------------------------------------------------------
# Resumability: any split gives the one-shot result
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "parser_cls, stream, text",
    [
        (GeminiParser, GEMINI_STREAM, "Hello, wörld 🌍"),
        (ClaudeParser, CLAUDE_STREAM, "Hello wörld 🌍"),
    ],
    ids=["gemini", "claude"],
)
class TestResumability:
    def test_every_single_split_point(self, parser_cls, stream, text):
        expected = parser_cls().feed(stream).events
        assert expected  # sanity
        for i in range(len(stream) + 1):
            events, _ = _feed_in_pieces(parser_cls(), [stream[:i], stream[i:]])
            assert events == expected, f"split at {i}"

    def test_character_by_character(self, parser_cls, stream, text):
        expected = parser_cls().feed(stream).events
        events, remainder = _feed_in_pieces(parser_cls(), list(stream))
        assert events == expected
        assert remainder == ""

    def test_no_loss_or_duplication(self, parser_cls, stream, text):
        pieces = [stream[i:i + 7] for i in range(0, len(stream), 7)]
        events, _ = _feed_in_pieces(parser_cls(), pieces)
        joined = "".join(e.text for e in events if isinstance(e, TextDelta))
        assert joined == text


class TestParserFor:
    def test_selects_variant(self):
        assert isinstance(parser_for(Provider.GEMINI), GeminiParser)
        assert isinstance(parser_for("claude"), ClaudeParser)

    def test_fresh_instance_per_call(self):
        assert parser_for("gemini") is not parser_for("gemini")

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            parser_for("openai")
