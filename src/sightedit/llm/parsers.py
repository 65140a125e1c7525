"""Incremental decoders for the providers' streaming wire formats.

Each parser turns a growing text buffer into :class:`StreamEvent` objects
plus an unconsumed remainder.  Parsers keep no state between calls: the
caller prepends the previous ``remainder`` to the next chunk, so feeding a
stream in any number of pieces yields the same events as feeding it whole.

* Gemini (``alt=sse``): one ``data: <json>`` line per frame.
* Claude: ``event:`` / ``data:`` line groups closed by a blank line.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from sightedit.types import (
    ParseResult,
    Provider,
    ProviderError,
    Stop,
    StreamEvent,
    TextDelta,
)

_logger = logging.getLogger(__name__)

_DATA_PREFIX = "data:"
_DONE_SENTINEL = "[DONE]"


class FrameParser(Protocol):
    """Contract shared by the provider decoders."""

    provider: Provider

    def feed(self, buffer: str) -> ParseResult:
        """Decode every complete frame in *buffer*."""
        ...


def _split_field(line: str) -> tuple[str, str]:
    """Split an SSE ``field: value`` line (one optional space after the colon)."""
    name, _, value = line.partition(":")
    if value.startswith(" "):
        value = value[1:]
    return name, value


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------

class GeminiParser:
    """Decoder for Gemini ``streamGenerateContent?alt=sse`` output."""

    provider = Provider.GEMINI

    def feed(self, buffer: str) -> ParseResult:
        lines = buffer.split("\n")
        remainder = lines.pop()
        events: list[StreamEvent] = []
        for line in lines:
            event = self._parse_line(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return ParseResult(events=events, remainder=remainder)

    def _parse_line(self, line: str) -> StreamEvent | None:
        if not line.startswith(_DATA_PREFIX):
            return None
        payload = line[len(_DATA_PREFIX):].strip()
        if not payload or payload == _DONE_SENTINEL:
            return None

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            _logger.warning("Skipping undecodable Gemini frame (%s): %.200s", e, payload)
            return None
        if not isinstance(data, dict):
            return None

        error = data.get("error")
        if isinstance(error, dict):
            return ProviderError(message=str(error.get("message") or "Unknown error"))

        text = _gemini_text(data)
        if text:
            return TextDelta(text=text)
        return None


def _gemini_text(data: dict[str, Any]) -> str:
    """Concatenate ``candidates[0].content.parts[*].text``."""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        return ""
    content = candidate.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    return "".join(
        p["text"] for p in parts
        if isinstance(p, dict) and isinstance(p.get("text"), str)
    )


# ---------------------------------------------------------------------------
# Claude
# ---------------------------------------------------------------------------

class ClaudeParser:
    """Decoder for the Anthropic Messages streaming format."""

    provider = Provider.CLAUDE

    def feed(self, buffer: str) -> ParseResult:
        events: list[StreamEvent] = []
        pos = 0
        # Start of the frame that has not been closed yet; everything from
        # here on is handed back untouched.
        frame_start = 0
        event_name: str | None = None
        data_lines: list[str] = []

        while True:
            nl = buffer.find("\n", pos)
            if nl == -1:
                break
            line = buffer[pos:nl].rstrip("\r")
            pos = nl + 1

            if not line:
                if event_name is not None or data_lines:
                    event = self._close_frame(event_name, data_lines)
                    if event is not None:
                        events.append(event)
                event_name = None
                data_lines = []
                frame_start = pos
                continue

            if line.startswith(":"):
                continue  # comment / keep-alive
            name, value = _split_field(line)
            if name == "event":
                event_name = value.strip()
            elif name == "data":
                data_lines.append(value)

        return ParseResult(events=events, remainder=buffer[frame_start:])

    def _close_frame(
        self, event_name: str | None, data_lines: list[str],
    ) -> StreamEvent | None:
        raw = "\n".join(data_lines).strip()
        data: Any = None
        if raw:
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                _logger.warning(
                    "Skipping undecodable Claude frame %s (%s): %.200s",
                    event_name, e, raw,
                )
        if not isinstance(data, dict):
            data = {}

        kind = event_name or data.get("type")

        if kind == "content_block_delta":
            delta = data.get("delta")
            if isinstance(delta, dict) and isinstance(delta.get("text"), str):
                if delta["text"]:
                    return TextDelta(text=delta["text"])
            return None
        if kind == "message_stop":
            return Stop()
        if kind == "error":
            error = data.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            return ProviderError(message=str(message or raw or "Unknown error"))
        return None


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

_PARSERS: dict[Provider, type] = {
    Provider.GEMINI: GeminiParser,
    Provider.CLAUDE: ClaudeParser,
}


def parser_for(provider: Provider | str) -> FrameParser:
    """Return a fresh parser for *provider*."""
    return _PARSERS[Provider(provider)]()
