"""Streaming protocol layer: parsers, coordinator, retry, batching, client."""

from sightedit.llm.batcher import OutputBatcher
from sightedit.llm.client import StreamingClient
from sightedit.llm.coordinator import StreamCoordinator, StreamSession
from sightedit.llm.parsers import ClaudeParser, FrameParser, GeminiParser, parser_for
from sightedit.llm.request_builder import (
    build_claude_request,
    build_gemini_request,
    build_request,
)
from sightedit.llm.retry import RetryPolicy

__all__ = [
    "ClaudeParser",
    "FrameParser",
    "GeminiParser",
    "OutputBatcher",
    "RetryPolicy",
    "StreamCoordinator",
    "StreamSession",
    "StreamingClient",
    "build_claude_request",
    "build_gemini_request",
    "build_request",
    "parser_for",
]
