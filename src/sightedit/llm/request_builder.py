"""Provider-specific request construction.

These builders are the only place besides the parsers that knows how the
two providers differ.  The JSON shapes follow each provider's public API;
the streaming core only ever reads the delta text, the event type and the
error payload back out of the responses.
"""

from __future__ import annotations

from typing import Any, Sequence

from sightedit.types import Message, Provider, Role, StreamRequest

ANTHROPIC_VERSION = "2023-06-01"

# Fixed sampling parameters for Gemini (temperature comes from config)
_GEMINI_TOP_K = 40
_GEMINI_TOP_P = 0.95


def build_gemini_request(
    messages: Sequence[Message],
    model: str,
    api_key: str,
    *,
    base_url: str = "https://generativelanguage.googleapis.com/v1beta",
    max_tokens: int = 8192,
    temperature: float = 0.7,
) -> StreamRequest:
    """Build a ``streamGenerateContent`` SSE request."""
    contents: list[dict[str, Any]] = []
    system_parts: list[dict[str, str]] = []
    for m in messages:
        if m.role is Role.SYSTEM:
            system_parts.append({"text": m.content})
            continue
        role = "model" if m.role is Role.ASSISTANT else "user"
        contents.append({"role": role, "parts": [{"text": m.content}]})

    body: dict[str, Any] = {
        "contents": contents,
        "generationConfig": {
            "temperature": temperature,
            "topK": _GEMINI_TOP_K,
            "topP": _GEMINI_TOP_P,
            "maxOutputTokens": max_tokens,
        },
    }
    if system_parts:
        body["systemInstruction"] = {"parts": system_parts}

    url = f"{base_url.rstrip('/')}/models/{model}:streamGenerateContent?alt=sse"
    headers = {
        "Content-Type": "application/json",
        "x-goog-api-key": api_key,
    }
    return StreamRequest(provider=Provider.GEMINI, url=url, headers=headers, body=body)


def build_claude_request(
    messages: Sequence[Message],
    model: str,
    api_key: str,
    *,
    base_url: str = "https://api.anthropic.com/v1",
    max_tokens: int = 8192,
    temperature: float = 0.7,
) -> StreamRequest:
    """Build a streaming Messages API request."""
    system = "\n\n".join(m.content for m in messages if m.role is Role.SYSTEM)
    body: dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "stream": True,
        "messages": [
            {"role": m.role.value, "content": m.content}
            for m in messages if m.role is not Role.SYSTEM
        ],
    }
    if system:
        body["system"] = system

    headers = {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": ANTHROPIC_VERSION,
    }
    return StreamRequest(
        provider=Provider.CLAUDE,
        url=f"{base_url.rstrip('/')}/messages",
        headers=headers,
        body=body,
    )


_BUILDERS = {
    Provider.GEMINI: build_gemini_request,
    Provider.CLAUDE: build_claude_request,
}


def build_request(
    provider: Provider | str,
    messages: Sequence[Message],
    model: str,
    api_key: str,
    **kwargs: Any,
) -> StreamRequest:
    """Dispatch to the builder for *provider*."""
    return _BUILDERS[Provider(provider)](messages, model, api_key, **kwargs)
