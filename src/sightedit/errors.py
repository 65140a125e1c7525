"""Errors surfaced through the ``on_error`` callback.

Everything derives from :class:`StreamError` so callers can catch the whole
family; :class:`StreamCancelledError` marks user-initiated aborts, which UI
code usually shows differently from real failures.
"""

from __future__ import annotations


class StreamError(Exception):
    """Base class for streaming failures."""


class StreamHTTPError(StreamError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int, body: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        self.body = body
        detail = body.strip()
        if len(detail) > 500:
            detail = detail[:500] + "..."
        super().__init__(f"{provider} API error: {status_code} - {detail}")


class StreamTransportError(StreamError):
    """Connection, DNS, read or timeout failure below HTTP."""


class ProviderStreamError(StreamError):
    """The provider reported an error inside the stream body."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"{provider} stream error: {message}")


class StreamRequestError(StreamError):
    """The request could not be sent or its response could not be handled.

    Wraps failures that are neither HTTP nor transport errors, such as a
    header value httpx cannot encode or a malformed base URL.  Retrying
    cannot fix these, so they are reported after the first attempt.
    """

    def __init__(self, provider: str, error: Exception) -> None:
        self.provider = provider
        self.error = error
        super().__init__(f"{provider} request failed: {type(error).__name__}: {error}")


class StreamCancelledError(StreamError):
    """The stream was aborted by the caller.  Never retried."""

    def __init__(self, message: str = "streaming was aborted") -> None:
        super().__init__(message)


class StreamConfigError(StreamError):
    """Unknown provider or model, or no API key available."""
