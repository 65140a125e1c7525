"""Shared data types for the SightEdit streaming core."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Union


# ---------------------------------------------------------------------------
# Providers and conversation messages
# ---------------------------------------------------------------------------

class Provider(str, enum.Enum):
    """Hosted LLM providers the editor can stream from."""

    GEMINI = "gemini"
    CLAUDE = "claude"


class Role(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """One conversation turn.  Immutable once created."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=_utcnow)
    # Compared but not hashed: the read-only view is unhashable
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        object.__setattr__(
            self, "metadata", MappingProxyType(dict(self.metadata)),
        )


def create_message(
    role: Role | str,
    content: str,
    metadata: Mapping[str, Any] | None = None,
    *,
    provider: Provider | str | None = None,
    model: str | None = None,
) -> Message:
    """Create a :class:`Message` stamped with the current time.

    ``provider`` and ``model`` are merged into the metadata so stored
    history records which model produced (or was asked) each turn.
    """
    meta: dict[str, Any] = {}
    if provider is not None:
        meta["provider"] = Provider(provider).value
    if model is not None:
        meta["model"] = model
    if metadata:
        meta.update(metadata)
    return Message(role=Role(role), content=content, metadata=meta)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextDelta:
    """Incremental fragment of model output."""

    text: str


@dataclass(frozen=True)
class Stop:
    """Explicit end-of-message marker (not every provider sends one)."""


@dataclass(frozen=True)
class ProviderError:
    """Error reported inside the stream body rather than via HTTP status."""

    message: str


StreamEvent = Union[TextDelta, Stop, ProviderError]


@dataclass
class ParseResult:
    """Events decoded from a buffer plus the unconsumed tail.

    ``remainder`` is always a suffix of the buffer that was fed and must be
    prepended to the next chunk.
    """

    events: list[StreamEvent] = field(default_factory=list)
    remainder: str = ""

    @property
    def text(self) -> str:
        return "".join(e.text for e in self.events if isinstance(e, TextDelta))


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StreamRequest:
    """Everything needed to open one streaming POST."""

    provider: Provider
    url: str
    headers: Mapping[str, str]
    body: dict[str, Any]


# ---------------------------------------------------------------------------
# Lifecycle events (EventBus)
# ---------------------------------------------------------------------------

class ChatEventType(enum.Enum):
    """Lifecycle events published while a request streams."""

    STREAM_STARTED = "stream.started"
    STREAM_RETRY = "stream.retry"
    STREAM_DONE = "stream.done"
    STREAM_ERROR = "stream.error"
    STREAM_CANCELLED = "stream.cancelled"


@dataclass
class ChatEvent:
    """Event emitted via the EventBus."""

    type: ChatEventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
