"""In-memory conversation session on top of :class:`StreamingClient`.

Keeps the message history of one conversation, turns a user question
(optionally with editor context) into the message list sent to the
provider, and records the assistant's answer once streaming completes.
Persistence belongs to the storage layer and is not handled here.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from sightedit.types import Message, Provider, Role, create_message

if TYPE_CHECKING:
    from sightedit.llm.client import StreamingClient

_logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New conversation"

# Number of stored messages replayed with each new question
_HISTORY_WINDOW = 10
_TITLE_LENGTH = 30


def title_from_message(message: str) -> str:
    """Derive a short session title from the first user message."""
    title = message[:_TITLE_LENGTH]
    first_line = message.split("\n")[0]
    if len(first_line) < len(title):
        title = first_line
    if len(message) > _TITLE_LENGTH:
        title += "..."
    return title


class ChatSession:
    """One conversation with the configured provider."""

    def __init__(
        self,
        client: StreamingClient,
        provider: Provider | str | None = None,
        model: str | None = None,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self._client = client
        self.provider = Provider(provider or client.config.provider)
        self.model = model or client.config.provider_config(self.provider).default_model
        self.id = str(uuid.uuid4())
        self.title = title
        self.created_at = datetime.now(timezone.utc)
        self.messages: list[Message] = []
        self.is_streaming = False

    def build_messages(self, user_content: str, context: str = "") -> list[Message]:
        """Recent history plus the new question, ready for the client."""
        messages = list(self.messages[-_HISTORY_WINDOW:])
        content = user_content
        if context:
            content = f"[Context]\n{context}\n\n[Question]\n{user_content}"
        messages.append(self._message(Role.USER, content))
        return messages

    async def send(
        self,
        content: str,
        on_fragment: Callable[[str], object],
        on_complete: Callable[[str], object],
        on_error: Callable[[Exception], object],
        *,
        context: str = "",
    ) -> None:
        """Ask *content* and stream the answer through the callbacks."""
        request_messages = self.build_messages(content, context)

        self.messages.append(self._message(Role.USER, content))
        if self.title == DEFAULT_TITLE and len(self.messages) == 1:
            self.title = title_from_message(content)

        def _complete(full_text: str) -> None:
            self.messages.append(self._message(Role.ASSISTANT, full_text))
            self.is_streaming = False
            on_complete(full_text)

        def _error(error: Exception) -> None:
            self.is_streaming = False
            on_error(error)

        self.is_streaming = True
        try:
            await self._client.stream_chat(
                request_messages,
                on_fragment,
                _complete,
                _error,
                provider=self.provider,
                model=self.model,
            )
        finally:
            self.is_streaming = False

    def abort(self) -> None:
        self._client.abort()

    def clear(self) -> None:
        """Start over with an empty history."""
        self.messages.clear()
        self.title = DEFAULT_TITLE

    def _message(self, role: Role, content: str) -> Message:
        return create_message(role, content, provider=self.provider, model=self.model)
