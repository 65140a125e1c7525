"""Async pub/sub EventBus for decoupling the streaming core from the UI."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from sightedit.types import ChatEvent, ChatEventType

_logger = logging.getLogger(__name__)

# Sentinel used for wildcard subscriptions (receive all events)
_WILDCARD = "*"

# Type alias for handlers (sync or async callables taking a ChatEvent)
Handler = Callable[[ChatEvent], Any]


class EventBus:
    """Lightweight async pub/sub event bus.

    Handlers subscribe to one :class:`ChatEventType` or to ``"*"``; sync
    and async handlers are both accepted.  A failing handler is logged and
    never breaks the stream that emitted the event.
    """

    def __init__(self, max_history: int = 200) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._history: list[ChatEvent] = []
        self._max_history = max_history

    def subscribe(self, event_type: ChatEventType | str, handler: Handler) -> None:
        """Register *handler* for *event_type* (or ``"*"`` for all)."""
        self._handlers.setdefault(self._key(event_type), []).append(handler)

    def unsubscribe(self, event_type: ChatEventType | str, handler: Handler) -> None:
        handlers = self._handlers.get(self._key(event_type), [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: ChatEvent) -> None:
        """Deliver *event* to its subscribers and to wildcard subscribers."""
        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        handlers = list(self._handlers.get(self._key(event.type), []))
        handlers.extend(self._handlers.get(_WILDCARD, []))
        if not handlers:
            return
        await asyncio.gather(*(self._call_handler(h, event) for h in handlers))

    @property
    def history(self) -> list[ChatEvent]:
        """Return a copy of the event history."""
        return list(self._history)

    def clear(self) -> None:
        self._handlers.clear()
        self._history.clear()

    @staticmethod
    def _key(event_type: ChatEventType | str) -> str:
        if isinstance(event_type, ChatEventType):
            return event_type.value
        return str(event_type)

    @staticmethod
    async def _call_handler(handler: Handler, event: ChatEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _logger.exception(
                "EventBus handler %s raised for event %s",
                getattr(handler, "__name__", handler),
                event.type,
            )
