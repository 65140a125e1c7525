"""Streaming client for Gemini and Claude.

``StreamingClient.stream_chat()`` is the entry point the conversation and
UI layers call::

    async with StreamingClient(config) as client:
        await client.stream_chat(messages, on_fragment, on_complete, on_error)

Per request it trims the history, builds the provider request, and runs
attempts under a :class:`RetryPolicy`.  Each attempt gets its own
coordinator, parser and batcher; the batcher is finalized before the attempt
returns so every fragment reaches ``on_fragment`` before the terminal
callback.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Sequence

import httpx

from sightedit.config import EditorConfig
from sightedit.core.context import ContextWindowManager
from sightedit.errors import (
    StreamCancelledError,
    StreamConfigError,
    StreamError,
    StreamRequestError,
)
from sightedit.events.bus import EventBus
from sightedit.types import ChatEvent, ChatEventType, Message, Provider, StreamRequest

from .batcher import OutputBatcher
from .coordinator import CompleteFn, ErrorFn, FragmentFn, StreamCoordinator
from .parsers import parser_for
from .request_builder import build_request
from .retry import RetryPolicy

_logger = logging.getLogger(__name__)


class _AttemptOutcome:
    """Collects the terminal callback of one coordinator run."""

    def __init__(self) -> None:
        self.text: str | None = None
        self.error: Exception | None = None

    def complete(self, text: str) -> None:
        self.text = text

    def fail(self, error: Exception) -> None:
        self.error = error

    def result(self) -> str:
        if self.error is not None:
            raise self.error
        return self.text or ""


class StreamingClient:
    """Async streaming client over one ``httpx.AsyncClient``.

    Parameters
    ----------
    config:
        Provider catalog and streaming tunables.
    event_bus:
        Optional bus receiving stream lifecycle events.
    http:
        Pre-built HTTP client (tests inject one with a mock transport).
    """

    def __init__(
        self,
        config: EditorConfig | None = None,
        event_bus: EventBus | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or EditorConfig()
        self._bus = event_bus
        settings = self.config.streaming
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(
                settings.read_timeout,
                connect=settings.connect_timeout,
                read=settings.read_timeout,
            ),
        )
        self._context = ContextWindowManager()
        self._coordinator: StreamCoordinator | None = None
        self._cancel_event: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_streaming(self) -> bool:
        return self._cancel_event is not None

    async def stream_chat(
        self,
        messages: Sequence[Message],
        on_fragment: FragmentFn,
        on_complete: CompleteFn,
        on_error: ErrorFn,
        *,
        provider: Provider | str | None = None,
        model: str | None = None,
    ) -> None:
        """Stream one answer for *messages*.

        Exactly one of ``on_complete(full_text)`` / ``on_error(error)`` is
        called, after every fragment.  Fragments are provisional: a failed
        attempt that is retried may already have delivered some.
        """
        if self._cancel_event is not None:
            raise RuntimeError("a streaming request is already in flight")

        try:
            request = self.build_request(messages, provider=provider, model=model)
        except StreamConfigError as e:
            _logger.warning("Cannot start stream: %s", e)
            on_error(e)
            return

        cancel_event = asyncio.Event()
        self._cancel_event = cancel_event
        settings = self.config.streaming
        policy = RetryPolicy(
            max_attempts=settings.max_attempts,
            initial_delay=settings.initial_delay,
            on_retry=self._on_retry,
            give_up_on=(StreamRequestError,),
        )
        start = time.monotonic()
        await self._emit(ChatEventType.STREAM_STARTED, {
            "provider": request.provider.value,
            "url": request.url,
        })

        try:
            full_text = await policy.run(
                lambda: self._attempt(request, on_fragment), cancel_event,
            )
        except StreamCancelledError as e:
            await self._emit(ChatEventType.STREAM_CANCELLED, {
                "provider": request.provider.value,
            })
            on_error(e)
        except StreamError as e:
            await self._emit(ChatEventType.STREAM_ERROR, {
                "provider": request.provider.value,
                "error": str(e),
            })
            on_error(e)
        else:
            await self._emit(ChatEventType.STREAM_DONE, {
                "provider": request.provider.value,
                "length": len(full_text),
                "latency_ms": (time.monotonic() - start) * 1000,
            })
            on_complete(full_text)
        finally:
            self._cancel_event = None

    async def generate(
        self,
        messages: Sequence[Message],
        *,
        provider: Provider | str | None = None,
        model: str | None = None,
    ) -> str:
        """Collect a whole answer; raises the terminal error instead."""
        outcome = _AttemptOutcome()
        await self.stream_chat(
            messages,
            lambda _text: None,
            outcome.complete,
            outcome.fail,
            provider=provider,
            model=model,
        )
        return outcome.result()

    def abort(self) -> None:
        """Cancel the in-flight request.  Idempotent; no-op when idle."""
        if self._cancel_event is not None:
            self._cancel_event.set()
        if self._coordinator is not None:
            self._coordinator.abort()

    def build_request(
        self,
        messages: Sequence[Message],
        *,
        provider: Provider | str | None = None,
        model: str | None = None,
    ) -> StreamRequest:
        """Resolve model and key, trim *messages*, and build the request."""
        try:
            prov = Provider(provider or self.config.provider)
        except ValueError:
            raise StreamConfigError(f"Unsupported AI provider: {provider}") from None
        pcfg = self.config.provider_config(prov)
        model = model or pcfg.default_model
        spec = pcfg.models.get(model)
        if spec is None:
            raise StreamConfigError(f"Unknown {prov.value} model: {model}")
        api_key = pcfg.resolve_api_key()
        if not api_key:
            raise StreamConfigError(
                f"No API key configured for {prov.value}"
                + (f" (set {pcfg.api_key_env})" if pcfg.api_key_env else "")
            )

        settings = self.config.streaming
        trimmed = self._context.trim(messages, settings.context_budget)
        kwargs: dict[str, Any] = {
            "max_tokens": spec.max_tokens,
            "temperature": settings.temperature,
        }
        if pcfg.base_url:
            kwargs["base_url"] = pcfg.base_url
        return build_request(prov, trimmed, model, api_key, **kwargs)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> StreamingClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _attempt(self, request: StreamRequest, on_fragment: FragmentFn) -> str:
        outcome = _AttemptOutcome()
        batcher = OutputBatcher(on_fragment, self.config.streaming.flush_interval)
        coordinator = StreamCoordinator(self._http)
        self._coordinator = coordinator
        try:
            await coordinator.run(
                request,
                parser_for(request.provider),
                batcher.add,
                outcome.complete,
                outcome.fail,
            )
        finally:
            self._coordinator = None
            batcher.final()
        return outcome.result()

    async def _on_retry(self, attempt: int, delay: float, error: Exception) -> None:
        await self._emit(ChatEventType.STREAM_RETRY, {
            "attempt": attempt,
            "delay": delay,
            "error": str(error),
        })

    async def _emit(self, event_type: ChatEventType, data: dict[str, Any]) -> None:
        if self._bus is not None:
            await self._bus.emit(ChatEvent(type=event_type, data=data))
