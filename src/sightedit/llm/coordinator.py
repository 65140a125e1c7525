"""Drive one cancellable streaming HTTP call through a frame parser.

The coordinator owns a single :class:`StreamSession` at a time and reports
through three callbacks:

* ``on_fragment(text)`` for every text delta, in arrival order;
* ``on_complete(full_text)`` on natural end of stream;
* ``on_error(error)`` on failure or abort.

Exactly one of ``on_complete`` / ``on_error`` fires per run, and it is
always the last callback.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from dataclasses import dataclass
from typing import Callable

import httpx

from sightedit.errors import (
    ProviderStreamError,
    StreamCancelledError,
    StreamError,
    StreamHTTPError,
    StreamRequestError,
    StreamTransportError,
)
from sightedit.types import ProviderError, Stop, StreamRequest, TextDelta

from .parsers import FrameParser

_logger = logging.getLogger(__name__)

FragmentFn = Callable[[str], object]
CompleteFn = Callable[[str], object]
ErrorFn = Callable[[Exception], object]


@dataclass
class StreamSession:
    """Mutable per-request state.  Never shared between requests."""

    buffer: str = ""
    full_text: str = ""
    cancelled: bool = False
    chunks: int = 0


class StreamCoordinator:
    """Run one streaming request at a time over *http*."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http
        self._session: StreamSession | None = None
        self._task: asyncio.Task[str] | None = None

    @property
    def active(self) -> bool:
        return self._session is not None

    async def run(
        self,
        request: StreamRequest,
        parser: FrameParser,
        on_fragment: FragmentFn,
        on_complete: CompleteFn,
        on_error: ErrorFn,
    ) -> None:
        """Stream *request* to completion, reporting via the callbacks."""
        if self._session is not None:
            raise RuntimeError("a stream is already active on this coordinator")

        session = StreamSession()
        self._session = session
        self._task = asyncio.ensure_future(
            self._read_loop(session, request, parser, on_fragment),
        )
        _logger.info("Streaming from %s", request.provider.value)
        try:
            full_text = await self._task
        except asyncio.CancelledError:
            if not session.cancelled:
                raise
            _logger.info("%s stream aborted", request.provider.value)
            on_error(StreamCancelledError())
        except StreamCancelledError as e:
            _logger.info("%s stream aborted", request.provider.value)
            on_error(e)
        except StreamError as e:
            _logger.warning("%s stream failed: %s", request.provider.value, e)
            on_error(e)
        except Exception as e:
            _logger.exception("%s stream failed unexpectedly", request.provider.value)
            error = StreamRequestError(request.provider.value, e)
            error.__cause__ = e
            on_error(error)
        else:
            if session.cancelled:
                on_error(StreamCancelledError())
            else:
                _logger.info(
                    "%s stream complete (%d chunks, %d chars)",
                    request.provider.value, session.chunks, len(full_text),
                )
                on_complete(full_text)
        finally:
            self._session = None
            self._task = None

    def abort(self) -> None:
        """Cancel the active stream.  Idempotent; no-op when idle."""
        session = self._session
        if session is None or session.cancelled:
            return
        _logger.info("Abort requested")
        session.cancelled = True
        if self._task is not None:
            self._task.cancel()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _read_loop(
        self,
        session: StreamSession,
        request: StreamRequest,
        parser: FrameParser,
        on_fragment: FragmentFn,
    ) -> str:
        provider = request.provider.value
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        try:
            async with self._http.stream(
                "POST", request.url, headers=dict(request.headers), json=request.body,
            ) as resp:
                if not resp.is_success:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    raise StreamHTTPError(provider, resp.status_code, body)

                async for chunk in resp.aiter_bytes():
                    session.chunks += 1
                    self._consume(session, parser, decoder.decode(chunk), on_fragment)

                self._consume(session, parser, decoder.decode(b"", final=True), on_fragment)
        except httpx.HTTPError as e:
            raise StreamTransportError(f"{provider} transport error: {e}") from e

        if session.buffer.strip():
            _logger.warning(
                "Discarding incomplete trailing %s frame: %.200r",
                provider, session.buffer,
            )
        session.buffer = ""
        return session.full_text

    def _consume(
        self,
        session: StreamSession,
        parser: FrameParser,
        text: str,
        on_fragment: FragmentFn,
    ) -> None:
        if session.cancelled:
            raise StreamCancelledError()
        if not text:
            return
        result = parser.feed(session.buffer + text)
        session.buffer = result.remainder
        for event in result.events:
            if isinstance(event, TextDelta):
                session.full_text += event.text
                on_fragment(event.text)
                if session.cancelled:
                    raise StreamCancelledError()
            elif isinstance(event, Stop):
                _logger.debug("%s sent end-of-message marker", parser.provider.value)
            elif isinstance(event, ProviderError):
                raise ProviderStreamError(parser.provider.value, event.message)
