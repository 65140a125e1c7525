"""Coalesce streamed text fragments into periodic UI updates."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

_logger = logging.getLogger(__name__)


class OutputBatcher:
    """Buffer fragments and hand them to *on_flush* at most once per interval.

    The first ``add()`` after a flush arms a one-shot timer on the running
    event loop; when it fires the whole pending buffer is delivered in one
    call.  ``final()`` must be called when the owning stream ends: it
    disarms the timer and delivers whatever is still pending, so no trailing
    fragment is lost and no flush fires after the consumer moved on.

    Flushed strings always concatenate to exactly the added strings.
    """

    def __init__(
        self,
        on_flush: Callable[[str], object],
        flush_interval: float = 0.05,
    ) -> None:
        self._on_flush = on_flush
        self.flush_interval = flush_interval
        self._pending: list[str] = []
        self._timer: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> str:
        return "".join(self._pending)

    @property
    def armed(self) -> bool:
        return self._timer is not None

    def add(self, text: str) -> None:
        if not text:
            return
        self._pending.append(text)
        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.flush_interval, self.flush)

    def flush(self) -> None:
        """Deliver the pending buffer (if any) and disarm the timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self._pending:
            return
        text = "".join(self._pending)
        self._pending.clear()
        self._on_flush(text)

    def final(self) -> None:
        """Tear down the timer and flush immediately."""
        if self._timer is not None:
            _logger.debug("Final flush cancels armed timer")
        self.flush()
