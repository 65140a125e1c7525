"""Bounded retry with exponential backoff for streaming attempts."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sightedit.errors import StreamCancelledError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# Hook called before each backoff wait: (failed_attempt, delay, error)
RetryHook = Callable[[int, float, Exception], Any]


class RetryPolicy:
    """Run an attempt up to *max_attempts* times, doubling the delay each time.

    The policy wraps the outcome of a whole streaming session, not single
    chunks: a session that fails after partially streaming is started over.
    :class:`StreamCancelledError` is re-raised at once, whatever attempts
    remain.

    Parameters
    ----------
    max_attempts:
        Total attempts including the first one.
    initial_delay:
        Seconds to wait after the first failure; doubled after each retry.
    on_retry:
        Optional hook (sync or async) called before each backoff wait.
    give_up_on:
        Exception types raised at once, without further attempts.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        on_retry: RetryHook | None = None,
        give_up_on: tuple[type[Exception], ...] = (),
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self._on_retry = on_retry
        self._give_up_on = give_up_on

    async def run(
        self,
        attempt: Callable[[], Awaitable[T]],
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        """Call *attempt* until it succeeds, is cancelled, or attempts run out.

        When *cancel_event* is given it is checked before every attempt and
        interrupts the backoff wait, so an abort during a pause terminates
        promptly instead of starting another attempt.
        """
        delay = self.initial_delay
        last_error: Exception | None = None

        for n in range(1, self.max_attempts + 1):
            _raise_if_set(cancel_event)
            try:
                return await attempt()
            except StreamCancelledError:
                raise
            except self._give_up_on as e:
                _logger.warning("Streaming attempt %d failed, not retrying: %s", n, e)
                raise
            except Exception as e:
                last_error = e
                if n >= self.max_attempts:
                    break
                _logger.warning(
                    "Streaming attempt %d/%d failed: %s -- retrying in %.2fs",
                    n, self.max_attempts, e, delay,
                )
                if self._on_retry is not None:
                    result = self._on_retry(n, delay, e)
                    if inspect.isawaitable(result):
                        await result
                await _wait(delay, cancel_event)
                delay *= 2

        _logger.warning(
            "Streaming failed after %d attempts: %s", self.max_attempts, last_error,
        )
        assert last_error is not None
        raise last_error


def _raise_if_set(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise StreamCancelledError()


async def _wait(delay: float, cancel_event: asyncio.Event | None) -> None:
    """Sleep for *delay* seconds, returning early if *cancel_event* is set."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    _logger.info("Backoff interrupted by abort")
    raise StreamCancelledError()
