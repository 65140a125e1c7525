"""Fit a conversation history under a provider's approximate token budget."""

from __future__ import annotations

import logging
import math
from typing import Sequence

from sightedit.types import Message

_logger = logging.getLogger(__name__)

# Rough chars-per-token ratio for budget estimation
_CHARS_PER_TOKEN = 4

# Share of the budget available to history; the rest is left for the system
# prompt and request formatting.
_HEADROOM = 0.8


def estimate_tokens(text: str) -> int:
    """Rough token count estimate."""
    return math.ceil(len(text) / _CHARS_PER_TOKEN)


class ContextWindowManager:
    """Drop the oldest messages until a history fits the budget.

    The result is always a contiguous suffix of the input and never empty
    for a non-empty input: the newest message survives even when it alone
    exceeds the budget.
    """

    def __init__(self, headroom: float = _HEADROOM) -> None:
        self.headroom = headroom

    def trim(self, messages: Sequence[Message], budget: int) -> list[Message]:
        sizes = [estimate_tokens(m.content) for m in messages]
        limit = budget * self.headroom
        total = sum(sizes)

        start = 0
        while total > limit and len(messages) - start > 1:
            total -= sizes[start]
            start += 1

        if start:
            _logger.info(
                "Trimmed %d of %d messages to fit ~%d tokens (kept ~%d)",
                start, len(messages), int(limit), total,
            )
        return list(messages[start:])
