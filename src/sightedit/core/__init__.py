"""Conversation-level components: context trimming and chat sessions."""

from sightedit.core.chat import ChatSession, title_from_message
from sightedit.core.context import ContextWindowManager, estimate_tokens

__all__ = [
    "ChatSession",
    "ContextWindowManager",
    "estimate_tokens",
    "title_from_message",
]
