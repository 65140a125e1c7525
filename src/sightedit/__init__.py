"""SightEdit streaming core: incremental LLM responses from Gemini and Claude."""

from sightedit.config import EditorConfig, load_config
from sightedit.errors import (
    ProviderStreamError,
    StreamCancelledError,
    StreamConfigError,
    StreamError,
    StreamHTTPError,
    StreamRequestError,
    StreamTransportError,
)
from sightedit.llm.client import StreamingClient
from sightedit.types import Message, Provider, Role, create_message

__all__ = [
    "EditorConfig",
    "Message",
    "Provider",
    "ProviderStreamError",
    "Role",
    "StreamCancelledError",
    "StreamConfigError",
    "StreamError",
    "StreamHTTPError",
    "StreamRequestError",
    "StreamTransportError",
    "StreamingClient",
    "create_message",
    "load_config",
]

__version__ = "0.3.0"
