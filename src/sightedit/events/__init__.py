"""Stream lifecycle events for UI layers."""

from sightedit.events.bus import EventBus

__all__ = ["EventBus"]
