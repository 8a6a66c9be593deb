"""
Event System for Cadence.

The bus is instance-based and injected into services by the
``ServiceContainer``; there is no process-wide singleton.
"""

from .bus import EventBus, event_matches
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "event_matches",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
