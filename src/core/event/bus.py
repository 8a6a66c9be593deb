"""
Cadence EventBus (2025): async pub/sub with tiered listener execution.

Purpose
-------
Decouples the progression and assessment services from whoever consumes
their events (notifications, analytics, telemetry). Services publish after
their state change has been persisted; listeners never participate in the
write.

Responsibilities
----------------
- Register/unregister event listeners with priorities
- Publish events to all matching listeners (exact + wildcard)
- Execute listeners according to tiered concurrency:
  * CRITICAL / HIGH: sequential, ordered, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Error isolation (one failing listener never blocks others)
- Listener log records carry the payload user_id and the event name

Design Decisions
----------------
- **Instance-based**: injected into services; tests build their own bus
- **Wildcard support**: subscriptions like ``"progression.*"``
- **Error isolation**: try/except per listener, failures are logged with
  the listener identifier and swallowed
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from src.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from src.core.logging.logger import LogContext, get_logger

logger = get_logger(__name__)


def event_matches(event_name: str, pattern: str) -> bool:
    """
    Check if an event name matches a wildcard pattern.

    Example
    -------
    >>> event_matches("progression.leveled_up", "progression.*")
    True
    >>> event_matches("progression.leveled_up", "*.leveled_up")
    True
    >>> event_matches("progression.leveled_up", "assessment.*")
    False
    """
    if pattern == "*":
        return True

    if "*" not in pattern:
        return event_name == pattern

    while "**" in pattern:
        pattern = pattern.replace("**", "*")

    parts = pattern.split("*")

    if parts[0] and not event_name.startswith(parts[0]):
        return False
    if parts[-1] and not event_name.endswith(parts[-1]):
        return False

    # Middle fragments must appear in order after the prefix
    idx = len(parts[0])
    for mid in parts[1:-1]:
        if not mid:
            continue
        next_idx = event_name.find(mid, idx)
        if next_idx == -1:
            return False
        idx = next_idx + len(mid)

    return True


class EventBus:
    """
    EventBus for the Cadence coaching engine.

    Thread Safety
    -------------
    Designed for single-threaded asyncio usage. Registry mutations are atomic
    between awaits.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("progression.leveled_up", on_level_up)
    >>> await bus.publish("progression.leveled_up", {"user_id": "u-1", "new_level": 3})
    """

    def __init__(
        self,
        *,
        critical_timeout_seconds: float = 5.0,
        high_timeout_seconds: float = 5.0,
    ) -> None:
        self._listeners: Dict[str, List[EventListener]] = defaultdict(list)
        self._background_tasks: Set[asyncio.Task[Any]] = set()
        self._critical_timeout = critical_timeout_seconds
        self._high_timeout = high_timeout_seconds
        self._published: Dict[str, int] = defaultdict(int)
        self._errors: Dict[str, int] = defaultdict(int)

        logger.info(
            "EventBus initialized",
            extra={
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Reject callbacks that cannot take exactly one payload argument."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            # Built-ins may not expose a signature
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event or wildcard pattern.

        Returns
        -------
        str:
            The listener identifier (for unsubscribing later).

        Raises
        ------
        ValueError:
            If callback signature is invalid.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        existing = self._listeners[event_name]
        if any(lst.identifier == listener.identifier for lst in existing):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        existing.append(listener)
        existing.sort(key=lambda lst: lst.priority.value)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "once": listener.once,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        """Remove a listener; returns True if one was removed."""
        listeners = self._listeners.get(event_name, [])
        remaining = [lst for lst in listeners if lst.identifier != identifier]
        removed = len(remaining) != len(listeners)

        if remaining:
            self._listeners[event_name] = remaining
        else:
            self._listeners.pop(event_name, None)

        if removed:
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        """Remove all listeners from all events."""
        total = self.get_listener_count()
        self._listeners.clear()
        logger.info(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def _extract_listeners(self, event_name: str) -> List[EventListener]:
        """Collect matching listeners in priority order, pruning one-shot ones."""
        matched: List[EventListener] = []
        for pattern in list(self._listeners.keys()):
            if not event_matches(event_name, pattern):
                continue
            listeners = self._listeners[pattern]
            matched.extend(listeners)
            keep = [lst for lst in listeners if not lst.once]
            if keep:
                self._listeners[pattern] = keep
            else:
                del self._listeners[pattern]

        matched.sort(key=lambda lst: lst.priority.value)
        return matched

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Publish an event to all subscribed listeners.

        Returns
        -------
        List[Any]:
            Results from CRITICAL/HIGH/NORMAL listeners. LOW-tier listeners
            are fire-and-forget and not included.
        """
        self._published[event_name] += 1

        listeners = self._extract_listeners(event_name)

        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "payload_keys": list(data.keys()),
                "listener_count": len(listeners),
            },
        )

        if not listeners:
            return []

        results: List[Any] = []

        for listener in listeners:
            if listener.priority is ListenerPriority.CRITICAL:
                results.append(
                    await self._run_with_timeout(listener, event_name, data, self._critical_timeout)
                )
            elif listener.priority is ListenerPriority.HIGH:
                results.append(
                    await self._run_with_timeout(listener, event_name, data, self._high_timeout)
                )

        normal = [lst for lst in listeners if lst.priority is ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(
                    *[self._run_listener(lst, event_name, data) for lst in normal]
                )
            )

        for listener in listeners:
            if listener.priority is ListenerPriority.LOW:
                task = asyncio.get_running_loop().create_task(
                    self._run_listener(listener, event_name, data),
                    name=f"eventbus-low-{event_name}-{listener.identifier}",
                )
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_with_timeout(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        timeout: Optional[float],
    ) -> Any:
        if timeout is None or timeout <= 0:
            return await self._run_listener(listener, event_name, payload)

        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload), timeout=timeout
            )
        except asyncio.TimeoutError:
            self._errors[event_name] += 1
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "timeout_seconds": timeout,
                },
            )
            return None

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
    ) -> Any:
        try:
            with LogContext(
                user_id=payload.get("user_id"),
                component=listener.identifier,
                operation=event_name,
            ):
                result = listener.callback(payload)
                if inspect.isawaitable(result):
                    result = await result
            return result
        except Exception as exc:
            self._errors[event_name] += 1
            logger.error(
                "EventBus listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None

    async def drain(self) -> None:
        """Wait for outstanding LOW-tier listener tasks."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return sum(
                len(listeners)
                for pattern, listeners in self._listeners.items()
                if event_matches(event_name, pattern)
            )
        return sum(len(listeners) for listeners in self._listeners.values())

    def get_metrics_summary(self) -> Dict[str, Any]:
        total_published = sum(self._published.values())
        total_errors = sum(self._errors.values())
        return {
            "total_events_published": total_published,
            "events_by_type": dict(self._published),
            "total_errors": total_errors,
            "errors_by_event": dict(self._errors),
            "total_listeners": self.get_listener_count(),
        }
