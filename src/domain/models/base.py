"""
Base domain model classes for Cadence.

Purpose
-------
Building blocks shared by the coaching domain types:

- ``AggregateRoot``: identity plus a queue of domain events, recorded while
  the aggregate mutates and handed to the service once the write commits
- ``DomainEvent``: name + payload + timestamp
- ``DomainValidationError`` and the ``validate_*`` helpers that value
  objects call from ``__post_init__``

Non-Responsibilities
--------------------
- Persistence (repositories)
- Publishing (services hand the cleared events to the EventBus)

Usage Example
-------------
>>> class Learner(AggregateRoot):
...     def complete_session(self) -> None:
...         self.sessions += 1
...         self.add_domain_event("learner.session_completed", {
...             "user_id": self.id,
...             "sessions": self.sessions,
...         })
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.core.exceptions import CadenceError, ErrorSeverity

# ============================================================================
# DOMAIN EVENTS
# ============================================================================


@dataclass(frozen=True)
class DomainEvent:
    """
    Something that happened to an aggregate.

    Attributes
    ----------
    event_name : str
        Bus topic, e.g. "progression.leveled_up"
    payload : Dict[str, Any]
        JSON-friendly event data; always carries ``user_id``
    occurred_at : datetime
        When the aggregate recorded the event (UTC)
    """

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# AGGREGATE ROOT
# ============================================================================


class AggregateRoot:
    """
    Consistency boundary with identity and pending domain events.

    Two aggregates with the same id are equal. Events stay queued until the
    service clears them after a successful write; a mutation that queued no
    event changed nothing.
    """

    def __init__(self, aggregate_id: str) -> None:
        self._id = aggregate_id
        self._domain_events: List[DomainEvent] = []

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AggregateRoot):
            return NotImplemented
        return type(self) is type(other) and self._id == other._id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._id))

    def add_domain_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        self._domain_events.append(DomainEvent(event_name=event_name, payload=payload))

    def get_pending_events(self) -> List[DomainEvent]:
        return list(self._domain_events)

    def clear_domain_events(self) -> List[DomainEvent]:
        """Hand over and forget the queued events (called after persisting)."""
        events, self._domain_events = self._domain_events, []
        return events


# ============================================================================
# VALIDATION
# ============================================================================


class DomainValidationError(CadenceError):
    """
    A domain value violates one of its invariants.

    Args:
        message: What is wrong
        field: Offending attribute, when there is one
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(
            message,
            details={"field": field} if field else None,
            error_code=f"DOMAIN_{field.upper()}" if field else "DOMAIN_VALIDATION",
        )


def validate_positive(value: float, field_name: str) -> None:
    if value <= 0:
        raise DomainValidationError(f"{field_name} must be positive, got {value}", field_name)


def validate_non_negative(value: float, field_name: str) -> None:
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}", field_name
        )


def validate_range(value: float, min_val: float, max_val: float, field_name: str) -> None:
    """Inclusive range check."""
    if not min_val <= value <= max_val:
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field_name,
        )


def validate_not_empty(value: Optional[str], field_name: str) -> None:
    """Reject None, empty and whitespace-only strings."""
    if not value or not value.strip():
        raise DomainValidationError(f"{field_name} cannot be empty", field_name)
