"""Typed event bus — decoupled notification of queue changes.

Services emit events after a transaction commits; listeners (logging,
notifications, cache invalidation) subscribe by event type.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, TypeVar, Type

T = TypeVar("T")


# -- City events ---------------------------------------------------------

@dataclass(frozen=True)
class CityFounded:
    """A new city was stored."""
    cid: int
    owner_uid: int


@dataclass(frozen=True)
class TaskEnqueued:
    """A training or healing job was appended to a queue."""
    cid: int
    queue: str
    task_id: str
    unit_iid: str
    amount: int
    end_time: float


@dataclass(frozen=True)
class TaskCancelled:
    """A job was removed from a queue and its cost refunded."""
    cid: int
    queue: str
    task_id: str
    unit_iid: str
    amount: int
    refund: dict


@dataclass(frozen=True)
class TaskCompleted:
    """A job reached its end time and its units joined the city."""
    cid: int
    queue: str
    task_id: str
    unit_iid: str
    amount: int
    message: str


@dataclass(frozen=True)
class UnitsDismissed:
    """Trained units were sent home."""
    cid: int
    units: dict


# -- Event Bus -----------------------------------------------------------

class EventBus:
    """Simple synchronous event bus with typed events.

    Usage:
        bus = EventBus()
        bus.on(TaskCancelled, lambda e: print(e.task_id))
        bus.emit(TaskCancelled(cid=1, queue="barracks", task_id="a1", ...))
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def on(self, event_type: Type[T], handler: Callable[[T], None]) -> None:
        """Register a handler for an event type."""
        self._handlers[event_type].append(handler)

    def emit(self, event: object) -> None:
        """Emit an event to all registered handlers."""
        for handler in self._handlers.get(type(event), []):
            handler(event)
