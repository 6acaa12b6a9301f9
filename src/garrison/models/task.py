"""Queue task model — one time-boxed job in a city queue."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum


class QueueKind(Enum):
    """The named queues a city owns."""

    BARRACKS = "barracks"
    SHIPYARD = "shipyard"
    DIVINE_TEMPLE = "divine_temple"
    HEAL = "heal"

    @property
    def building(self) -> str:
        """Building that must exist for the queue to accept jobs."""
        return "hospital" if self is QueueKind.HEAL else self.value

    @property
    def is_heal(self) -> bool:
        return self is QueueKind.HEAL


def new_task_id() -> str:
    return uuid.uuid4().hex


@dataclass
class QueueTask:
    """A queued training or healing job.

    Attributes:
        unit_iid: Unit being trained or healed.
        amount: Number of units in the job.
        end_time: Absolute completion time (Unix seconds).
        task_id: Identifier unique within the queue.
    """

    unit_iid: str
    amount: int
    end_time: float
    task_id: str = field(default_factory=new_task_id)
