"""City model — one player city's persisted state.

A City holds resources, building levels, trained and wounded units,
the favor of its god, and one ordered job queue per QueueKind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from garrison.models.task import QueueKind, QueueTask


def _empty_queues() -> dict[QueueKind, list[QueueTask]]:
    return {kind: [] for kind in QueueKind}


@dataclass
class City:
    """Complete state of a city.

    Attributes:
        cid: City ID (assigned by the store).
        owner_uid: Player user ID.
        name: City display name.
        resources: Current resource amounts {key: amount}.
        buildings: Building IDs → level (0 or missing = not built).
        units: Trained units available in the city {iid: count}.
        wounded: Wounded units waiting for the hospital {iid: count}.
        god: God worshipped in the city, if any.
        worship: Favor per god {god: favor}.
        queues: Ordered job queues. Index 0 finishes first.
        version: Optimistic-concurrency token, managed by the store.
    """

    cid: int = 0
    owner_uid: int = 0
    name: str = ""

    resources: dict[str, float] = field(default_factory=lambda: {
        "wood": 0.0,
        "stone": 0.0,
        "silver": 0.0,
    })
    buildings: dict[str, int] = field(default_factory=lambda: {
        "warehouse": 1,
        "farm": 1,
    })
    units: dict[str, int] = field(default_factory=dict)
    wounded: dict[str, int] = field(default_factory=dict)
    god: Optional[str] = None
    worship: dict[str, float] = field(default_factory=dict)
    queues: dict[QueueKind, list[QueueTask]] = field(default_factory=_empty_queues)
    version: int = 0

    # -- Helpers ---------------------------------------------------------

    def building_level(self, building: str) -> int:
        """Level of a building, 0 if it was never built."""
        return int(self.buildings.get(building) or 0)

    def queue(self, kind: QueueKind) -> list[QueueTask]:
        """The queue for ``kind``, created empty if missing."""
        return self.queues.setdefault(kind, [])

    def find_task(self, kind: QueueKind, task_id: str) -> int:
        """Index of ``task_id`` in the queue, or -1."""
        for index, task in enumerate(self.queue(kind)):
            if task.task_id == task_id:
                return index
        return -1
