"""Unit catalog — read-only unit database.

Loads unit definitions from config and provides lookup and the
per-queue cost and duration tables.
"""

from __future__ import annotations

from garrison.models.task import QueueKind
from garrison.models.units import UnitDetails, UnitType
from garrison.util.errors import InvalidReference


class UnitCatalog:
    """Unit database — read-only after initialization.

    Attributes:
        units: All unit definitions keyed by IID.
    """

    def __init__(self) -> None:
        self.units: dict[str, UnitDetails] = {}

    def load(self, units: list[UnitDetails]) -> None:
        """Load unit definitions into the catalog."""
        self.units = {unit.iid: unit for unit in units}

    def get(self, iid: str) -> UnitDetails | None:
        """Look up a unit by IID."""
        return self.units.get(iid)

    def require(self, iid: str) -> UnitDetails:
        """Look up a unit by IID, raising InvalidReference if unknown."""
        unit = self.units.get(iid)
        if unit is None:
            raise InvalidReference(iid)
        return unit

    def unit_costs(self, iid: str, kind: QueueKind) -> dict[str, float]:
        """Per-unit costs that apply to ``kind`` (heal costs for the heal queue)."""
        unit = self.require(iid)
        return dict(unit.heal_costs if kind.is_heal else unit.costs)

    def duration(self, iid: str, amount: int, kind: QueueKind) -> float:
        """Seconds a job of ``amount`` units takes in ``kind``."""
        unit = self.require(iid)
        per_unit = unit.heal_time if kind.is_heal else unit.time
        return per_unit * amount

    def training_queue(self, iid: str) -> QueueKind:
        """The queue a unit is trained in."""
        unit = self.require(iid)
        if unit.unit_type == UnitType.NAVAL:
            return QueueKind.SHIPYARD
        if unit.mythical:
            return QueueKind.DIVINE_TEMPLE
        return QueueKind.BARRACKS
