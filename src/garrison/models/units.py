"""Unit definition models.

Defines every trainable unit: land, naval and mythical.
Loaded from config/units.yaml via the unit_loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class UnitType(Enum):
    """Where a unit fights (and therefore where it is trained)."""

    LAND = "land"
    NAVAL = "naval"


@dataclass(frozen=True)
class UnitDetails:
    """Complete definition of a unit.

    Attributes:
        iid: Unique unit identifier string.
        name: Human-readable display name.
        unit_type: Land or naval.
        mythical: Mythical units are trained in the divine temple and cost favor.
        costs: Per-unit training costs. {wood, stone, silver, population, favor}
        time: Training time per unit in seconds.
        heal_costs: Per-unit healing costs. {wood, stone, silver}
        heal_time: Healing time per unit in seconds.
        attack: Attack strength.
        defense: Defense strength.
        speed: Travel speed on the world map.
    """

    iid: str = ""
    name: str = ""
    unit_type: UnitType = UnitType.LAND
    mythical: bool = False

    costs: dict[str, float] = field(default_factory=dict)
    time: float = 0.0
    heal_costs: dict[str, float] = field(default_factory=dict)
    heal_time: float = 0.0

    attack: float = 0.0
    defense: float = 0.0
    speed: float = 0.0
