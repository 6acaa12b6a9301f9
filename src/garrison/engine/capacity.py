"""Storage and population capacity curves."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from garrison.engine.unit_catalog import UnitCatalog
    from garrison.loaders.game_config_loader import GameConfig
    from garrison.models.city import City


def level_capacity(level: int, base: float, growth: float) -> int:
    """``floor(base * growth^(level-1))``, 0 for an unbuilt building."""
    if not level:
        return 0
    return int(math.floor(base * math.pow(growth, level - 1)))


def warehouse_capacity(level: int, base: float = 1500.0, growth: float = 1.4) -> int:
    """Per-resource storage ceiling for a warehouse level."""
    return level_capacity(level, base, growth)


def farm_capacity(level: int, base: float = 200.0, growth: float = 1.25) -> int:
    """Population ceiling for a farm level."""
    return level_capacity(level, base, growth)


def storage_capacity(city: City, config: GameConfig) -> int:
    return warehouse_capacity(
        city.building_level("warehouse"),
        config.warehouse_base_capacity,
        config.warehouse_growth,
    )


def used_population(city: City, catalog: UnitCatalog) -> float:
    """Population bound by trained units and every queued job.

    Wounded units waiting for the hospital do not count. Units missing
    from the catalog are ignored here; the queue operations reject them.
    """
    used = 0.0
    for iid, count in city.units.items():
        unit = catalog.get(iid)
        if unit is not None:
            used += unit.costs.get("population", 0.0) * count
    for tasks in city.queues.values():
        for task in tasks:
            unit = catalog.get(task.unit_iid)
            if unit is not None:
                used += unit.costs.get("population", 0.0) * task.amount
    return used


def free_population(city: City, catalog: UnitCatalog, config: GameConfig) -> float:
    cap = farm_capacity(city.building_level("farm"), config.farm_base_capacity, config.farm_growth)
    return cap - used_population(city, catalog)
