"""Unit loader — parses the unit YAML file into UnitDetails models.

The file maps unit IIDs to their attributes::

    archer:
      name: Archer
      type: land
      cost: {wood: 25, stone: 0, silver: 40, population: 1, time: 20}
      heal_cost: {wood: 5, stone: 0, silver: 10}
      heal_time: 8
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from garrison.models.units import UnitDetails, UnitType

log = logging.getLogger(__name__)

DEFAULT_UNITS_PATH = "config/units.yaml"


def _parse_unit(iid: str, attrs: dict) -> UnitDetails:
    """Build a UnitDetails from one YAML entry."""
    cost = dict(attrs.get("cost", {}) or {})
    time = float(cost.pop("time", 0))
    return UnitDetails(
        iid=iid,
        name=attrs.get("name", iid),
        unit_type=UnitType(attrs.get("type", "land")),
        mythical=bool(attrs.get("mythical", False)),
        costs={k: float(v) for k, v in cost.items()},
        time=time,
        heal_costs={k: float(v) for k, v in (attrs.get("heal_cost", {}) or {}).items()},
        heal_time=float(attrs.get("heal_time", 0)),
        attack=float(attrs.get("attack", 0)),
        defense=float(attrs.get("defense", 0)),
        speed=float(attrs.get("speed", 0)),
    )


def load_units(path: str | Path = DEFAULT_UNITS_PATH) -> list[UnitDetails]:
    """Load all unit definitions from a YAML file.

    Entries that are not mappings are skipped.

    Returns:
        List of UnitDetails objects.
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f) or {}

    units: list[UnitDetails] = []
    for iid, attrs in data.items():
        if not isinstance(attrs, dict):
            log.warning("Skipping malformed unit entry %r in %s", iid, path)
            continue
        units.append(_parse_unit(iid, attrs))
    return units
