"""Game configuration — loads tunable constants from config/game.yaml.

Provides a single ``GameConfig`` dataclass that is loaded once at startup
and then passed (or injected) wherever constants are needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import yaml

log = logging.getLogger(__name__)

DEFAULT_GAME_CONFIG_PATH = "config/game.yaml"


@dataclass
class GameConfig:
    """All tunable gameplay constants.

    Loaded from ``config/game.yaml``.  Every field has a sensible default
    so the server can start even without the file.
    """

    # -- Economy -----------------------------------------------------
    resource_kinds: List[str] = field(default_factory=lambda: ["wood", "stone", "silver"])
    warehouse_base_capacity: float = 1500.0
    warehouse_growth: float = 1.4
    farm_base_capacity: float = 200.0
    farm_growth: float = 1.25

    # -- Queues ------------------------------------------------------
    max_queue_length: int = 5
    cancel_retries: int = 3
    sweep_interval_s: float = 1.0

    # -- Caches ------------------------------------------------------
    city_directory_ttl_s: float = 300.0

    # -- Persistence -------------------------------------------------
    db_path: str = "garrison.db"
    units_path: str = "config/units.yaml"

    # -- Network -----------------------------------------------------
    rest_host: str = "0.0.0.0"
    rest_port: int = 8080
    log_level: str = "INFO"


def load_game_config(path: str = DEFAULT_GAME_CONFIG_PATH) -> GameConfig:
    """Load game configuration from a YAML file.

    Missing keys fall back to dataclass defaults.  If the file does not
    exist, a warning is logged and pure defaults are returned.
    """
    p = Path(path)
    if not p.exists():
        log.warning("Game config not found at %s, using defaults", p)
        return GameConfig()

    with p.open() as f:
        raw = yaml.safe_load(f) or {}

    log.info("Loaded game config from %s (%d keys)", p, len(raw))

    unknown = sorted(k for k in raw if k not in GameConfig.__dataclass_fields__)
    if unknown:
        log.warning("Ignoring unknown game config keys: %s", ", ".join(unknown))

    return GameConfig(**{
        k: v for k, v in raw.items()
        if k in GameConfig.__dataclass_fields__
    })
