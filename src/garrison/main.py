"""Garrison server entry point.

Initializes all components and starts the asyncio event loop:
1. Load configuration (game constants, unit catalog)
2. Open the city store
3. Create services (catalog, queue service, sweep loop, router, caches)
4. Wire event handlers
5. Start the REST API
6. Run the completion sweep loop until shutdown

Usage:
    python -m garrison.main [--config config/game.yaml]
    # or via entry point:
    garrison
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass, field
from typing import Any, Optional

from garrison.engine.game_loop import GameLoop
from garrison.engine.queue_service import QueueService
from garrison.engine.unit_catalog import UnitCatalog
from garrison.loaders.game_config_loader import (
    DEFAULT_GAME_CONFIG_PATH,
    GameConfig,
    load_game_config,
)
from garrison.loaders.unit_loader import load_units
from garrison.models.units import UnitDetails
from garrison.network.handlers import register_all_handlers
from garrison.network.router import Router
from garrison.persistence.database import CityStore
from garrison.util.cache import TTLCache
from garrison.util.events import (
    CityFounded,
    EventBus,
    TaskCancelled,
    TaskCompleted,
    UnitsDismissed,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


@dataclass
class Configuration:
    """Holds all data loaded from config files."""

    game: GameConfig = field(default_factory=GameConfig)
    units: list[UnitDetails] = field(default_factory=list)


@dataclass
class Services:
    """Holds references to all services."""

    game_config: GameConfig
    event_bus: EventBus
    catalog: UnitCatalog
    store: CityStore
    queue_service: QueueService
    router: Router
    city_directory: TTLCache[list[dict[str, Any]]]
    game_loop: Optional[GameLoop] = None
    rest_server: Any = None


# ===================================================================
# 1. Load configuration
# ===================================================================


def load_configuration(config_path: str = DEFAULT_GAME_CONFIG_PATH) -> Configuration:
    """Load game constants and the unit catalog from YAML files."""
    log.info("Loading configuration …")
    game = load_game_config(config_path)
    units = load_units(game.units_path)
    log.info("  units:        %d loaded from %s", len(units), game.units_path)
    return Configuration(game=game, units=units)


# ===================================================================
# 2-3. Persistence and services
# ===================================================================


async def init_persistence(game: GameConfig) -> CityStore:
    """Open the city store."""
    store = CityStore(game.db_path)
    await store.connect()
    return store


def create_services(config: Configuration, store: CityStore) -> Services:
    """Instantiate all services with proper dependency injection.

    Args:
        config: Loaded configuration.
        store: Connected city store.
    """
    log.info("Creating services …")
    gc = config.game
    event_bus = EventBus()
    catalog = UnitCatalog()
    catalog.load(config.units)

    queue_service = QueueService(store, catalog, event_bus, gc)
    svc = Services(
        game_config=gc,
        event_bus=event_bus,
        catalog=catalog,
        store=store,
        queue_service=queue_service,
        router=Router(),
        city_directory=TTLCache(store.list_cities, gc.city_directory_ttl_s, name="city_directory"),
    )
    svc.game_loop = GameLoop(store, queue_service, gc)
    log.info("  all services created")
    return svc


# ===================================================================
# 4. Wire up event handlers
# ===================================================================


def wire_events(services: Services) -> None:
    """Register event handlers that connect services via the EventBus."""
    bus = services.event_bus
    directory = services.city_directory

    # New city → directory listing is stale
    bus.on(CityFounded, lambda evt: directory.invalidate())

    bus.on(TaskCompleted, lambda evt: log.debug("notify city %d: %s", evt.cid, evt.message))
    bus.on(TaskCancelled, lambda evt: log.debug(
        "city %d: %s task %s cancelled", evt.cid, evt.queue, evt.task_id))
    bus.on(UnitsDismissed, lambda evt: log.debug("city %d: dismissed %s", evt.cid, evt.units))
    log.info("  event handlers registered")


# ===================================================================
# 5. Start REST API
# ===================================================================


async def start_network(services: Services) -> None:
    """Register action handlers and start the REST API (uvicorn task)."""
    from garrison.network.rest_api import create_app
    import uvicorn

    register_all_handlers(services)

    gc = services.game_config
    app = create_app(services)
    config = uvicorn.Config(
        app,
        host=gc.rest_host,
        port=gc.rest_port,
        log_level=gc.log_level.lower(),
        access_log=False,
    )
    services.rest_server = uvicorn.Server(config)
    asyncio.create_task(services.rest_server.serve())
    log.info("  REST API listening on http://%s:%d", gc.rest_host, gc.rest_port)


# ===================================================================
# 6. Sweep loop
# ===================================================================


async def run_game_loop(services: Services) -> None:
    """Run the completion sweep until SIGINT / SIGTERM, then shut down."""
    loop = asyncio.get_running_loop()

    def _request_shutdown() -> None:
        log.info("Shutdown signal received, stopping …")
        services.game_loop.stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _request_shutdown)

    log.info("  sweep loop running (%.1f s tick)", services.game_config.sweep_interval_s)
    await services.game_loop.run()

    log.info("Shutting down …")
    if services.rest_server is not None:
        services.rest_server.should_exit = True
        log.info("  REST API server stopped")
    await services.store.close()
    log.info("  database closed")


# ===================================================================
# Entry points
# ===================================================================


async def _start(config_path: str = DEFAULT_GAME_CONFIG_PATH) -> None:
    config = load_configuration(config_path)
    logging.getLogger().setLevel(config.game.log_level.upper())

    store = await init_persistence(config.game)
    services = create_services(config, store)
    wire_events(services)
    await start_network(services)
    await run_game_loop(services)


def main() -> None:
    """Entry point for the garrison server.

    Supports command-line arguments:
        --config <path>  Game config YAML (default: config/game.yaml)
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config_path = DEFAULT_GAME_CONFIG_PATH
    if "--config" in sys.argv:
        idx = sys.argv.index("--config")
        if idx + 1 >= len(sys.argv):
            print("Error: --config requires an argument", file=sys.stderr)
            sys.exit(1)
        config_path = sys.argv[idx + 1]

    log.info("=== Garrison starting ===")
    asyncio.run(_start(config_path))


if __name__ == "__main__":
    main()
