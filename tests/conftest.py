"""
Shared pytest fixtures for garrison tests.

Provides:
  - A small unit catalog with land, naval and mythical units
  - A controllable wall clock
  - A CityStore on a temporary SQLite file
  - A QueueService wired to all of the above, plus the events it emitted
  - A full Services container with every action handler registered
"""

from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio

from garrison.engine.queue_service import QueueService
from garrison.engine.unit_catalog import UnitCatalog
from garrison.loaders.game_config_loader import GameConfig
from garrison.main import Services, wire_events
from garrison.models.units import UnitDetails, UnitType
from garrison.network.handlers import register_all_handlers
from garrison.network.router import Router
from garrison.persistence.database import CityStore
from garrison.util.cache import TTLCache
from garrison.util.events import EventBus, TaskCancelled, TaskCompleted, TaskEnqueued, UnitsDismissed


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

TEST_UNITS = [
    UnitDetails(
        iid="archer", name="Archer", unit_type=UnitType.LAND,
        costs={"wood": 25, "stone": 0, "silver": 40, "population": 1}, time=30,
        heal_costs={"wood": 5, "silver": 10}, heal_time=10,
    ),
    UnitDetails(
        iid="hoplite", name="Hoplite", unit_type=UnitType.LAND,
        costs={"stone": 75, "silver": 150, "population": 1}, time=60,
        heal_costs={"stone": 15, "silver": 30}, heal_time=20,
    ),
    UnitDetails(
        iid="trireme", name="Trireme", unit_type=UnitType.NAVAL,
        costs={"wood": 2000, "stone": 1300, "silver": 900, "population": 16}, time=300,
        heal_costs={"wood": 400, "stone": 260, "silver": 180}, heal_time=90,
    ),
    UnitDetails(
        iid="pegasus", name="Pegasus", unit_type=UnitType.LAND, mythical=True,
        costs={"wood": 100, "stone": 50, "silver": 20, "population": 2, "favor": 10}, time=100,
        heal_costs={"wood": 20}, heal_time=40,
    ),
]


@pytest.fixture
def catalog() -> UnitCatalog:
    cat = UnitCatalog()
    cat.load(TEST_UNITS)
    return cat


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable wall clock that only moves when told to."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Store & service
# ---------------------------------------------------------------------------

@pytest.fixture
def game_config() -> GameConfig:
    return GameConfig()


@pytest_asyncio.fixture
async def store(tmp_path):
    """A fresh CityStore backed by a temporary SQLite file."""
    city_store = CityStore(str(tmp_path / "cities.db"))
    await city_store.connect()
    yield city_store
    await city_store.close()


@pytest.fixture
def events() -> list[Any]:
    """Every queue event emitted by the ``service`` fixture, in order."""
    return []


@pytest.fixture
def bus(events) -> EventBus:
    event_bus = EventBus()
    for event_type in (TaskEnqueued, TaskCancelled, TaskCompleted, UnitsDismissed):
        event_bus.on(event_type, events.append)
    return event_bus


@pytest.fixture
def service(store, catalog, bus, game_config, clock) -> QueueService:
    return QueueService(store, catalog, bus, game_config, clock=clock)


@pytest.fixture
def services(store, catalog, bus, game_config, service, clock) -> Services:
    """Services container with handlers registered, as ``main`` wires it."""
    svc = Services(
        game_config=game_config,
        event_bus=bus,
        catalog=catalog,
        store=store,
        queue_service=service,
        router=Router(),
        city_directory=TTLCache(store.list_cities, game_config.city_directory_ttl_s, clock=clock),
    )
    wire_events(svc)
    register_all_handlers(svc)
    return svc
