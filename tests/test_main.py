"""Tests for startup wiring in garrison.main."""

from pathlib import Path

import pytest

from garrison.main import create_services, load_configuration, wire_events
from garrison.util.events import CityFounded

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


@pytest.fixture
def config_file(tmp_path) -> str:
    path = tmp_path / "game.yaml"
    path.write_text(
        f"units_path: {CONFIG_DIR / 'units.yaml'}\n"
        f"db_path: {tmp_path / 'garrison.db'}\n"
        "cancel_retries: 5\n"
    )
    return str(path)


def test_load_configuration(config_file):
    config = load_configuration(config_file)
    assert config.game.cancel_retries == 5
    assert "trireme" in {u.iid for u in config.units}


@pytest.mark.asyncio
async def test_create_services_wires_catalog_and_loop(config_file, store):
    services = create_services(load_configuration(config_file), store)

    assert services.catalog.get("archer") is not None
    assert services.game_loop is not None
    assert await services.game_loop.step() == 0


@pytest.mark.asyncio
async def test_city_founded_invalidates_directory(config_file, store):
    services = create_services(load_configuration(config_file), store)
    wire_events(services)

    await services.city_directory.get()
    assert services.city_directory.is_fresh
    services.event_bus.emit(CityFounded(cid=1, owner_uid=1))
    assert not services.city_directory.is_fresh
