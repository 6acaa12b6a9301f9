"""Tests for the completion sweep and the periodic game loop."""

import asyncio

import pytest

from garrison.engine.game_loop import GameLoop
from garrison.engine.queue_service import QueueService
from garrison.loaders.game_config_loader import GameConfig
from garrison.models.city import City
from garrison.models.task import QueueKind, QueueTask
from garrison.persistence.database import CityStore
from garrison.util.errors import TaskNotFound, TransactionConflict
from garrison.util.events import TaskCompleted


def _city_with_jobs() -> City:
    city = City(owner_uid=1, name="Sparta")
    city.queues[QueueKind.BARRACKS] = [
        QueueTask(task_id="a", unit_iid="archer", amount=2, end_time=950.0),
        QueueTask(task_id="b", unit_iid="hoplite", amount=1, end_time=1000.0),
        QueueTask(task_id="c", unit_iid="archer", amount=4, end_time=1120.0),
    ]
    city.queues[QueueKind.HEAL] = [
        QueueTask(task_id="h", unit_iid="hoplite", amount=3, end_time=990.0),
    ]
    return city


class TestCompleteDue:
    @pytest.mark.asyncio
    async def test_moves_finished_jobs_into_units(self, service, store):
        city = _city_with_jobs()
        await store.create_city(city)

        completed = await service.complete_due(city.cid)

        assert [(k, t.task_id) for k, t in completed] == [
            (QueueKind.BARRACKS, "a"),
            (QueueKind.BARRACKS, "b"),
            (QueueKind.HEAL, "h"),
        ]
        after = await store.get_city(city.cid)
        assert after.units == {"archer": 2, "hoplite": 4}
        assert [t.task_id for t in after.queue(QueueKind.BARRACKS)] == ["c"]
        assert after.queue(QueueKind.HEAL) == []
        # remaining job keeps its end time
        assert after.queue(QueueKind.BARRACKS)[0].end_time == 1120.0

    @pytest.mark.asyncio
    async def test_completion_messages(self, service, store, events):
        city = _city_with_jobs()
        await store.create_city(city)

        await service.complete_due(city.cid)

        messages = [e.message for e in events if isinstance(e, TaskCompleted)]
        assert messages == [
            "Training of 2x Archer is complete in Sparta.",
            "Training of 1x Hoplite is complete in Sparta.",
            "Healing of 3x Hoplite is complete in Sparta.",
        ]

    @pytest.mark.asyncio
    async def test_nothing_due(self, service, store, events, clock):
        city = _city_with_jobs()
        await store.create_city(city)
        clock.now = 900.0

        assert await service.complete_due(city.cid) == []
        assert events == []

    @pytest.mark.asyncio
    async def test_cancel_after_completion_is_not_found(self, service, store):
        city = _city_with_jobs()
        await store.create_city(city)
        await service.complete_due(city.cid)

        with pytest.raises(TaskNotFound):
            await service.cancel(city.cid, QueueKind.BARRACKS, "a")


class TestGameLoop:
    @pytest.mark.asyncio
    async def test_step_sweeps_every_city(self, service, store, game_config):
        first = _city_with_jobs()
        second = _city_with_jobs()
        await store.create_city(first)
        await store.create_city(second)
        loop = GameLoop(store, service, game_config)

        assert await loop.step() == 6
        assert loop.completed_total == 6
        assert await loop.step() == 0

    @pytest.mark.asyncio
    async def test_conflicting_city_is_skipped(self, tmp_path, catalog, bus, clock):
        class BumpingStore(CityStore):
            async def _read(self, cid):
                city = await super()._read(cid)
                if cid == self.contested:
                    await self._conn.execute(
                        "UPDATE cities SET version = version + 1 WHERE cid = ?", (cid,))
                    await self._conn.commit()
                return city

        store = BumpingStore(str(tmp_path / "loop.db"))
        await store.connect()
        try:
            calm, busy = _city_with_jobs(), _city_with_jobs()
            await store.create_city(calm)
            await store.create_city(busy)
            store.contested = busy.cid
            service = QueueService(store, catalog, bus, GameConfig(), clock=clock)
            loop = GameLoop(store, service)

            assert await loop.step() == 3
            assert loop.conflicts_total == 1
            with pytest.raises(TransactionConflict):
                await service.complete_due(busy.cid)
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_stop(self, service, store):
        loop = GameLoop(store, service, GameConfig(sweep_interval_s=0.01))
        assert not loop.is_running
        assert loop.uptime_seconds == 0.0

        task = asyncio.create_task(loop.run())
        await asyncio.sleep(0.05)
        assert loop.is_running
        loop.stop()
        await asyncio.wait_for(task, timeout=1.0)
        assert loop.tick_count >= 1
