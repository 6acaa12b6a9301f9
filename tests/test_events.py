"""Tests for the event bus."""

from garrison.util.events import CityFounded, EventBus, TaskCancelled


def _cancelled(task_id: str = "a1") -> TaskCancelled:
    return TaskCancelled(
        cid=1, queue="barracks", task_id=task_id, unit_iid="archer", amount=2,
        refund={"wood": 50.0},
    )


class TestEventBus:
    def test_emit_triggers_handler(self):
        bus = EventBus()
        received = []
        bus.on(TaskCancelled, lambda e: received.append(e.task_id))
        bus.emit(_cancelled("t42"))
        assert received == ["t42"]

    def test_no_cross_event(self):
        bus = EventBus()
        received = []
        bus.on(TaskCancelled, lambda e: received.append("cancelled"))
        bus.emit(CityFounded(cid=1, owner_uid=2))
        assert received == []

    def test_multiple_handlers(self):
        bus = EventBus()
        a, b = [], []
        bus.on(TaskCancelled, lambda e: a.append(1))
        bus.on(TaskCancelled, lambda e: b.append(2))
        bus.emit(_cancelled())
        assert a == [1] and b == [2]

