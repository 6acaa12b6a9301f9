"""Queue service — training and healing queues of a city.

Responsibilities:
- Enqueue training jobs (barracks, shipyard, divine temple)
- Enqueue healing jobs (hospital)
- Cancel any queued job: refund its cost, re-chain the jobs behind it
- Sweep completed jobs into the city's unit pool
- Dismiss trained units

Every operation is one ``CityStore.run_transaction``: the city is read
fresh, validated, mutated and written back with a version check, so a
failure of any kind leaves the stored city untouched. Events are emitted
only after the write commits.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Callable, Optional

from garrison.engine.capacity import free_population, storage_capacity
from garrison.loaders.game_config_loader import GameConfig
from garrison.models.task import QueueKind, QueueTask
from garrison.util.errors import ActionRejected, InvalidReference, TaskNotFound
from garrison.util.events import TaskCancelled, TaskCompleted, TaskEnqueued, UnitsDismissed

if TYPE_CHECKING:
    from garrison.engine.unit_catalog import UnitCatalog
    from garrison.models.city import City
    from garrison.persistence.database import CityStore
    from garrison.util.events import EventBus

log = logging.getLogger(__name__)

# (queue kind, task) pairs removed from queues by a sweep
Completed = list[tuple[QueueKind, QueueTask]]


class QueueService:
    """Service for all city queue mutations.

    Args:
        store: Transactional city store.
        catalog: Unit database for costs and durations.
        event_bus: Event bus for post-commit notifications.
        game_config: Tunables (capacities, queue length, resource kinds).
        clock: Wall-clock source in Unix seconds.
    """

    def __init__(
        self,
        store: CityStore,
        catalog: UnitCatalog,
        event_bus: EventBus,
        game_config: GameConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._events = event_bus
        self._config = game_config or GameConfig()
        self._clock = clock

    # -- Cancel ----------------------------------------------------------

    async def cancel(self, cid: int, kind: QueueKind, task_id: str) -> QueueTask:
        """Remove a job from a queue, refund its cost and re-chain the rest.

        The refund is ``unit cost * amount`` per resource kind (heal costs
        for the heal queue), capped at the warehouse capacity. Cancelling a
        heal job also returns its units to the wounded pool. Every job
        behind the removed one gets a new end time so the queue stays
        contiguous: the new head restarts from now, each later job starts
        where its predecessor ends.

        Returns:
            The removed task.

        Raises:
            CityNotFound: the city does not exist.
            TaskNotFound: the task is not (or no longer) in the queue.
            InvalidReference: a task names a unit missing from the catalog.
            TransactionConflict: the city changed concurrently; retryable.
        """

        def _apply(city: City) -> tuple[QueueTask, dict[str, float]]:
            now = self._clock()
            index = city.find_task(kind, task_id)
            if index < 0:
                raise TaskNotFound(cid, kind.value, task_id)

            queue = list(city.queue(kind))
            cancelled = queue.pop(index)
            refund = self._refund(cancelled, kind)
            queue = self._rechain(queue, index, kind, now)

            capacity = storage_capacity(city, self._config)
            for res, amount in refund.items():
                total = city.resources.get(res, 0.0) + amount
                city.resources[res] = max(0.0, min(float(capacity), total))

            if kind.is_heal:
                city.wounded[cancelled.unit_iid] = (
                    city.wounded.get(cancelled.unit_iid, 0) + cancelled.amount
                )

            city.queues[kind] = queue
            return cancelled, refund

        try:
            cancelled, refund = await self._store.run_transaction(cid, _apply)
        except InvalidReference as exc:
            log.error("City %d: cannot cancel %s in %s queue: %s", cid, task_id, kind.value, exc)
            raise

        log.info("City %d: cancelled %dx %s in %s queue (refund %s)",
                 cid, cancelled.amount, cancelled.unit_iid, kind.value, refund)
        self._events.emit(TaskCancelled(
            cid=cid,
            queue=kind.value,
            task_id=cancelled.task_id,
            unit_iid=cancelled.unit_iid,
            amount=cancelled.amount,
            refund=dict(refund),
        ))
        return cancelled

    def _refund(self, task: QueueTask, kind: QueueKind) -> dict[str, float]:
        """Full cost of a job per stored resource kind. Missing costs give 0."""
        costs = self._catalog.unit_costs(task.unit_iid, kind)
        return {
            res: costs.get(res, 0.0) * task.amount
            for res in self._config.resource_kinds
        }

    def _rechain(
        self, queue: list[QueueTask], start: int, kind: QueueKind, now: float,
    ) -> list[QueueTask]:
        """Recompute end times from ``start`` to the end of the queue.

        Jobs before ``start`` keep their end times.
        """
        chained = list(queue)
        for i in range(start, len(chained)):
            prev_end = now if i == 0 else chained[i - 1].end_time
            task = chained[i]
            duration = self._catalog.duration(task.unit_iid, task.amount, kind)
            chained[i] = replace(task, end_time=prev_end + duration)
        return chained

    # -- Enqueue ---------------------------------------------------------

    async def train(self, cid: int, unit_iid: str, amount: int) -> QueueTask:
        """Pay for and enqueue ``amount`` units of ``unit_iid``.

        The queue is picked from the unit: naval units go to the shipyard,
        mythical units to the divine temple, everything else to the
        barracks. Jobs that already finished are swept first.

        Raises:
            ActionRejected: invalid amount, missing building, full queue,
                or not enough resources, population or favor.
            InvalidReference: unknown unit.
        """
        if amount <= 0:
            raise ActionRejected("Amount must be positive", context={"amount": amount})
        kind = self._catalog.training_queue(unit_iid)

        def _apply(city: City) -> tuple[QueueTask, Completed, str]:
            now = self._clock()
            unit = self._catalog.require(unit_iid)
            if city.building_level(kind.building) <= 0:
                raise ActionRejected(f"{unit.name} can only be trained with a {kind.building}")

            completed = self._collect_due(city, now)
            queue = city.queue(kind)
            if len(queue) >= self._config.max_queue_length:
                raise ActionRejected(
                    f"{kind.value} queue is full (max {self._config.max_queue_length})")

            total = {res: unit.costs.get(res, 0.0) * amount for res in self._config.resource_kinds}
            self._check_affordable(city, total)

            population = unit.costs.get("population", 0.0) * amount
            available = free_population(city, self._catalog, self._config)
            if available < population:
                raise ActionRejected(f"Need {population - available:g} more population capacity")

            favor = unit.costs.get("favor", 0.0) * amount
            if unit.mythical:
                if not city.god:
                    raise ActionRejected(f"{unit.name} requires a worshipped god")
                have = city.worship.get(city.god, 0.0)
                if have < favor:
                    raise ActionRejected(f"Need {favor - have:g} more favor for {city.god}")

            for res, cost in total.items():
                city.resources[res] = city.resources.get(res, 0.0) - cost
            if unit.mythical:
                city.worship[city.god] = city.worship.get(city.god, 0.0) - favor

            start = queue[-1].end_time if queue else now
            task = QueueTask(
                unit_iid=unit_iid,
                amount=amount,
                end_time=start + self._catalog.duration(unit_iid, amount, kind),
            )
            queue.append(task)
            return task, completed, city.name

        task, completed, city_name = await self._store.run_transaction(cid, _apply)
        self._announce_completed(cid, completed, city_name)
        log.info("City %d: training %dx %s in %s queue", cid, amount, unit_iid, kind.value)
        self._emit_enqueued(cid, kind, task)
        return task

    async def heal(self, cid: int, units_to_heal: dict[str, int]) -> list[QueueTask]:
        """Pay for and enqueue healing of wounded units, one job per unit kind.

        Raises:
            ActionRejected: nothing to heal, no hospital, not enough wounded,
                queue space, resources or population.
            InvalidReference: unknown unit.
        """
        wanted = {iid: n for iid, n in units_to_heal.items() if n > 0}
        if not wanted:
            raise ActionRejected("No units selected for healing")
        kind = QueueKind.HEAL

        def _apply(city: City) -> tuple[list[QueueTask], Completed, str]:
            now = self._clock()
            if city.building_level(kind.building) <= 0:
                raise ActionRejected("Healing requires a hospital")

            completed = self._collect_due(city, now)
            queue = city.queue(kind)
            if len(queue) + len(wanted) > self._config.max_queue_length:
                raise ActionRejected("Not enough space in the healing queue")

            total = {res: 0.0 for res in self._config.resource_kinds}
            population = 0.0
            for iid, n in wanted.items():
                unit = self._catalog.require(iid)
                if city.wounded.get(iid, 0) < n:
                    raise ActionRejected(
                        f"Only {city.wounded.get(iid, 0)} wounded {unit.name} available")
                for res in total:
                    total[res] += unit.heal_costs.get(res, 0.0) * n
                population += unit.costs.get("population", 0.0) * n

            self._check_affordable(city, total)
            if free_population(city, self._catalog, self._config) < population:
                raise ActionRejected("Not enough available population to heal these units")

            for res, cost in total.items():
                city.resources[res] = city.resources.get(res, 0.0) - cost

            added: list[QueueTask] = []
            last_end = queue[-1].end_time if queue else now
            for iid, n in wanted.items():
                city.wounded[iid] -= n
                if city.wounded[iid] <= 0:
                    del city.wounded[iid]
                task = QueueTask(
                    unit_iid=iid,
                    amount=n,
                    end_time=last_end + self._catalog.duration(iid, n, kind),
                )
                queue.append(task)
                added.append(task)
                last_end = task.end_time
            return added, completed, city.name

        added, completed, city_name = await self._store.run_transaction(cid, _apply)
        self._announce_completed(cid, completed, city_name)
        log.info("City %d: healing %s", cid, wanted)
        for task in added:
            self._emit_enqueued(cid, kind, task)
        return added

    # -- Dismiss ---------------------------------------------------------

    async def dismiss(self, cid: int, units_to_dismiss: dict[str, int]) -> dict[str, int]:
        """Send trained units home. Nothing is refunded.

        Raises:
            ActionRejected: nothing selected, or more of a unit than the
                city has. The city is left unchanged.
        """
        wanted = {iid: n for iid, n in units_to_dismiss.items() if n > 0}
        if not wanted:
            raise ActionRejected("No units selected for dismissal")

        def _apply(city: City) -> None:
            for iid, n in wanted.items():
                have = city.units.get(iid, 0)
                if have < n:
                    raise ActionRejected(
                        f"Trying to dismiss more {iid} than available",
                        context={"unit_iid": iid, "need": n, "have": have},
                    )
            for iid, n in wanted.items():
                city.units[iid] -= n
                if city.units[iid] == 0:
                    del city.units[iid]

        await self._store.run_transaction(cid, _apply)
        log.info("City %d: dismissed %s", cid, wanted)
        self._events.emit(UnitsDismissed(cid=cid, units=dict(wanted)))
        return wanted

    def _check_affordable(self, city: City, total: dict[str, float]) -> None:
        for res, cost in total.items():
            have = city.resources.get(res, 0.0)
            if have < cost:
                raise ActionRejected(
                    f"Need {cost - have:g} more {res}",
                    context={"resource": res, "need": cost, "have": have},
                )

    def _emit_enqueued(self, cid: int, kind: QueueKind, task: QueueTask) -> None:
        self._events.emit(TaskEnqueued(
            cid=cid,
            queue=kind.value,
            task_id=task.task_id,
            unit_iid=task.unit_iid,
            amount=task.amount,
            end_time=task.end_time,
        ))

    # -- Completion ------------------------------------------------------

    async def complete_due(self, cid: int) -> Completed:
        """Move every finished job's units into the city.

        Returns:
            The completed (queue kind, task) pairs, oldest first per queue.
        """

        def _apply(city: City) -> tuple[Completed, str]:
            return self._collect_due(city, self._clock()), city.name

        completed, city_name = await self._store.run_transaction(cid, _apply)
        self._announce_completed(cid, completed, city_name)
        return completed

    def _collect_due(self, city: City, now: float) -> Completed:
        """Pop every job with ``end_time <= now`` and credit its units."""
        completed: Completed = []
        for kind in QueueKind:
            queue = city.queue(kind)
            if not queue:
                continue
            done = [t for t in queue if t.end_time <= now]
            if not done:
                continue
            city.queues[kind] = [t for t in queue if t.end_time > now]
            for task in done:
                city.units[task.unit_iid] = city.units.get(task.unit_iid, 0) + task.amount
                completed.append((kind, task))
        return completed

    def _announce_completed(
        self, cid: int, completed: Completed, city_name: Optional[str] = None,
    ) -> None:
        for kind, task in completed:
            message = self._completion_message(kind, task, city_name)
            log.info("City %d: %s", cid, message)
            self._events.emit(TaskCompleted(
                cid=cid,
                queue=kind.value,
                task_id=task.task_id,
                unit_iid=task.unit_iid,
                amount=task.amount,
                message=message,
            ))

    def _completion_message(
        self, kind: QueueKind, task: QueueTask, city_name: Optional[str],
    ) -> str:
        unit = self._catalog.get(task.unit_iid)
        name = unit.name if unit is not None else task.unit_iid
        verb = "Healing" if kind.is_heal else "Training"
        where = f" in {city_name}" if city_name else ""
        return f"{verb} of {task.amount}x {name} is complete{where}."
