"""Action handlers — one async handler per action type.

Each handler receives a parsed Action and the sender UID and returns a
response dict. Queue errors never escape a handler: they are logged and
turned into ``{"success": False, "code": ..., "error": ...}`` so the UI
can show a non-blocking notice and wait for the next authoritative read.

To add a new action:

1. Add its model to ``garrison.network.actions``.
2. Write the handler below.
3. Register it in :func:`register_all_handlers` at the bottom.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, TYPE_CHECKING, TypeVar

from garrison.engine.capacity import free_population, storage_capacity
from garrison.models.city import City
from garrison.models.task import QueueKind, QueueTask
from garrison.network.actions import (
    Action,
    CancelTask,
    CityRequest,
    CompleteDue,
    DismissUnits,
    FoundCity,
    HealUnits,
    TrainUnits,
)
from garrison.persistence.city_codec import city_to_dict
from garrison.util.errors import CityNotFound, Conflict, GarrisonError
from garrison.util.events import CityFounded

if TYPE_CHECKING:
    from garrison.main import Services

log = logging.getLogger(__name__)

T = TypeVar("T")

# Module-level reference set by register_all_handlers()
_services: Optional[Services] = None


def _svc() -> Services:
    """Get the Services container. Raises if not initialized."""
    assert _services is not None, "handlers: services not initialized"
    return _services


# ===================================================================
# Helpers
# ===================================================================

def _task_view(task: QueueTask, kind: Optional[QueueKind] = None) -> dict[str, Any]:
    view: dict[str, Any] = {
        "task_id": task.task_id,
        "unit_iid": task.unit_iid,
        "amount": task.amount,
        "end_time": task.end_time,
    }
    if kind is not None:
        view["queue"] = kind.value
    return view


def _city_view(city: City) -> dict[str, Any]:
    """Full city state plus derived capacities for the UI."""
    svc = _svc()
    view = city_to_dict(city)
    view["cid"] = city.cid
    view["version"] = city.version
    view["storage_capacity"] = storage_capacity(city, svc.game_config)
    view["free_population"] = free_population(city, svc.catalog, svc.game_config)
    return view


def _error(response_type: str, exc: GarrisonError) -> dict[str, Any]:
    return {"type": response_type, "success": False, **exc.to_dict()}


async def _owned_city(cid: int, sender_uid: int) -> City:
    """Load a city the sender may act on. UID 0 is the server itself."""
    city = await _svc().store.get_city(cid)
    if city is None or (sender_uid and city.owner_uid != sender_uid):
        raise CityNotFound(cid)
    return city


async def _with_retries(op: Callable[[], Awaitable[T]], attempts: int) -> T:
    """Re-run ``op`` from scratch while it fails with a Conflict."""
    attempts = max(attempts, 1)
    for attempt in range(1, attempts):
        try:
            return await op()
        except Conflict:
            log.info("Conflict on attempt %d/%d, retrying", attempt, attempts)
    return await op()


# ===================================================================
# City
# ===================================================================

async def handle_found_city(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``found_city`` — store a new city for the sender."""
    assert isinstance(action, FoundCity)
    svc = _svc()
    city = City(owner_uid=sender_uid, name=action.name, god=action.god)
    if action.god:
        city.worship[action.god] = 0.0
    await svc.store.create_city(city)
    svc.event_bus.emit(CityFounded(cid=city.cid, owner_uid=sender_uid))
    return {"type": "found_city_response", "success": True, "city": _city_view(city)}


async def handle_city_request(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``city_request`` — return the city's current state."""
    assert isinstance(action, CityRequest)
    try:
        city = await _owned_city(action.cid, sender_uid)
    except GarrisonError as exc:
        return _error("city_response", exc)
    return {"type": "city_response", "success": True, "city": _city_view(city)}


# ===================================================================
# Queues
# ===================================================================

async def handle_train_units(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``train_units`` — pay for and enqueue a training job."""
    assert isinstance(action, TrainUnits)
    svc = _svc()
    try:
        await _owned_city(action.cid, sender_uid)
        task = await svc.queue_service.train(action.cid, action.unit_iid, action.amount)
    except GarrisonError as exc:
        log.info("train_units failed uid=%d cid=%d: %s", sender_uid, action.cid, exc)
        return _error("train_response", exc)
    kind = svc.catalog.training_queue(action.unit_iid)
    return {"type": "train_response", "success": True, "task": _task_view(task, kind)}


async def handle_heal_units(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``heal_units`` — pay for and enqueue healing jobs."""
    assert isinstance(action, HealUnits)
    svc = _svc()
    try:
        await _owned_city(action.cid, sender_uid)
        tasks = await svc.queue_service.heal(action.cid, action.units)
    except GarrisonError as exc:
        log.info("heal_units failed uid=%d cid=%d: %s", sender_uid, action.cid, exc)
        return _error("heal_response", exc)
    return {
        "type": "heal_response",
        "success": True,
        "tasks": [_task_view(t, QueueKind.HEAL) for t in tasks],
    }


async def handle_cancel_task(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``cancel_task`` — cancel a job and refund it.

    The whole cancel is retried on a concurrent-write conflict, up to
    ``cancel_retries`` attempts. A task that is already gone (finished or
    cancelled elsewhere) is reported as not found.
    """
    assert isinstance(action, CancelTask)
    svc = _svc()
    try:
        await _owned_city(action.cid, sender_uid)
        task = await _with_retries(
            lambda: svc.queue_service.cancel(action.cid, action.queue, action.task_id),
            svc.game_config.cancel_retries,
        )
    except GarrisonError as exc:
        log.info("cancel_task failed uid=%d cid=%d task=%s: %s",
                 sender_uid, action.cid, action.task_id, exc)
        return _error("cancel_response", exc)
    return {"type": "cancel_response", "success": True, "task": _task_view(task, action.queue)}


async def handle_dismiss_units(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``dismiss_units`` — send trained units home."""
    assert isinstance(action, DismissUnits)
    svc = _svc()
    try:
        await _owned_city(action.cid, sender_uid)
        dismissed = await svc.queue_service.dismiss(action.cid, action.units)
    except GarrisonError as exc:
        log.info("dismiss_units failed uid=%d cid=%d: %s", sender_uid, action.cid, exc)
        return _error("dismiss_response", exc)
    return {"type": "dismiss_response", "success": True, "dismissed": dismissed}


async def handle_complete_due(action: Action, sender_uid: int) -> dict[str, Any]:
    """Handle ``complete_due`` — sweep finished jobs now instead of on the next tick."""
    assert isinstance(action, CompleteDue)
    svc = _svc()
    try:
        await _owned_city(action.cid, sender_uid)
        completed = await svc.queue_service.complete_due(action.cid)
    except GarrisonError as exc:
        return _error("complete_response", exc)
    return {
        "type": "complete_response",
        "success": True,
        "completed": [_task_view(task, kind) for kind, task in completed],
    }


# ===================================================================
# Registration
# ===================================================================

def register_all_handlers(services: Services) -> None:
    """Register all action handlers on the router.

    Called once during startup from ``main.py``.

    Args:
        services: Fully initialized Services container.
    """
    global _services
    _services = services

    router = services.router

    # -- City ------------------------------------------------------------
    router.register("found_city", handle_found_city)
    router.register("city_request", handle_city_request)

    # -- Queues ----------------------------------------------------------
    router.register("train_units", handle_train_units)
    router.register("heal_units", handle_heal_units)
    router.register("cancel_task", handle_cancel_task)
    router.register("complete_due", handle_complete_due)

    # -- Units -----------------------------------------------------------
    router.register("dismiss_units", handle_dismiss_units)

    if router.missing_types:
        log.warning("Actions without handler: %s", ", ".join(router.missing_types))
