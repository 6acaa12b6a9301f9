"""City codec — converts City models to plain dicts and back.

The dict form is what the store writes as JSON. Timestamps have a single
representation everywhere: ``end_time`` is float Unix seconds.
"""

from __future__ import annotations

from typing import Any

from garrison.models.city import City
from garrison.models.task import QueueKind, QueueTask


def _serialize_task(task: QueueTask) -> dict[str, Any]:
    return {
        "task_id": task.task_id,
        "unit_iid": task.unit_iid,
        "amount": task.amount,
        "end_time": task.end_time,
    }


def _deserialize_task(data: dict[str, Any]) -> QueueTask:
    return QueueTask(
        task_id=str(data["task_id"]),
        unit_iid=str(data["unit_iid"]),
        amount=int(data["amount"]),
        end_time=float(data["end_time"]),
    )


def city_to_dict(city: City) -> dict[str, Any]:
    """Serialize a city (without cid/version, which the store keeps in columns)."""
    return {
        "owner_uid": city.owner_uid,
        "name": city.name,
        "resources": dict(city.resources),
        "buildings": dict(city.buildings),
        "units": dict(city.units),
        "wounded": dict(city.wounded),
        "god": city.god,
        "worship": dict(city.worship),
        "queues": {
            kind.value: [_serialize_task(t) for t in city.queue(kind)]
            for kind in QueueKind
        },
    }


def city_from_dict(data: dict[str, Any], cid: int = 0, version: int = 0) -> City:
    """Restore a City from its dict form.

    Unknown queue names are dropped; missing queues start empty.
    """
    raw_queues = data.get("queues", {}) or {}
    queues: dict[QueueKind, list[QueueTask]] = {}
    for kind in QueueKind:
        queues[kind] = [_deserialize_task(t) for t in raw_queues.get(kind.value, []) or []]

    return City(
        cid=cid,
        owner_uid=int(data.get("owner_uid", 0)),
        name=data.get("name", ""),
        resources={k: float(v) for k, v in (data.get("resources", {}) or {}).items()},
        buildings={k: int(v) for k, v in (data.get("buildings", {}) or {}).items()},
        units={k: int(v) for k, v in (data.get("units", {}) or {}).items()},
        wounded={k: int(v) for k, v in (data.get("wounded", {}) or {}).items()},
        god=data.get("god"),
        worship={k: float(v) for k, v in (data.get("worship", {}) or {}).items()},
        queues=queues,
        version=version,
    )
