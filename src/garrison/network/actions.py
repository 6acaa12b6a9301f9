"""Action models — the closed set of requests the UI can send.

Each action type gets its own pydantic model with a literal ``type`` tag
and exactly one payload shape. ``parse_action`` is the only way from a
raw dict to an action; unknown tags and malformed payloads are rejected
instead of being passed through loosely typed.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from garrison.models.task import QueueKind
from garrison.util.errors import ActionRejected


# -- Base ----------------------------------------------------------------

class Action(BaseModel):
    """Base class for all actions."""

    type: str
    cid: int = 0


# -- City ----------------------------------------------------------------

class FoundCity(Action):
    type: Literal["found_city"] = "found_city"
    name: str = Field(min_length=1, max_length=40)
    god: Optional[str] = None


class CityRequest(Action):
    type: Literal["city_request"] = "city_request"


# -- Queues --------------------------------------------------------------

class TrainUnits(Action):
    type: Literal["train_units"] = "train_units"
    unit_iid: str
    amount: int = Field(gt=0)


class HealUnits(Action):
    type: Literal["heal_units"] = "heal_units"
    units: dict[str, int]


class DismissUnits(Action):
    type: Literal["dismiss_units"] = "dismiss_units"
    units: dict[str, int]


class CancelTask(Action):
    type: Literal["cancel_task"] = "cancel_task"
    queue: QueueKind
    task_id: str


class CompleteDue(Action):
    type: Literal["complete_due"] = "complete_due"


# -- Registry ------------------------------------------------------------

ACTION_TYPES: dict[str, type[Action]] = {
    "found_city": FoundCity,
    "city_request": CityRequest,
    "train_units": TrainUnits,
    "heal_units": HealUnits,
    "cancel_task": CancelTask,
    "dismiss_units": DismissUnits,
    "complete_due": CompleteDue,
}


def parse_action(data: dict[str, Any]) -> Action:
    """Parse a raw dict into its typed action model.

    Raises:
        ActionRejected: unknown ``type`` or a payload that does not validate.
    """
    action_type = data.get("type", "")
    model_cls = ACTION_TYPES.get(action_type)
    if model_cls is None:
        raise ActionRejected(f"Unknown action type: {action_type!r}")
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ActionRejected(
            f"Invalid {action_type} payload",
            context={"fields": fields},
        ) from exc
