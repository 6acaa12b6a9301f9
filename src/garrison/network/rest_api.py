"""REST API — FastAPI application for the city UI.

Every endpoint builds a typed action and dispatches it through the
router, so REST and ``POST /api/action`` share one code path. Failed
actions keep their response body and get an HTTP status from their error
code.

Usage::

    from garrison.network.rest_api import create_app

    app = create_app(services)
    # Serve with uvicorn as an asyncio task alongside the sweep loop
"""

from __future__ import annotations

import logging
from typing import Any, TYPE_CHECKING

from fastapi import Body, FastAPI, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from garrison.models.task import QueueKind
from garrison.network.actions import (
    CancelTask,
    CityRequest,
    CompleteDue,
    DismissUnits,
    FoundCity,
    HealUnits,
    TrainUnits,
)
from garrison.network.rest_models import (
    DismissRequest,
    FoundCityRequest,
    HealRequest,
    TrainRequest,
)
from garrison.util.errors import ActionRejected, ErrorCode

if TYPE_CHECKING:
    from garrison.main import Services

log = logging.getLogger(__name__)

_STATUS_BY_CODE = {
    int(ErrorCode.NOT_FOUND): 404,
    int(ErrorCode.INVALID_REFERENCE): 422,
    int(ErrorCode.CONFLICT): 409,
    int(ErrorCode.REJECTED): 400,
}


def _respond(resp: dict[str, Any]) -> Any:
    """Pass successful responses through; give failures a status code."""
    if resp.get("success", False):
        return resp
    status = _STATUS_BY_CODE.get(resp.get("code", 0), 500)
    return JSONResponse(status_code=status, content=resp)


def create_app(services: "Services") -> FastAPI:
    """Factory: create and return a configured FastAPI application.

    The ``services`` reference is captured by closure so every endpoint
    can reach the router and the city directory without global state.
    The acting player is taken from the required ``X-Player-Uid`` header;
    only an explicit 0 acts as the server.
    """
    app = FastAPI(title="Garrison", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    router = services.router

    # =================================================================
    # Cities
    # =================================================================

    @app.get("/api/cities")
    async def list_cities() -> dict[str, Any]:
        return {"cities": await services.city_directory.get()}

    @app.post("/api/cities")
    async def found_city(
        body: FoundCityRequest, uid: int = Header(..., alias="X-Player-Uid"),
    ) -> Any:
        action = FoundCity(name=body.name, god=body.god)
        return _respond(await router.dispatch(action, uid))

    @app.get("/api/cities/{cid}")
    async def get_city(cid: int, uid: int = Header(..., alias="X-Player-Uid")) -> Any:
        return _respond(await router.dispatch(CityRequest(cid=cid), uid))

    # =================================================================
    # Queues
    # =================================================================

    @app.post("/api/cities/{cid}/train")
    async def train(
        cid: int, body: TrainRequest, uid: int = Header(..., alias="X-Player-Uid"),
    ) -> Any:
        action = TrainUnits(cid=cid, unit_iid=body.unit_iid, amount=body.amount)
        return _respond(await router.dispatch(action, uid))

    @app.post("/api/cities/{cid}/heal")
    async def heal(
        cid: int, body: HealRequest, uid: int = Header(..., alias="X-Player-Uid"),
    ) -> Any:
        return _respond(await router.dispatch(HealUnits(cid=cid, units=body.units), uid))

    @app.delete("/api/cities/{cid}/queues/{queue}/{task_id}")
    async def cancel(
        cid: int, queue: QueueKind, task_id: str,
        uid: int = Header(..., alias="X-Player-Uid"),
    ) -> Any:
        action = CancelTask(cid=cid, queue=queue, task_id=task_id)
        return _respond(await router.dispatch(action, uid))

    @app.post("/api/cities/{cid}/dismiss")
    async def dismiss(
        cid: int, body: DismissRequest, uid: int = Header(..., alias="X-Player-Uid"),
    ) -> Any:
        return _respond(await router.dispatch(DismissUnits(cid=cid, units=body.units), uid))

    @app.post("/api/cities/{cid}/complete")
    async def complete(cid: int, uid: int = Header(..., alias="X-Player-Uid")) -> Any:
        return _respond(await router.dispatch(CompleteDue(cid=cid), uid))

    # =================================================================
    # Raw actions
    # =================================================================

    @app.post("/api/action")
    async def action(
        raw: dict[str, Any] = Body(...), uid: int = Header(..., alias="X-Player-Uid"),
    ) -> Any:
        try:
            resp = await router.route(raw, uid)
        except ActionRejected as exc:
            log.info("Rejected raw action from uid=%d: %s", uid, exc)
            return _respond({"type": "action_response", "success": False, **exc.to_dict()})
        return _respond(resp)

    return app
