# /api/syncAPI.py
# MALBridge - run control, status and change history
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from mb_platform.engine import Direction

__all__ = ["router"]

router = APIRouter(prefix="/api", tags=["synchronization"])


class RunIn(BaseModel):
    direction: str | None = None


def _nostore(res: JSONResponse) -> JSONResponse:
    res.headers["Cache-Control"] = "no-store"
    return res


@router.get("/status")
def api_status(request: Request) -> JSONResponse:
    return _nostore(JSONResponse(request.app.state.engine.status()))


@router.post("/sync/run")
def api_run_sync(request: Request, payload: RunIn | None = Body(None)) -> JSONResponse:
    engine = request.app.state.engine
    raw = payload.direction if payload else None
    try:
        direction = engine.resolve_direction(Direction.parse(raw) if raw else None)
    except ValueError as e:
        return JSONResponse({"ok": False, "error": str(e)}, status_code=400)

    started = engine.start(direction)
    if not started:
        return JSONResponse({"ok": True, "started": False, "reason": "already running"})
    return JSONResponse({"ok": True, "started": True, "direction": direction.value})


@router.post("/sync/stop")
def api_stop_sync(request: Request) -> dict[str, Any]:
    engine = request.app.state.engine
    was_running = engine.is_running
    engine.stop()
    return {"ok": True, "stopping": was_running}


@router.get("/sync/last")
def api_last_sync(request: Request) -> JSONResponse:
    engine = request.app.state.engine
    last = engine.last.as_dict() if engine.last else engine.files.load_last()
    return _nostore(JSONResponse(last or {}))


@router.get("/changes")
def api_changes(request: Request) -> JSONResponse:
    return _nostore(JSONResponse(request.app.state.engine.changes.items()))


@router.delete("/changes")
def api_changes_clear(request: Request) -> dict[str, Any]:
    request.app.state.engine.changes.clear()
    return {"ok": True}
