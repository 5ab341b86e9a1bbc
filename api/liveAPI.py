# /api/liveAPI.py
# MALBridge - entry change notifications and log ring
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

router = APIRouter(prefix="/api", tags=["live"])


class EntryChangedIn(BaseModel):
    mediaId: int


@router.post("/live/entry", status_code=202)
def api_live_entry(request: Request, payload: EntryChangedIn = Body(...)) -> dict[str, Any]:
    request.app.state.live.notify(payload.mediaId)
    return {"ok": True, "queued": payload.mediaId}


@router.get("/logs")
def api_logs(request: Request, limit: int = 200) -> JSONResponse:
    rows = request.app.state.logger.buffer.items()[: max(1, int(limit))]
    res = JSONResponse(rows)
    res.headers["Cache-Control"] = "no-store"
    return res


@router.delete("/logs")
def api_logs_clear(request: Request) -> dict[str, Any]:
    request.app.state.logger.buffer.clear()
    return {"ok": True}
