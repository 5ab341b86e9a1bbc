# api/configAPI.py
# MALBridge - sync preferences and MAL client credentials
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from mb_platform.engine import Direction

router = APIRouter(prefix="/api/config", tags=["config"])

PREF_KEYS = (
    "live_sync",
    "sync_on_startup",
    "sync_every_24h",
    "mirror_deletions",
    "safe_deletions",
    "direction",
)


class PrefsIn(BaseModel):
    live_sync: bool | None = None
    sync_on_startup: bool | None = None
    sync_every_24h: bool | None = None
    mirror_deletions: bool | None = None
    safe_deletions: bool | None = None
    direction: str | None = None


class CredentialsIn(BaseModel):
    client_id: str
    client_secret: str


def _prefs(store: Any) -> dict[str, Any]:
    sync = store.section("sync")
    return {k: sync.get(k) for k in PREF_KEYS}


@router.get("/prefs")
def api_prefs(request: Request) -> JSONResponse:
    res = JSONResponse(_prefs(request.app.state.store))
    res.headers["Cache-Control"] = "no-store"
    return res


@router.post("/prefs")
def api_prefs_save(request: Request, payload: PrefsIn = Body(...)) -> JSONResponse:
    store = request.app.state.store
    incoming = {k: v for k, v in payload.model_dump().items() if v is not None}
    if "direction" in incoming:
        try:
            incoming["direction"] = Direction.parse(incoming["direction"]).value
        except ValueError as e:
            return JSONResponse({"ok": False, "error": str(e)}, status_code=400)

    store.update({f"sync.{k}": v for k, v in incoming.items()})
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.refresh()
    return JSONResponse({"ok": True, "prefs": _prefs(store)})


@router.post("/credentials")
def api_credentials_save(request: Request, payload: CredentialsIn = Body(...)) -> dict[str, Any]:
    """Store the MAL app credentials and start a fresh PKCE pair."""
    store = request.app.state.store
    tokens = request.app.state.tokens
    store.update(
        {
            "mal.client_id": payload.client_id.strip(),
            "mal.client_secret": payload.client_secret.strip(),
        }
    )
    tokens.new_verifier()
    return {"ok": True, "authorize_url": tokens.authorize_url()}
