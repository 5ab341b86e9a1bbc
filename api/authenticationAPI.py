# /api/authenticationAPI.py
# MALBridge - MyAnimeList and AniList connect/disconnect
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, Request
from pydantic import BaseModel

from providers.auth._auth_base import AuthProvider

router = APIRouter(prefix="/api/auth", tags=["auth"])


class CodeIn(BaseModel):
    code: str


class AniListFinishIn(BaseModel):
    code: str
    redirect_uri: str | None = None


def _anilist_redirect(request: Request) -> str:
    return str(request.url_for("api_anilist_callback"))


@router.get("/providers")
def api_auth_providers(request: Request) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    providers: tuple[AuthProvider, ...] = (request.app.state.tokens, request.app.state.anilist_auth)
    for prov in providers:
        out.append({"manifest": asdict(prov.manifest()), "status": asdict(prov.get_status())})
    return out


# --- MyAnimeList ------------------------------------------------------------------
@router.get("/mal/start")
def api_mal_start(request: Request) -> dict[str, Any]:
    return {"ok": True, "url": request.app.state.tokens.authorize_url()}


@router.post("/mal/connect")
def api_mal_connect(request: Request, payload: CodeIn = Body(...)) -> dict[str, Any]:
    tokens = request.app.state.tokens
    request.app.state.store.set("mal.auth_code", payload.code.strip())
    tokens.exchange_code(payload.code)
    return {"ok": True, "status": asdict(tokens.get_status())}


@router.post("/mal/disconnect")
def api_mal_disconnect(request: Request) -> dict[str, Any]:
    tokens = request.app.state.tokens
    tokens.disconnect()
    return {"ok": True, "status": asdict(tokens.get_status())}


# --- AniList ----------------------------------------------------------------------
@router.get("/anilist/start")
def api_anilist_start(request: Request) -> dict[str, Any]:
    res = request.app.state.anilist_auth.start(_anilist_redirect(request))
    return {"ok": True, **res}


@router.get("/anilist/callback")
def api_anilist_callback(request: Request, code: str = "") -> dict[str, Any]:
    st = request.app.state.anilist_auth.finish(code=code, redirect_uri=_anilist_redirect(request))
    return {"ok": True, "status": asdict(st)}


@router.post("/anilist/finish")
def api_anilist_finish(request: Request, payload: AniListFinishIn = Body(...)) -> dict[str, Any]:
    redirect = payload.redirect_uri or _anilist_redirect(request)
    st = request.app.state.anilist_auth.finish(code=payload.code, redirect_uri=redirect)
    return {"ok": True, "status": asdict(st)}


@router.post("/anilist/disconnect")
def api_anilist_disconnect(request: Request) -> dict[str, Any]:
    st = request.app.state.anilist_auth.disconnect()
    return {"ok": True, "status": asdict(st)}
