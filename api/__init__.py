from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mb_platform.errors import AuthError, ConfigError

from .authenticationAPI import router as auth_router
from .configAPI import router as config_router
from .liveAPI import router as live_router
from .syncAPI import router as sync_router

__all__ = [
    "auth_router",
    "config_router",
    "live_router",
    "sync_router",
    "register",
]


def _config_error(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)


def _auth_error(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"ok": False, "error": str(exc)}, status_code=401)


def register(
    app: FastAPI,
    *,
    store: Any,
    engine: Any,
    tokens: Any,
    anilist_auth: Any,
    live: Any,
    logger: Any,
    scheduler: Any | None = None,
) -> None:
    app.state.store = store
    app.state.engine = engine
    app.state.tokens = tokens
    app.state.anilist_auth = anilist_auth
    app.state.live = live
    app.state.logger = logger
    app.state.scheduler = scheduler

    app.add_exception_handler(ConfigError, _config_error)
    app.add_exception_handler(AuthError, _auth_error)

    app.include_router(config_router)
    app.include_router(sync_router)
    app.include_router(auth_router)
    app.include_router(live_router)
