# /malbridge.py
# MALBridge - AniList / MyAnimeList list sync service
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI

from _logging import log as LOG
from api import register as register_api
from mb_platform.config_base import CONFIG_BASE, ConfigStore, config_path, load_config
from mb_platform.engine import ChangeLog, LiveUpdateHandler, StateStore, SyncEngine
from providers.auth._auth_ANILIST import AniListAuth
from providers.auth._auth_MAL import MALTokenManager
from providers.sync._mod_ANILIST import ANILISTClient
from providers.sync._mod_MAL import MALClient
from services.scheduling import SyncScheduler

__all__ = ["create_app", "main"]


def _log(msg: str, level: str = "INFO") -> None:
    LOG(msg, level=level, module="MAIN")


def create_app(store: ConfigStore | None = None, *, start_scheduler: bool = True) -> FastAPI:
    store = store or ConfigStore()
    timeout = float(store.get("mal.timeout", 15.0) or 15.0)

    tokens = MALTokenManager(store, timeout=timeout)
    mal = MALClient(tokens, timeout=timeout)
    engine = SyncEngine(
        store,
        mal=mal,
        anilist_factory=lambda: ANILISTClient.from_store(store),
        tokens=tokens,
        state=StateStore(Path(CONFIG_BASE())),
        changes=ChangeLog(int(store.get("runtime.changes_limit", 200) or 200)),
    )
    live = LiveUpdateHandler(engine)
    scheduler = SyncScheduler(
        load_config,
        lambda: engine.run(),
        is_sync_running_fn=lambda: engine.is_running,
        log_fn=LOG,
    )

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        if start_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            engine.stop()
            scheduler.stop()

    app = FastAPI(title="MALBridge", lifespan=_lifespan)
    register_api(
        app,
        store=store,
        engine=engine,
        tokens=tokens,
        anilist_auth=AniListAuth(store),
        live=live,
        logger=LOG,
        scheduler=scheduler,
    )
    return app


# Entry point
def main(host: str = "0.0.0.0", port: int = 8799) -> None:
    print("\nMALBridge running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {config_path()} (JSON)\n")

    cfg: dict[str, Any] = load_config()
    debug = bool((cfg.get("runtime") or {}).get("debug"))
    if debug:
        LOG.set_level("debug")
        _log("debug logging enabled", level="DEBUG")

    uvicorn.run(
        create_app(),
        host=host,
        port=port,
        log_level=("debug" if debug else "warning"),
        access_log=debug,
    )


if __name__ == "__main__":
    main()
