# mb_platform/engine/_live.py
# single-entry push from AniList to MyAnimeList on change notifications.
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import threading
from typing import Any

from _logging import log as _log

from ._normalize import from_anilist, from_mal_status
from ._planner import mal_payload, needs_write

__all__ = ["LiveUpdateHandler"]


def log(msg: str, level: str = "INFO") -> None:
    _log(msg, level=level, module="LIVE")


class LiveUpdateHandler:
    """Bypasses the session dedup set and the id ledger; those belong to full runs."""

    def __init__(self, engine: Any):
        self.engine = engine

    def _enabled(self) -> bool:
        return bool(self.engine.store.get("sync.live_sync", True))

    def handle(self, media_id: int) -> str | None:
        """Returns the outcome ("updated", "synced", "deleted", "ignored", "failed") or None when not applicable."""
        eng = self.engine
        if not self._enabled():
            log(f"media {media_id}: live sync disabled", level="DEBUG")
            return None
        if eng.is_running:
            log(f"media {media_id}: full sync running; notification ignored", level="DEBUG")
            return None
        if not eng.mal_ready():
            log(f"media {media_id}: MyAnimeList not connected; ignored", level="DEBUG")
            return None

        anilist = eng.anilist_factory()
        media = anilist.get_media(int(media_id)) or {}
        mal_id = media.get("idMal")
        if not mal_id:
            log(f"media {media_id}: no MAL id; ignored", level="DEBUG")
            return None
        title = str(media.get("title") or mal_id)

        debounce = int(eng.store.get("sync.live_debounce_ms", 1000) or 0)
        if debounce > 0:
            eng.sleep(debounce / 1000.0)

        current = anilist.get_entry(int(media_id))
        mal_state = eng.mal.get_entry(int(mal_id))

        if current is None:
            if not bool(eng.store.get("sync.mirror_deletions", False)):
                log(f"Ignored delete for: {title} (Settings disabled)")
                return "ignored"
            dst = from_mal_status(int(mal_id), mal_state or {}, title)
            if eng.applier.delete_mal(eng.mal, dst):
                log(f"Deleted: {title}", level="SUCCESS")
                return "deleted"
            return "failed"

        src = from_anilist({**current, "media": {"id": media_id, "idMal": mal_id, "title": title}})
        dst = from_mal_status(int(mal_id), mal_state, title) if mal_state else None
        if not needs_write(src, dst).write:
            log(f"Skipped: {title} (Synced)")
            return "synced"

        if eng.applier.upsert_mal(eng.mal, src, dst, mal_payload(src)):
            log(f"Updated: {title}", level="SUCCESS")
            return "updated"
        return "failed"

    def _safe_handle(self, media_id: int) -> None:
        try:
            self.handle(media_id)
        except Exception as e:
            log(f"Live sync failed for media {media_id}: {e}", level="ERROR")

    def notify(self, media_id: int) -> threading.Thread:
        t = threading.Thread(target=self._safe_handle, args=(int(media_id),), name=f"LiveSync-{media_id}", daemon=True)
        t.start()
        return t
