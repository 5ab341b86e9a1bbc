from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List

from _logging import log as _log

from ..errors import NetworkError
from ._types import AniListCollection, ListEntry, MALListClient


def log(msg: str, level: str = "INFO") -> None:
    _log(msg, level=level, module="SYNC")


#--- Audit trail ---------------------------------------------------------------
class ChangeLog:
    """Newest-first ring of applied writes and deletes."""

    def __init__(self, limit: int = 200):
        self._items: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(limit)))
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        title: str,
        *,
        target: Dict[str, Any] | None = None,
        source: Dict[str, Any] | None = None,
        payload: Dict[str, Any] | None = None,
        at: float | None = None,
    ) -> Dict[str, Any]:
        row = {
            "action": action,
            "title": title,
            "target": dict(target or {}),
            "source": dict(source or {}),
            "payload": dict(payload or {}),
            "ts": int(at if at is not None else time.time()),
        }
        with self._lock:
            self._items.appendleft(row)
        return row

    def items(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


#--- Paced single-entry writes -------------------------------------------------
class Applier:
    """Applies one mutation at a time and paces after each successful call.

    NetworkError is logged and reported as False so the run moves on;
    auth and config errors propagate to the caller.
    """

    def __init__(
        self,
        changes: ChangeLog,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        delay_ms: int = 500,
    ):
        self.changes = changes
        self.sleep = sleep
        self.clock = clock
        self.delay_ms = int(delay_ms)

    def _pace(self) -> None:
        if self.delay_ms > 0:
            self.sleep(self.delay_ms / 1000.0)

    def upsert_mal(
        self,
        mal: MALListClient,
        src: ListEntry,
        dst: ListEntry | None,
        payload: Dict[str, Any],
    ) -> bool:
        mal_id = int(src.foreign_id or 0)
        try:
            mal.upsert_entry(mal_id, payload)
        except NetworkError as e:
            log(f"Failed to update {src.title or mal_id}: {e}", level="ERROR")
            return False
        self.changes.record(
            "create" if dst is None else "update",
            src.title,
            target=dst.snapshot() if dst else None,
            source=src.snapshot(),
            payload=payload,
            at=self.clock(),
        )
        self._pace()
        return True

    def delete_mal(self, mal: MALListClient, entry: ListEntry) -> bool:
        try:
            mal.delete_entry(entry.external_id)
        except NetworkError as e:
            log(f"Failed to delete {entry.title or entry.external_id}: {e}", level="ERROR")
            return False
        self.changes.record("delete", entry.title, target=entry.snapshot(), at=self.clock())
        self._pace()
        return True

    def update_anilist(
        self,
        anilist: AniListCollection,
        media_id: int,
        src: ListEntry,
        dst: ListEntry | None,
        payload: Dict[str, Any],
    ) -> bool:
        try:
            anilist.apply_update(media_id, payload.get("status"), payload.get("score"), payload.get("progress"))
            if payload.get("repeat"):
                anilist.apply_rewatch_count(media_id, int(payload["repeat"]))
        except NetworkError as e:
            log(f"Failed to update {src.title or media_id}: {e}", level="ERROR")
            return False
        self.changes.record(
            "create" if dst is None else "update",
            src.title,
            target=dst.snapshot() if dst else None,
            source=src.snapshot(),
            payload=payload,
            at=self.clock(),
        )
        self._pace()
        return True


__all__ = ["ChangeLog", "Applier"]
