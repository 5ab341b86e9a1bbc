# mb_platform/engine/facade.py
# full-sync engine: one run at a time, cooperative cancel, one summary line.
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import threading
import time
from pathlib import Path
from collections.abc import Callable, Mapping
from typing import Any

from _logging import log as _log

from .. import config_base
from ..config_base import ConfigStore
from ..errors import AuthError, CancelledError
from ..id_map import CrossIdTable
from ._applier import Applier, ChangeLog
from ._ledger import HistoryLedger, SessionDedup
from ._logging import Emitter
from ._normalize import from_anilist, from_mal
from ._planner import anilist_payload, mal_payload, needs_write
from ._state_store import StateStore
from ._types import (
    AniListCollection,
    CancelToken,
    DeletionPolicy,
    Direction,
    ListEntry,
    MALListClient,
    RunState,
    SyncSummary,
)

__all__ = ["SyncEngine"]


def log(msg: str, level: str = "INFO") -> None:
    _log(msg, level=level, module="SYNC")


class SyncEngine:
    def __init__(
        self,
        store: ConfigStore,
        *,
        mal: MALListClient,
        anilist_factory: Callable[[], AniListCollection],
        tokens: Any | None = None,
        state: StateStore | None = None,
        changes: ChangeLog | None = None,
        on_progress: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.mal = mal
        self.anilist_factory = anilist_factory
        self.tokens = tokens
        self.sleep = sleep
        self.clock = clock

        self.files = state or StateStore(Path(config_base.CONFIG_BASE()))
        self.ledger = HistoryLedger(self.files)
        self.session = SessionDedup()
        self.changes = changes or ChangeLog(int(store.get("runtime.changes_limit", 200) or 200))
        self.emitter = Emitter(on_progress)
        self.applier = Applier(
            self.changes,
            sleep=sleep,
            clock=clock,
            delay_ms=int(self._pref("write_delay_ms", 500)),
        )

        self.cancel = CancelToken()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._busy = False
        self.state: RunState = RunState.IDLE
        self.progress: int = 0
        self.message: str = ""
        self.last: SyncSummary | None = None

    # --- preferences --------------------------------------------------------------
    def _pref(self, key: str, default: Any = None) -> Any:
        return self.store.get(f"sync.{key}", default)

    def resolve_direction(self, direction: Any = None) -> Direction:
        return Direction.parse(direction or self._pref("direction"), Direction.ANILIST_TO_MAL)

    def resolve_policy(self) -> DeletionPolicy:
        return DeletionPolicy.from_prefs(
            mirror=bool(self._pref("mirror_deletions", False)),
            safe=bool(self._pref("safe_deletions", False)),
        )

    # --- status -------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        """True from the moment a run claims the slot until finalization resets to idle."""
        return self._busy

    def status(self) -> dict[str, Any]:
        authed = bool(self.tokens.is_authenticated()) if self.tokens is not None else True
        return {
            "state": self.state.value,
            "running": self.is_running,
            "progress": self.progress,
            "message": self.message,
            "authenticated": authed,
            "session_size": len(self.session),
            "last": self.last.as_dict() if self.last else None,
        }

    def _set_progress(self, done: int, total: int, verb: str, title: str) -> None:
        pct = int(round(done * 100 / total)) if total else 100
        self.progress = pct
        self.message = f"{pct}% - {verb}: {title}"
        self.emitter.emit("progress", pct=pct, message=self.message)

    def clear_session(self) -> None:
        self.session.clear()
        log("Session dedup set cleared", level="DEBUG")

    # --- control ------------------------------------------------------------------
    def _claim(self) -> bool:
        with self._lock:
            if self._busy:
                return False
            self._busy = True
            self.state = RunState.RUNNING
            self.cancel.clear()
            return True

    def start(self, direction: Any = None, *, policy: DeletionPolicy | None = None) -> bool:
        """Run in a worker thread; False when a run is already active."""
        if not self._claim():
            log("Sync already running; request ignored", level="DEBUG")
            return False
        t = threading.Thread(
            target=self._run_claimed,
            args=(direction,),
            kwargs={"policy": policy},
            name="SyncEngine",
            daemon=True,
        )
        self._thread = t
        t.start()
        return True

    def stop(self) -> None:
        if self.is_running:
            self.cancel.set()
            log("Stop requested")

    def join(self, timeout: float | None = None) -> None:
        t = self._thread
        if t is not None:
            t.join(timeout)

    def mal_ready(self) -> bool:
        if self.tokens is None:
            return True
        return bool(self.tokens.is_authenticated() or getattr(self.tokens, "refresh_token", None))

    def run(self, direction: Any = None, *, policy: DeletionPolicy | None = None) -> SyncSummary | None:
        if not self._claim():
            log("Sync already running; request ignored", level="DEBUG")
            return None
        return self._run_claimed(direction, policy=policy)

    def _run_claimed(self, direction: Any = None, *, policy: DeletionPolicy | None = None) -> SyncSummary:
        d = self.resolve_direction(direction)
        summary = SyncSummary(direction=d.value, started_at=self.clock())
        try:
            self.emitter.emit("run:start", direction=d.value)
            if not self.mal_ready():
                raise AuthError("MyAnimeList is not connected")
            if d is Direction.MAL_TO_ANILIST:
                self._run_mal_to_anilist(summary)
            else:
                self._run_anilist_to_mal(summary, policy or self.resolve_policy())
            summary.state = RunState.COMPLETED.value
        except CancelledError:
            summary.state = RunState.CANCELLED.value
        except Exception as e:
            summary.state = RunState.FAILED.value
            summary.error = str(e) or e.__class__.__name__
        finally:
            try:
                self._finalize(summary)
            finally:
                self._release()
        return summary

    def _finalize(self, summary: SyncSummary) -> None:
        summary.finished_at = self.clock()
        line = summary.line()
        if summary.state == RunState.FAILED.value:
            log(line, level="ERROR")
        elif summary.state == RunState.CANCELLED.value:
            log(line, level="WARN")
        else:
            log(line, level="SUCCESS")

        self.last = summary
        self.state = RunState(summary.state)
        self.message = line
        try:
            self.files.save_last(summary.as_dict())
        except OSError as e:
            log(f"Could not write last_sync.json: {e}", level="WARN")
        self.emitter.emit("run:done", **summary.as_dict())

        self.cancel.clear()
        delay = int(self._pref("finalize_delay_ms", 2000) or 0)
        if delay > 0:
            self.sleep(delay / 1000.0)

    def _release(self) -> None:
        # The slot stays claimed until the reset is done.
        with self._lock:
            self.progress = 0
            self.message = ""
            self.state = RunState.IDLE
            self._busy = False

    # --- ANILIST -> MAL -----------------------------------------------------------
    def _run_anilist_to_mal(self, summary: SyncSummary, policy: DeletionPolicy) -> None:
        anilist = self.anilist_factory()
        log("Fetching AniList collection...")
        ani_entries = anilist.fetch_collection()
        self.cancel.raise_if_set()

        log("Fetching MyAnimeList list...")
        mal_rows = self.mal.fetch_full_list(should_stop=self.cancel.is_set)
        self.cancel.raise_if_set()

        mal_map: dict[int, ListEntry] = {}
        for row in mal_rows:
            e = from_mal(row)
            if e.external_id:
                mal_map[e.external_id] = e
        table = CrossIdTable.from_collection(ani_entries)
        summary.extra = {"anilist": len(ani_entries), "mal": len(mal_map), "linked": len(table)}

        observed: dict[int, int] = {}
        total = len(ani_entries)
        for i, raw in enumerate(ani_entries, 1):
            self.cancel.raise_if_set()
            src = from_anilist(raw)
            self._push_to_mal(src, mal_map, observed, summary)
            self._set_progress(i, total, "Syncing", src.title)

        self.cancel.raise_if_set()
        if policy is not DeletionPolicy.NONE:
            self._delete_phase(mal_map, table, policy, summary)

        self.ledger.replace(observed)

    def _push_to_mal(
        self,
        src: ListEntry,
        mal_map: Mapping[int, ListEntry],
        observed: dict[int, int],
        summary: SyncSummary,
    ) -> None:
        if not src.foreign_id:
            log(f"Skipped: {src.title} (no MAL id)", level="DEBUG")
            summary.skipped += 1
            return
        observed[src.external_id] = src.foreign_id
        if src.foreign_id in self.session:
            summary.skipped += 1
            return

        dst = mal_map.get(src.foreign_id)
        decision = needs_write(src, dst)
        if not decision.write:
            summary.skipped += 1
            return

        payload = mal_payload(src)
        log(f"Writing {src.title} ({decision.reason})", level="DEBUG")
        if not self.applier.upsert_mal(self.mal, src, dst, payload):
            summary.failed += 1
            return
        self.session.add(src.foreign_id)
        if dst is None:
            summary.created += 1
        else:
            summary.updated += 1

    def _delete_phase(
        self,
        mal_map: Mapping[int, ListEntry],
        table: CrossIdTable,
        policy: DeletionPolicy,
        summary: SyncSummary,
    ) -> None:
        linked = self.ledger.linked_mal_ids() if policy is DeletionPolicy.SAFE else set()
        orphans = [e for mid, e in mal_map.items() if not table.has_mal(mid)]
        log(f"Deletion phase ({policy.value}): {len(orphans)} MAL entries not on AniList")

        for i, entry in enumerate(orphans, 1):
            self.cancel.raise_if_set()
            if policy is DeletionPolicy.SAFE and entry.external_id not in linked:
                continue
            if self.applier.delete_mal(self.mal, entry):
                summary.deleted += 1
                log(f"Deleted: {entry.title or entry.external_id}")
            else:
                summary.failed += 1
            self._set_progress(i, len(orphans), "Deleting", entry.title)

    # --- MAL -> ANILIST -----------------------------------------------------------
    def _run_mal_to_anilist(self, summary: SyncSummary) -> None:
        anilist = self.anilist_factory()
        log("Fetching AniList collection...")
        ani_entries = anilist.fetch_collection()
        self.cancel.raise_if_set()

        log("Fetching MyAnimeList list...")
        mal_rows = self.mal.fetch_full_list(should_stop=self.cancel.is_set)
        self.cancel.raise_if_set()

        table = CrossIdTable.from_collection(ani_entries)
        ani_map: dict[int, ListEntry] = {}
        for raw in ani_entries:
            e = from_anilist(raw)
            ani_map[e.external_id] = e
        summary.extra = {"anilist": len(ani_map), "mal": len(mal_rows), "linked": len(table)}

        total = len(mal_rows)
        for i, row in enumerate(mal_rows, 1):
            self.cancel.raise_if_set()
            src = from_mal(row)
            self._push_to_anilist(anilist, src, table, ani_map, summary)
            self._set_progress(i, total, "Importing", src.title)

    def _push_to_anilist(
        self,
        anilist: AniListCollection,
        src: ListEntry,
        table: CrossIdTable,
        ani_map: Mapping[int, ListEntry],
        summary: SyncSummary,
    ) -> None:
        if not src.external_id:
            summary.skipped += 1
            return
        media_id = table.anilist_for(src.external_id) or anilist.find_foreign_counterpart(src.external_id)
        if not media_id:
            log(f"Skipped MAL ID {src.external_id} ({src.title}): no AniList match", level="WARN")
            summary.skipped += 1
            return

        dst = ani_map.get(media_id)
        decision = needs_write(src, dst, direction=Direction.MAL_TO_ANILIST)
        if not decision.write:
            summary.skipped += 1
            return

        payload = anilist_payload(src)
        log(f"Writing {src.title} ({decision.reason})", level="DEBUG")
        if not self.applier.update_anilist(anilist, media_id, src, dst, payload):
            summary.failed += 1
            return
        if dst is None:
            summary.created += 1
        else:
            summary.updated += 1
