# services/scheduling.py
# MALBridge - start-up and daily sync runs
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

DEFAULT_SCHEDULING: dict[str, Any] = {
    "startup_delay_sec": 5,
    "interval_hours": 24,
}


def _now_ts() -> int:
    return int(time.time())


def _iso(ts: int) -> str:
    if not ts:
        return ""
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    except (OverflowError, OSError, ValueError):
        return ""


def merge_defaults(s: dict[str, Any] | None) -> dict[str, Any]:
    out = dict(DEFAULT_SCHEDULING)
    for k, v in (s or {}).items():
        if v is not None:
            out[k] = v
    return out


class SyncScheduler:
    """Fires run_sync_fn once shortly after start (sync.sync_on_startup) and
    then every interval_hours while sync.sync_every_24h is on.

    Preferences are re-read on every tick; refresh() wakes the loop early.
    """

    def __init__(
        self,
        load_config: Callable[[], dict[str, Any]],
        run_sync_fn: Callable[[], Any],
        *,
        is_sync_running_fn: Callable[[], bool] | None = None,
        log_fn: Callable[..., None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.load_config_cb = load_config
        self.run_sync_fn = run_sync_fn
        self.is_sync_running_fn = is_sync_running_fn or (lambda: False)
        self.log_fn = log_fn
        self.clock = clock

        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._poke = threading.Event()
        self._thread: threading.Thread | None = None
        self._started_at: float = clock()
        self._startup_done = False
        self._next_daily: float = 0.0
        self._status: dict[str, Any] = {
            "running": False,
            "last_tick": 0,
            "last_run_ok": None,
            "last_run_at": 0,
            "last_error": "",
            "last_reason": "",
            "next_run_at": 0,
            "next_run_iso": "",
        }

    def _log(self, msg: str, level: str = "INFO") -> None:
        if not self.log_fn:
            return
        try:
            self.log_fn(msg, level=level, module="SCHED")
        except TypeError:
            self.log_fn(msg)

    def _prefs(self) -> tuple[dict[str, Any], dict[str, Any]]:
        cfg = self.load_config_cb() or {}
        return dict(cfg.get("sync") or {}), merge_defaults(cfg.get("scheduling") or {})

    # --- decisions (pure against the current clock) ---------------------------
    def due(self) -> str | None:
        """Reason a run is due now ("startup" / "daily"), else None."""
        sync, sch = self._prefs()
        now = self.clock()

        if not self._startup_done:
            delay = float(sch.get("startup_delay_sec") or 0)
            if not sync.get("sync_on_startup"):
                self._startup_done = True
            elif now - self._started_at >= delay:
                return "startup"

        if sync.get("sync_every_24h"):
            interval = max(1.0, float(sch.get("interval_hours") or 24)) * 3600.0
            if not self._next_daily:
                self._next_daily = now + interval
            if now >= self._next_daily:
                return "daily"
        else:
            self._next_daily = 0.0
        return None

    def tick(self) -> bool:
        with self._lock:
            self._status["last_tick"] = _now_ts()
        reason = self.due()
        if reason is None:
            self._publish_next()
            return False
        if self.is_sync_running_fn():
            self._log(f"{reason}: sync is busy; delaying scheduled run", level="INFO")
            return False
        self._trigger(reason)
        return True

    def _trigger(self, reason: str) -> None:
        if reason == "startup":
            self._startup_done = True
        else:
            _, sch = self._prefs()
            interval = max(1.0, float(sch.get("interval_hours") or 24)) * 3600.0
            self._next_daily = self.clock() + interval

        self._log(f"{reason}: triggering sync run")
        ok, err = False, ""
        try:
            res = self.run_sync_fn()
            ok = res is not False
        except Exception as e:
            ok, err = False, str(e)
            self._log(f"{reason}: run failed: {e}", level="ERROR")
        with self._lock:
            self._status["last_run_ok"] = ok
            self._status["last_run_at"] = _now_ts()
            self._status["last_error"] = err
            self._status["last_reason"] = reason
        self._publish_next()

    def _publish_next(self) -> None:
        nxt = int(self._next_daily or 0)
        with self._lock:
            self._status["next_run_at"] = nxt
            self._status["next_run_iso"] = _iso(nxt)

    # --- thread ---------------------------------------------------------------
    def status(self) -> dict[str, Any]:
        with self._lock:
            st = dict(self._status)
        _, sch = self._prefs()
        st["config"] = sch
        return st

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._poke.clear()
        self._started_at = self.clock()
        self._thread = threading.Thread(target=self._loop, name="SyncScheduler", daemon=True)
        self._thread.start()
        self._log("scheduler thread started")

    def stop(self) -> None:
        self._stop.set()
        self._poke.set()
        t = self._thread
        if t and t.is_alive():
            t.join(timeout=3.0)
        self._log("scheduler thread stopped")

    def refresh(self) -> None:
        self._poke.set()
        if not self._thread or not self._thread.is_alive():
            self.start()

    def _loop(self) -> None:
        with self._lock:
            self._status["running"] = True
        try:
            while not self._stop.is_set():
                if self.tick():
                    self._sleep_or_poke(0.5)
                    continue
                self._sleep_or_poke(1.0)
        finally:
            with self._lock:
                self._status["running"] = False

    def _sleep_or_poke(self, seconds: float) -> None:
        if seconds <= 0:
            return
        self._poke.wait(timeout=seconds)
        self._poke.clear()
