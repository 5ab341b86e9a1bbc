# MALBridge test scripts
from __future__ import annotations

from typing import Any

from services.scheduling import SyncScheduler


class Clock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def _sched(cfg: dict[str, Any], clock: Clock, runs: list[int], busy: bool = False) -> SyncScheduler:
    return SyncScheduler(lambda: cfg, lambda: runs.append(1), is_sync_running_fn=lambda: busy, clock=clock)


def test_startup_run_after_delay_only_once() -> None:
    clock, runs = Clock(), []
    s = _sched({"sync": {"sync_on_startup": True}}, clock, runs)

    assert s.tick() is False
    clock.t += 5
    assert s.tick() is True
    clock.t += 60
    assert s.tick() is False
    assert runs == [1]
    assert s.status()["last_reason"] == "startup"


def test_no_startup_run_when_disabled() -> None:
    clock, runs = Clock(), []
    s = _sched({"sync": {"sync_on_startup": False}}, clock, runs)
    clock.t += 10
    assert s.tick() is False
    assert runs == []


def test_daily_run_every_interval() -> None:
    clock, runs = Clock(), []
    s = _sched({"sync": {"sync_every_24h": True}}, clock, runs)

    assert s.tick() is False
    assert s.status()["next_run_at"] == int(1000 + 24 * 3600)
    clock.t += 24 * 3600
    assert s.tick() is True
    clock.t += 3600
    assert s.tick() is False
    clock.t += 23 * 3600
    assert s.tick() is True
    assert len(runs) == 2


def test_busy_engine_delays_run() -> None:
    clock, runs = Clock(), []
    s = _sched({"sync": {"sync_on_startup": True}}, clock, runs, busy=True)
    clock.t += 5
    assert s.tick() is False
    assert runs == []
