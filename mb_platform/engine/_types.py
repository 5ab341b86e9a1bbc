# mb_platform/engine/_types.py
# types and protocols for the sync engine.
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Protocol

from ..errors import CancelledError


class WatchStatus(str, Enum):
    WATCHING = "watching"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    DROPPED = "dropped"
    PLAN_TO_WATCH = "plan_to_watch"


class Direction(str, Enum):
    ANILIST_TO_MAL = "ANILIST_TO_MAL"
    MAL_TO_ANILIST = "MAL_TO_ANILIST"

    @classmethod
    def parse(cls, value: Any, default: "Direction | None" = None) -> "Direction":
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().upper()
        for d in cls:
            if d.value == s:
                return d
        if default is not None:
            return default
        raise ValueError(f"unknown sync direction: {value!r}")


class DeletionPolicy(str, Enum):
    NONE = "none"
    SAFE = "safe"
    MIRROR = "mirror"

    @classmethod
    def from_prefs(cls, *, mirror: bool, safe: bool) -> "DeletionPolicy":
        if mirror:
            return cls.MIRROR
        if safe:
            return cls.SAFE
        return cls.NONE


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class ListEntry:
    external_id: int
    foreign_id: int | None = None
    status: WatchStatus | None = None
    score: int = 0
    progress: int = 0
    rewatch_count: int = 0
    is_rewatching: bool = False
    title: str = ""
    raw_score: int = 0

    def snapshot(self) -> dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value if self.status else None
        return d


class CancelToken:
    def __init__(self) -> None:
        self._ev = threading.Event()

    def set(self) -> None:
        self._ev.set()

    def clear(self) -> None:
        self._ev.clear()

    def is_set(self) -> bool:
        return self._ev.is_set()

    def raise_if_set(self) -> None:
        if self._ev.is_set():
            raise CancelledError("Cancelled by user")


@dataclass
class SyncSummary:
    direction: str
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0
    state: str = RunState.RUNNING.value
    error: str | None = None
    started_at: float | None = None
    finished_at: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def counts(self) -> str:
        return f"C:{self.created} U:{self.updated} D:{self.deleted} S:{self.skipped}"

    def line(self) -> str:
        if self.state == RunState.CANCELLED.value:
            return f"Cancelled. {self.counts()}"
        if self.state == RunState.FAILED.value:
            return f"Sync Failed: {self.error or 'unknown error'}"
        return f"Done. {self.counts()}"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class MALListClient(Protocol):
    def fetch_full_list(self, *, should_stop: Callable[[], bool] | None = None) -> list[dict[str, Any]]: ...
    def get_entry(self, mal_id: int) -> dict[str, Any] | None: ...
    def upsert_entry(self, mal_id: int, fields: Mapping[str, Any]) -> dict[str, Any]: ...
    def delete_entry(self, mal_id: int) -> None: ...


class AniListCollection(Protocol):
    def fetch_collection(self) -> list[dict[str, Any]]: ...
    def find_foreign_counterpart(self, mal_id: int) -> int | None: ...
    def get_entry(self, media_id: int) -> dict[str, Any] | None: ...
    def get_media(self, media_id: int) -> dict[str, Any] | None: ...
    def apply_update(self, media_id: int, status: str | None, score: int | None, progress: int | None) -> dict[str, Any]: ...
    def apply_rewatch_count(self, media_id: int, count: int) -> dict[str, Any]: ...
