# mb_platform/engine/_ledger.py
# id history for safe deletes, and the per-process write dedup set.
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any

from ._state_store import StateStore


class HistoryLedger:
    """AniList id -> MAL id pairs seen by the last ANILIST_TO_MAL run.

    Replaced wholesale at the end of each run; only the values matter for
    the safe-deletion check.
    """

    def __init__(self, store: StateStore):
        self.store = store

    def load(self) -> dict[int, int]:
        out: dict[int, int] = {}
        for k, v in self.store.load_history().items():
            try:
                out[int(k)] = int(v)
            except (TypeError, ValueError):
                continue
        return out

    def linked_mal_ids(self) -> set[int]:
        return set(self.load().values())

    def replace(self, pairs: Mapping[Any, Any]) -> None:
        self.store.save_history({str(int(k)): int(v) for k, v in pairs.items()})


class SessionDedup:
    def __init__(self) -> None:
        self._ids: set[int] = set()
        self._lock = threading.Lock()

    def add(self, mal_id: int) -> None:
        with self._lock:
            self._ids.add(int(mal_id))

    def clear(self) -> None:
        with self._lock:
            self._ids.clear()

    def __contains__(self, mal_id: object) -> bool:
        with self._lock:
            return mal_id in self._ids

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)


__all__ = ["HistoryLedger", "SessionDedup"]
