# MALBridge test scripts
# In-memory stand-ins for the two list services.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from mb_platform.errors import NetworkError


def ani_entry(
    media_id: int,
    mal_id: int | None,
    status: str = "CURRENT",
    score: int = 0,
    progress: int = 0,
    repeat: int = 0,
    title: str | None = None,
) -> dict[str, Any]:
    return {
        "id": media_id * 10,
        "status": status,
        "score": score,
        "progress": progress,
        "repeat": repeat,
        "media": {"id": media_id, "idMal": mal_id, "title": {"userPreferred": title or f"Show {media_id}"}},
    }


def mal_row(
    mal_id: int,
    status: str = "watching",
    score: int = 0,
    episodes: int = 0,
    rewatched: int = 0,
    title: str | None = None,
) -> dict[str, Any]:
    return {
        "node": {"id": mal_id, "title": title or f"Anime {mal_id}"},
        "list_status": {
            "status": status,
            "score": score,
            "num_episodes_watched": episodes,
            "is_rewatching": False,
            "num_times_rewatched": rewatched,
        },
    }


@dataclass
class FakeMAL:
    rows: list[dict[str, Any]] = field(default_factory=list)
    entries: dict[int, dict[str, Any]] = field(default_factory=dict)
    fail_upsert: set[int] = field(default_factory=set)
    on_upsert: Callable[[int], None] | None = None
    on_delete: Callable[[int], None] | None = None
    upserts: list[tuple[int, dict[str, Any]]] = field(default_factory=list)
    deletes: list[int] = field(default_factory=list)

    def fetch_full_list(self, *, should_stop: Callable[[], bool] | None = None) -> list[dict[str, Any]]:
        return [dict(r) for r in self.rows]

    def get_entry(self, mal_id: int) -> dict[str, Any] | None:
        e = self.entries.get(int(mal_id))
        return dict(e) if e is not None else None

    def upsert_entry(self, mal_id: int, fields: Mapping[str, Any]) -> dict[str, Any]:
        if int(mal_id) in self.fail_upsert:
            raise NetworkError("Status 500 Internal Server Error", status=500)
        self.upserts.append((int(mal_id), dict(fields)))
        if self.on_upsert is not None:
            self.on_upsert(int(mal_id))
        return {}

    def delete_entry(self, mal_id: int) -> None:
        self.deletes.append(int(mal_id))
        if self.on_delete is not None:
            self.on_delete(int(mal_id))


@dataclass
class FakeAniList:
    entries: list[dict[str, Any]] = field(default_factory=list)
    by_mal: dict[int, int] = field(default_factory=dict)
    current: dict[int, dict[str, Any] | None] = field(default_factory=dict)
    media: dict[int, dict[str, Any]] = field(default_factory=dict)
    updates: list[tuple[int, str | None, int | None, int | None]] = field(default_factory=list)
    repeats: list[tuple[int, int]] = field(default_factory=list)
    lookups: list[int] = field(default_factory=list)
    on_update: Callable[[int], None] | None = None

    def fetch_collection(self) -> list[dict[str, Any]]:
        return [dict(e) for e in self.entries]

    def find_foreign_counterpart(self, mal_id: int) -> int | None:
        self.lookups.append(int(mal_id))
        return self.by_mal.get(int(mal_id))

    def get_entry(self, media_id: int) -> dict[str, Any] | None:
        return self.current.get(int(media_id))

    def get_media(self, media_id: int) -> dict[str, Any] | None:
        return self.media.get(int(media_id))

    def apply_update(self, media_id: int, status: str | None, score: int | None, progress: int | None) -> dict[str, Any]:
        self.updates.append((int(media_id), status, score, progress))
        if self.on_update is not None:
            self.on_update(int(media_id))
        return {"id": media_id}

    def apply_rewatch_count(self, media_id: int, count: int) -> dict[str, Any]:
        self.repeats.append((int(media_id), int(count)))
        return {"id": media_id, "repeat": count}


class StaticTokens:
    def __init__(self, token: str = "tok", authed: bool = True):
        self.token = token
        self.authed = authed
        self.refresh_token = "r" if authed else None

    def is_authenticated(self) -> bool:
        return self.authed

    def with_auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/x-www-form-urlencoded"}
