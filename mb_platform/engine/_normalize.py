# mb_platform/engine/_normalize.py
# Status vocabularies and score scales between AniList and MyAnimeList.
# Pure functions; no I/O.
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ._types import ListEntry, WatchStatus

# AniList MediaListStatus -> canonical (MAL vocabulary). REPEATING folds into watching.
ANILIST_TO_CANONICAL: dict[str, WatchStatus] = {
    "COMPLETED": WatchStatus.COMPLETED,
    "CURRENT": WatchStatus.WATCHING,
    "DROPPED": WatchStatus.DROPPED,
    "PAUSED": WatchStatus.ON_HOLD,
    "PLANNING": WatchStatus.PLAN_TO_WATCH,
    "REPEATING": WatchStatus.WATCHING,
}

CANONICAL_TO_ANILIST: dict[WatchStatus, str] = {
    WatchStatus.COMPLETED: "COMPLETED",
    WatchStatus.WATCHING: "CURRENT",
    WatchStatus.DROPPED: "DROPPED",
    WatchStatus.ON_HOLD: "PAUSED",
    WatchStatus.PLAN_TO_WATCH: "PLANNING",
}

MAL_TO_CANONICAL: dict[str, WatchStatus] = {s.value: s for s in WatchStatus}


def _int(v: Any) -> int:
    try:
        return max(0, int(v or 0))
    except (TypeError, ValueError):
        return 0


def _round_half_up(x: float) -> int:
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def status_from_anilist(value: Any) -> WatchStatus | None:
    return ANILIST_TO_CANONICAL.get(str(value or "").upper())


def status_to_anilist(status: WatchStatus | None) -> str | None:
    return CANONICAL_TO_ANILIST.get(status) if status else None


def status_from_mal(value: Any) -> WatchStatus | None:
    return MAL_TO_CANONICAL.get(str(value or "").lower())


def score_to_canonical(score: Any) -> int:
    """AniList -> 0..10. Values above 10 are taken as 100-point and divided."""
    s = _int(score)
    return _round_half_up(s / 10) if s > 10 else s


def score_to_anilist(score: Any) -> int:
    """0..10 -> AniList 100-point. Zero stays zero (unscored)."""
    s = _int(score)
    return s * 10 if 0 < s <= 10 else s


def _title(t: Any) -> str:
    if isinstance(t, Mapping):
        return str(t.get("userPreferred") or t.get("english") or t.get("romaji") or "").strip()
    return str(t or "").strip()


def from_anilist(entry: Mapping[str, Any]) -> ListEntry:
    media = entry.get("media") if isinstance(entry.get("media"), Mapping) else {}
    raw_status = str(entry.get("status") or "").upper()
    return ListEntry(
        external_id=_int(media.get("id")),
        foreign_id=_int(media.get("idMal")) or None,
        status=status_from_anilist(raw_status),
        score=score_to_canonical(entry.get("score")),
        progress=_int(entry.get("progress")),
        rewatch_count=_int(entry.get("repeat")),
        is_rewatching=raw_status == "REPEATING",
        title=_title(media.get("title")),
        raw_score=_int(entry.get("score")),
    )


def from_mal_status(mal_id: int, list_status: Mapping[str, Any], title: str = "") -> ListEntry:
    return ListEntry(
        external_id=int(mal_id),
        status=status_from_mal(list_status.get("status")),
        score=_int(list_status.get("score")),
        progress=_int(list_status.get("num_episodes_watched")),
        rewatch_count=_int(list_status.get("num_times_rewatched")),
        is_rewatching=bool(list_status.get("is_rewatching")),
        title=title,
        raw_score=_int(list_status.get("score")),
    )


def from_mal(item: Mapping[str, Any]) -> ListEntry:
    """One row of /users/@me/animelist: {"node": {...}, "list_status": {...}}."""
    node = item.get("node") if isinstance(item.get("node"), Mapping) else {}
    st = item.get("list_status") if isinstance(item.get("list_status"), Mapping) else {}
    return from_mal_status(_int(node.get("id")), st, _title(node.get("title")))


__all__ = [
    "ANILIST_TO_CANONICAL",
    "CANONICAL_TO_ANILIST",
    "status_from_anilist",
    "status_to_anilist",
    "status_from_mal",
    "score_to_canonical",
    "score_to_anilist",
    "from_anilist",
    "from_mal",
    "from_mal_status",
]
