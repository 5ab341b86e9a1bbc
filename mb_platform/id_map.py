# /mb_platform/id_map.py
# Cross-service id table: AniList media id <-> MyAnimeList id.
# - Rebuilt from the fetched AniList collection on every run.
# - Entries without idMal stay unmapped and cannot be diffed directly.
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Dict, Optional, Tuple

__all__ = ["CrossIdTable", "ids_from_anilist_entry"]


def _to_id(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        n = int(str(v).strip())
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def ids_from_anilist_entry(entry: Mapping[str, Any]) -> Tuple[Optional[int], Optional[int]]:
    """(anilist_id, mal_id) for a flattened MediaListCollection entry."""
    media = entry.get("media") if isinstance(entry, Mapping) else None
    if not isinstance(media, Mapping):
        return None, None
    return _to_id(media.get("id")), _to_id(media.get("idMal"))


class CrossIdTable:
    def __init__(self) -> None:
        self.anilist_to_mal: Dict[int, int] = {}
        self.mal_to_anilist: Dict[int, int] = {}

    @classmethod
    def from_collection(cls, entries: Iterable[Mapping[str, Any]]) -> "CrossIdTable":
        table = cls()
        for e in entries or ():
            aid, mid = ids_from_anilist_entry(e)
            if aid and mid:
                table.link(aid, mid)
        return table

    def link(self, anilist_id: int, mal_id: int) -> None:
        self.anilist_to_mal[int(anilist_id)] = int(mal_id)
        self.mal_to_anilist[int(mal_id)] = int(anilist_id)

    def mal_for(self, anilist_id: Any) -> Optional[int]:
        aid = _to_id(anilist_id)
        return self.anilist_to_mal.get(aid) if aid else None

    def anilist_for(self, mal_id: Any) -> Optional[int]:
        mid = _to_id(mal_id)
        return self.mal_to_anilist.get(mid) if mid else None

    def has_mal(self, mal_id: Any) -> bool:
        return self.anilist_for(mal_id) is not None

    def __len__(self) -> int:
        return len(self.anilist_to_mal)
