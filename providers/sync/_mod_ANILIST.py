# /providers/sync/_mod_ANILIST.py
# MALBridge AniList collection accessor
# Copyright (c) 2025-2026 MALBridge / Cenodude

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

import requests

from mb_platform.errors import AuthError, ConfigError, NetworkError

from ._log import log as mb_log
from ._mod_common import build_session, request_with_retries, to_int

__VERSION__ = "0.2.0"
__all__ = ["ANILISTClient", "ANILISTConfig", "ANILISTError", "ANILISTAuthError", "flatten_collection"]

GQL_URL = "https://graphql.anilist.co"
UA = "MALBridge/1.0"

GQL_VIEWER = "query { Viewer { id name } }"

GQL_COLLECTION = """
query ($userId: Int!, $type: MediaType!) {
  MediaListCollection(userId: $userId, type: $type) {
    lists {
      entries {
        id
        status
        score
        progress
        repeat
        media {
          id
          idMal
          title { userPreferred romaji english }
        }
      }
    }
  }
}
""".strip()

GQL_ENTRY_BY_MEDIA = """
query ($mediaId: Int!, $userId: Int!) {
  MediaList(mediaId: $mediaId, userId: $userId) { id status score progress repeat }
}
""".strip()

GQL_MEDIA = """
query ($id: Int!) {
  Media(id: $id, type: ANIME) { id idMal title { userPreferred romaji english } }
}
""".strip()

GQL_MEDIA_BY_MAL = """
query ($id: Int) {
  Media(idMal: $id, type: ANIME) { id }
}
""".strip()

GQL_SAVE_ENTRY = """
mutation ($mediaId: Int!, $status: MediaListStatus, $scoreRaw: Int, $progress: Int) {
  SaveMediaListEntry(mediaId: $mediaId, status: $status, scoreRaw: $scoreRaw, progress: $progress) { id }
}
""".strip()

GQL_SAVE_REPEAT = """
mutation ($mediaId: Int!, $repeat: Int) {
  SaveMediaListEntry(mediaId: $mediaId, repeat: $repeat) { id repeat }
}
""".strip()


class ANILISTError(NetworkError):
    pass


class ANILISTAuthError(AuthError):
    pass


def _dbg(msg: str, **fields: Any) -> None:
    mb_log("ANILIST", "collection", "debug", msg, **fields)

def _warn(msg: str, **fields: Any) -> None:
    mb_log("ANILIST", "collection", "warn", msg, **fields)


def label_anilist(method: str, url: str, kw: Mapping[str, Any]) -> str:
    payload = kw.get("json")
    if isinstance(payload, Mapping):
        q = str(payload.get("query") or "")
        if "Viewer" in q:
            return "viewer"
        if "MediaListCollection" in q:
            return "collection:index"
        if "SaveMediaListEntry" in q:
            return "collection:save"
        if "MediaList(" in q:
            return "collection:lookup"
        if "Media(" in q:
            return "media:resolve"
    return "graphql"


def pick_title(t: Any) -> str:
    if not isinstance(t, Mapping):
        return ""
    return str(t.get("userPreferred") or t.get("english") or t.get("romaji") or "").strip()


def flatten_collection(data: Mapping[str, Any] | None) -> list[dict[str, Any]]:
    """All status lists of a MediaListCollection as one sequence of entries."""
    mlc = (data or {}).get("MediaListCollection")
    lists = mlc.get("lists") if isinstance(mlc, Mapping) else None
    out: list[dict[str, Any]] = []
    for lst in lists if isinstance(lists, list) else []:
        entries = lst.get("entries") if isinstance(lst, Mapping) else None
        for e in entries if isinstance(entries, list) else []:
            if isinstance(e, Mapping) and isinstance(e.get("media"), Mapping) and to_int(e["media"].get("id")):
                out.append(dict(e))
    return out


@dataclass
class ANILISTConfig:
    access_token: str
    timeout: float = 15.0
    max_retries: int = 3


class ANILISTClient:
    def __init__(
        self,
        cfg: ANILISTConfig,
        *,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not str(cfg.access_token or "").strip():
            raise ConfigError("ANILIST requires access_token")
        self.cfg = cfg
        self.sleep = sleep
        self.session = session or build_session("ANILIST", feature_label=label_anilist)
        self.session.headers.update(
            {
                "Authorization": f"Bearer {cfg.access_token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": UA,
            }
        )
        self._viewer_cache: dict[str, Any] | None = None

    @classmethod
    def from_store(cls, store: Any, **kwargs: Any) -> "ANILISTClient":
        an = store.section("anilist")
        return cls(
            ANILISTConfig(
                access_token=str(an.get("access_token") or "").strip(),
                timeout=float(an.get("timeout") or 15.0),
                max_retries=int(an.get("max_retries") or 3),
            ),
            **kwargs,
        )

    def gql(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = dict(variables)

        try:
            r = request_with_retries(
                self.session,
                "POST",
                GQL_URL,
                json=payload,
                timeout=self.cfg.timeout,
                max_retries=self.cfg.max_retries,
                sleep=self.sleep,
            )
        except requests.RequestException as e:
            raise ANILISTError(f"AniList request failed: {e}") from e

        try:
            j = r.json() or {}
        except ValueError:
            j = {}

        if r.status_code in (401, 403):
            raise ANILISTAuthError("AniList unauthorized")
        if r.status_code >= 400:
            raise ANILISTError(f"AniList http:{r.status_code}", status=r.status_code)

        errs = j.get("errors")
        if errs:
            msg = None
            if isinstance(errs, list) and isinstance(errs[0], Mapping):
                msg = errs[0].get("message")
            raise ANILISTError(str(msg or "AniList GraphQL error"))

        data = j.get("data")
        return data if isinstance(data, dict) else {}

    def viewer(self) -> dict[str, Any]:
        if isinstance(self._viewer_cache, dict) and self._viewer_cache.get("id"):
            return self._viewer_cache
        v = self.gql(GQL_VIEWER).get("Viewer")
        self._viewer_cache = dict(v) if isinstance(v, Mapping) else {}
        return self._viewer_cache

    def _user_id(self) -> int:
        uid = to_int(self.viewer().get("id"))
        if not uid:
            raise ANILISTAuthError("AniList viewer unavailable")
        return uid

    # --- reads ------------------------------------------------------------------
    def fetch_collection(self) -> list[dict[str, Any]]:
        t0 = time.time()
        data = self.gql(GQL_COLLECTION, {"userId": self._user_id(), "type": "ANIME"})
        entries = flatten_collection(data)
        _dbg("collection fetched", count=len(entries), ms=int((time.time() - t0) * 1000))
        return entries

    def get_entry(self, media_id: int) -> dict[str, Any] | None:
        try:
            data = self.gql(GQL_ENTRY_BY_MEDIA, {"mediaId": int(media_id), "userId": self._user_id()})
        except ANILISTError as e:
            # AniList answers 404 once the entry is gone from the list.
            if e.status == 404 or "not found" in str(e).lower():
                return None
            raise
        ml = data.get("MediaList")
        return dict(ml) if isinstance(ml, Mapping) else None

    def get_media(self, media_id: int) -> dict[str, Any] | None:
        try:
            m = self.gql(GQL_MEDIA, {"id": int(media_id)}).get("Media")
        except ANILISTError as e:
            _warn("media lookup failed", media_id=media_id, error=str(e))
            return None
        if not isinstance(m, Mapping):
            return None
        return {"id": to_int(m.get("id")), "idMal": to_int(m.get("idMal")), "title": pick_title(m.get("title"))}

    def find_foreign_counterpart(self, mal_id: int) -> int | None:
        try:
            m = self.gql(GQL_MEDIA_BY_MAL, {"id": int(mal_id)}).get("Media")
        except NetworkError as e:
            _dbg("resolve miss", mal_id=mal_id, error=str(e))
            return None
        return to_int(m.get("id")) if isinstance(m, Mapping) else None

    # --- writes -----------------------------------------------------------------
    def apply_update(self, media_id: int, status: str | None, score: int | None, progress: int | None) -> dict[str, Any]:
        variables: dict[str, Any] = {"mediaId": int(media_id)}
        if status:
            variables["status"] = status
        if score is not None:
            variables["scoreRaw"] = int(score)
        if progress is not None:
            variables["progress"] = int(progress)
        res = self.gql(GQL_SAVE_ENTRY, variables).get("SaveMediaListEntry")
        return dict(res) if isinstance(res, Mapping) else {}

    def apply_rewatch_count(self, media_id: int, count: int) -> dict[str, Any]:
        res = self.gql(GQL_SAVE_REPEAT, {"mediaId": int(media_id), "repeat": int(count)}).get("SaveMediaListEntry")
        return dict(res) if isinstance(res, Mapping) else {}
