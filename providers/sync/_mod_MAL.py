# /providers/sync/_mod_MAL.py
# MALBridge MyAnimeList list client
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Callable

import requests

from mb_platform.errors import CancelledError, NetworkError

from ._log import log as mb_log
from ._mod_common import build_session, label_mal, safe_json

__VERSION__ = "1.0.0"
__all__ = ["MALClient", "BASE_URI_V2", "LIST_FIELDS", "PAGE_LIMIT"]

BASE_URI_V2 = "https://api.myanimelist.net/v2"
LIST_FIELDS = "list_status{status,score,num_episodes_watched,is_rewatching,num_times_rewatched}"
ENTRY_FIELDS = "my_list_status{status,score,num_episodes_watched,is_rewatching,num_times_rewatched}"
PAGE_LIMIT = 500

PAGE_RETRY_DELAY = 1.0
PAGE_PAUSE = 0.3
UPSERT_ATTEMPTS = 3
UPSERT_RETRY_DELAY = 2.0


def _dbg(msg: str, **fields: Any) -> None:
    mb_log("MAL", "list", "debug", msg, **fields)

def _warn(msg: str, **fields: Any) -> None:
    mb_log("MAL", "list", "warn", msg, **fields)


class MALClient:
    """REST side of the sync: full list fetch, single-entry upsert and delete.

    ``tokens`` is anything exposing ``with_auth_headers()``; it is asked for
    headers on every request so an expired token refreshes transparently.
    """

    def __init__(
        self,
        tokens: Any,
        *,
        session: requests.Session | None = None,
        timeout: float = 15.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.tokens = tokens
        self.session = session or build_session("MAL", feature_label=label_mal)
        self.timeout = float(timeout)
        self.sleep = sleep

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        headers = dict(self.tokens.with_auth_headers())
        return self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)

    # --- read -------------------------------------------------------------------
    def _fetch_page(self, offset: int) -> requests.Response:
        url = f"{BASE_URI_V2}/users/@me/animelist"
        params = {"limit": PAGE_LIMIT, "offset": offset, "fields": LIST_FIELDS, "nsfw": "true"}
        try:
            return self._request("GET", url, params=params)
        except requests.RequestException as e:
            _warn("page fetch failed; retrying once", offset=offset, error=str(e))
            self.sleep(PAGE_RETRY_DELAY)
            try:
                return self._request("GET", url, params=params)
            except requests.RequestException as e2:
                raise NetworkError(f"Failed to fetch MAL list: {e2}") from e2

    def fetch_full_list(self, *, should_stop: Callable[[], bool] | None = None) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        offset = 0
        while True:
            if should_stop is not None and should_stop():
                raise CancelledError("Cancelled by user")
            r = self._fetch_page(offset)
            if not r.ok:
                raise NetworkError(f"Failed to fetch MAL list: {r.status_code} {r.reason or ''}".strip(), status=r.status_code)

            data = safe_json(r)
            page = data.get("data") if isinstance(data, Mapping) else None
            items = [x for x in (page or []) if isinstance(x, Mapping)]
            _dbg("page", offset=offset, count=len(items))
            if not items:
                break
            out.extend(dict(x) for x in items)
            if len(items) < PAGE_LIMIT:
                break
            offset += PAGE_LIMIT
            self.sleep(PAGE_PAUSE)
        return out

    def get_entry(self, mal_id: int) -> dict[str, Any] | None:
        url = f"{BASE_URI_V2}/anime/{int(mal_id)}"
        try:
            r = self._request("GET", url, params={"fields": ENTRY_FIELDS})
        except requests.RequestException as e:
            _warn("entry lookup failed", mal_id=mal_id, error=str(e))
            return None
        if not r.ok:
            return None
        data = safe_json(r)
        st = data.get("my_list_status") if isinstance(data, Mapping) else None
        return dict(st) if isinstance(st, Mapping) else None

    # --- write ------------------------------------------------------------------
    def upsert_entry(self, mal_id: int, fields: Mapping[str, Any]) -> dict[str, Any]:
        body: dict[str, str] = {}
        for k, v in fields.items():
            if v is None:
                continue
            body[k] = str(v).lower() if isinstance(v, bool) else str(v)

        url = f"{BASE_URI_V2}/anime/{int(mal_id)}/my_list_status"
        last: Exception | None = None
        for attempt in range(1, UPSERT_ATTEMPTS + 1):
            try:
                r = self._request("PUT", url, data=body)
                if not r.ok:
                    raise NetworkError(f"Status {r.status_code} {r.reason or ''}".strip(), status=r.status_code)
                res = safe_json(r)
                return dict(res) if isinstance(res, Mapping) else {}
            except requests.RequestException as e:
                last = NetworkError(str(e))
                last.__cause__ = e
            except NetworkError as e:
                last = e
            _warn("upsert failed", mal_id=mal_id, attempt=attempt, error=str(last))
            if attempt < UPSERT_ATTEMPTS:
                self.sleep(UPSERT_RETRY_DELAY)
        assert last is not None
        raise last

    def delete_entry(self, mal_id: int) -> None:
        url = f"{BASE_URI_V2}/anime/{int(mal_id)}/my_list_status"
        try:
            r = self._request("DELETE", url)
        except requests.RequestException as e:
            raise NetworkError(f"Delete failed: {e}") from e
        if r.status_code == 404:
            _dbg("delete: already absent", mal_id=mal_id)
            return
        if not r.ok:
            raise NetworkError(f"Delete failed: {r.status_code} {r.reason or ''}".strip(), status=r.status_code)
