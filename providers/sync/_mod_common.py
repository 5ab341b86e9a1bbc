# /providers/sync/_mod_common.py
# MALBridge common provider helpers
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

import requests

from ._log import log as mb_log

__VERSION__ = "0.2.0"
__all__ = [
    "HitSession",
    "build_session",
    "safe_json",
    "request_with_retries",
    "to_int",
    "label_mal",
]

FeatureLabelFn = Callable[[str, str, Mapping[str, Any]], str]


def to_int(v: Any) -> int | None:
    try:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return int(v)
        s = str(v).strip()
        if not s:
            return None
        return int(float(s))
    except Exception:
        return None


def default_feature_label(provider: str, method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    head = "/".join(segs[:3]) or "unknown"
    return head.lower()


def label_mal(method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    m = method.upper()
    if "animelist" in segs:
        return "list:index"
    if segs[-1:] == ["my_list_status"]:
        if m == "PUT":
            return "list:upsert"
        if m == "DELETE":
            return "list:remove"
    if "anime" in segs:
        return "list:lookup"
    if "token" in segs:
        return "oauth:token"
    return default_feature_label("MAL", method, url, kw)


class HitSession(requests.Session):
    """Session that logs every call at debug level, tagged with a feature label."""

    def __init__(self, provider: str, feature_label: FeatureLabelFn | None = None):
        super().__init__()
        self._provider = provider
        self._label = feature_label or (lambda m, u, kw: default_feature_label(provider, m, u, kw))

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        t0 = time.time()
        status: int | None = None
        try:
            r = super().request(method, url, **kwargs)
            status = r.status_code
            return r
        finally:
            mb_log(
                self._provider,
                self._label(method.upper(), url, kwargs),
                "debug",
                "http",
                method=method.upper(),
                status=status,
                ms=int((time.time() - t0) * 1000),
            )


def build_session(provider: str, *, feature_label: FeatureLabelFn | None = None) -> HitSession:
    return HitSession(provider, feature_label)


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return {}
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return resp.json()
        return json.loads(resp.text)
    except Exception:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> requests.Response:
    last: Any = None
    for i in range(max(1, int(max_retries))):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
            if resp.status_code in retry_on and i < max_retries - 1:
                wait = backoff_base * (2**i)
                if resp.status_code == 429:
                    ra = to_int(resp.headers.get("Retry-After"))
                    if ra:
                        wait = max(wait, float(ra))
                sleep(wait)
                last = resp
                continue
            return resp
        except requests.RequestException as e:
            last = e
            if i < max_retries - 1:
                sleep(backoff_base * (2**i))
            else:
                break
    if isinstance(last, requests.Response):
        return last
    raise requests.RequestException(f"request failed after retries: {method} {url}")
