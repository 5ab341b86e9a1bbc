# providers/auth/_auth_ANILIST.py
# MALBridge - AniList Auth Provider
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

import requests

from _logging import log as _log
from mb_platform.config_base import ConfigStore
from mb_platform.errors import AuthError, ConfigError

from ._auth_base import AuthManifest, AuthStatus

__VERSION__ = "0.2.0"

UA = "MALBridge/1.0"
AUTH_URL = "https://anilist.co/api/v2/oauth/authorize"
TOKEN_URL = "https://anilist.co/api/v2/oauth/token"
GQL_URL = "https://graphql.anilist.co"


def log(msg: str, level: str = "INFO") -> None:
    _log(msg, level=level, module="AUTH")


def _gql_viewer(access_token: str, *, timeout: float = 15.0) -> dict[str, Any] | None:
    headers = {
        "Authorization": f"Bearer {access_token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": UA,
    }
    r = requests.post(GQL_URL, json={"query": "query { Viewer { id name } }"}, headers=headers, timeout=timeout)
    if not r.ok:
        return None
    return ((r.json() or {}).get("data") or {}).get("Viewer")


def _token_exchange(code: str, *, client_id: str, client_secret: str, redirect_uri: str) -> str:
    payload = {
        "grant_type": "authorization_code",
        "client_id": client_id,
        "client_secret": client_secret,
        "redirect_uri": redirect_uri,
        "code": code,
    }
    headers = {"Accept": "application/json", "User-Agent": UA}

    try:
        r = requests.post(TOKEN_URL, json=payload, headers=headers, timeout=15)
        if r.status_code >= 400:
            r = requests.post(TOKEN_URL, data=payload, headers=headers, timeout=15)
    except requests.RequestException as e:
        raise AuthError(f"AniList token exchange failed: {e}") from e
    if not r.ok:
        raise AuthError(f"AniList token exchange failed: {r.status_code}")

    tok = str((r.json() or {}).get("access_token") or "").strip()
    if not tok:
        raise AuthError("AniList token exchange returned no access_token")
    return tok


class AniListAuth:
    name = "ANILIST"

    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def manifest(self) -> AuthManifest:
        return AuthManifest(
            name="ANILIST",
            label="AniList",
            flow="oauth2",
            fields=[
                {"key": "anilist.client_id", "label": "Client ID", "type": "text", "required": True},
                {"key": "anilist.client_secret", "label": "Client Secret", "type": "password", "required": True},
            ],
            actions={"start": True, "finish": True, "refresh": False, "disconnect": True},
            notes="Authorize with AniList; you'll be redirected back to the app.",
        )

    def get_status(self, cfg: Mapping[str, Any] | None = None) -> AuthStatus:
        s = self.store.section("anilist")
        tok = str(s.get("access_token") or "").strip()
        user = s.get("user") or {}
        uname = user.get("name") if isinstance(user, Mapping) else None
        return AuthStatus(connected=bool(tok), label="AniList", user=str(uname) if uname else None)

    def start(self, redirect_uri: str) -> dict[str, Any]:
        client_id = str(self.store.get("anilist.client_id") or "").strip()
        if not client_id:
            raise ConfigError("Missing AniList Client ID")
        params = {"client_id": client_id, "response_type": "code", "redirect_uri": redirect_uri}
        log("ANILIST: start OAuth")
        return {"url": f"{AUTH_URL}?{urlencode(params)}"}

    def finish(self, *, code: str, redirect_uri: str) -> AuthStatus:
        client_id = str(self.store.get("anilist.client_id") or "").strip()
        client_secret = str(self.store.get("anilist.client_secret") or "").strip()
        if not client_id or not client_secret:
            raise ConfigError("Missing AniList Client ID or Secret")

        tok = _token_exchange(
            str(code or "").strip(),
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=str(redirect_uri or "").strip(),
        )
        self.store.set("anilist.access_token", tok)

        try:
            viewer = _gql_viewer(tok)
        except requests.RequestException:
            viewer = None
        if viewer:
            self.store.set("anilist.user", dict(viewer))

        log("ANILIST: connected", level="SUCCESS")
        return self.get_status()

    def disconnect(self) -> AuthStatus:
        self.store.set("anilist.access_token", "")
        self.store.set("anilist.user", {})
        return self.get_status()


__all__ = ["AniListAuth", "AUTH_URL", "TOKEN_URL", "GQL_URL"]
