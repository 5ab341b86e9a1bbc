# providers/auth/_auth_MAL.py
# MALBridge - MyAnimeList OAuth2 (PKCE) token manager
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import re
import secrets
import time
from collections.abc import Mapping
from typing import Any, Callable
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from _logging import log as _log
from mb_platform.config_base import ConfigStore
from mb_platform.errors import AuthError, ConfigError

from ._auth_base import AuthManifest, AuthStatus

__VERSION__ = "1.0.0"

AUTH_URL = "https://myanimelist.net/v1/oauth2/authorize"
TOKEN_URL = "https://myanimelist.net/v1/oauth2/token"
REDIRECT_URI = "http://localhost"
UA = "MALBridge/1.0"

_VERIFIER_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~"
_CODE_RE = re.compile(r"[?&]code=([^&#]+)")


def log(msg: str, level: str = "INFO") -> None:
    _log(msg, level=level, module="AUTH")


def generate_code_verifier(length: int = 128) -> str:
    return "".join(secrets.choice(_VERIFIER_CHARS) for _ in range(int(length)))


def extract_code(text: str) -> str:
    """Accept a bare code or the full redirect URL pasted from the browser."""
    s = str(text or "").strip()
    if s.startswith("http"):
        q = parse_qs(urlparse(s).query)
        if q.get("code"):
            return q["code"][0]
        m = _CODE_RE.search(s)
        if m:
            return m.group(1)
    return s


class MALTokenManager:
    name = "MAL"

    def __init__(
        self,
        store: ConfigStore,
        *,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 15.0,
    ) -> None:
        self.store = store
        self.session = session or requests.Session()
        self.clock = clock
        self.timeout = float(timeout)
        self.access_token: str | None = str(store.get("mal.access_token") or "") or None
        self.refresh_token: str | None = str(store.get("mal.refresh_token") or "") or None
        exp = store.get("mal.expires_at")
        self.expires_at: float | None = float(exp) if exp else None

    # --- manifest / status ----------------------------------------------------
    def manifest(self) -> AuthManifest:
        return AuthManifest(
            name="MAL",
            label="MyAnimeList",
            flow="oauth2_pkce",
            fields=[
                {"key": "mal.client_id", "label": "Client ID", "type": "text", "required": True},
                {"key": "mal.client_secret", "label": "Client Secret", "type": "password", "required": True},
            ],
            actions={"start": True, "finish": True, "refresh": True, "disconnect": True},
            notes="App Type: Web. App Redirect URL: http://localhost",
        )

    def get_status(self, cfg: Mapping[str, Any] | None = None) -> AuthStatus:
        return AuthStatus(
            connected=self.is_authenticated(),
            label="MyAnimeList",
            expires_at=int(self.expires_at) if self.expires_at else None,
        )

    # --- credentials / PKCE ---------------------------------------------------
    def credentials(self) -> tuple[str, str]:
        cid = str(self.store.get("mal.client_id") or "").strip()
        csec = str(self.store.get("mal.client_secret") or "").strip()
        if not cid or not csec:
            raise ConfigError("Missing Client ID or Secret")
        return cid, csec

    def new_verifier(self) -> str:
        verifier = generate_code_verifier()
        self.store.set("mal.pkce_verifier", verifier)
        return verifier

    def authorize_url(self) -> str:
        cid = str(self.store.get("mal.client_id") or "").strip()
        verifier = str(self.store.get("mal.pkce_verifier") or "").strip()
        if not cid or not verifier:
            raise ConfigError("Save the Client ID and Secret first")
        # MAL only implements the "plain" challenge method.
        params = {
            "response_type": "code",
            "client_id": cid,
            "code_challenge": verifier,
            "redirect_uri": REDIRECT_URI,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    # --- token lifecycle ------------------------------------------------------
    def get_access_token(self) -> str | None:
        if not self.access_token or not self.refresh_token or not self.expires_at:
            return None
        if self.clock() >= self.expires_at:
            return None
        return self.access_token

    def is_authenticated(self) -> bool:
        return self.get_access_token() is not None

    def _post_token(self, payload: dict[str, str], what: str) -> dict[str, Any]:
        try:
            r = self.session.post(
                TOKEN_URL,
                data=payload,
                headers={"Content-Type": "application/x-www-form-urlencoded", "User-Agent": UA},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthError(f"{what} failed: {e}") from e
        if not r.ok:
            raise AuthError(f"{what} failed: {r.status_code} {r.reason or ''}".strip())
        try:
            return r.json() or {}
        except ValueError as e:
            raise AuthError(f"{what} failed: invalid JSON") from e

    def save_token(self, data: Mapping[str, Any]) -> None:
        access = str(data.get("access_token") or "").strip()
        if not access:
            raise AuthError("Token response carried no access_token")
        refresh = str(data.get("refresh_token") or self.refresh_token or "").strip() or None
        expires_at = self.clock() + float(data.get("expires_in") or 0)

        self.access_token, self.refresh_token, self.expires_at = access, refresh, expires_at
        self.store.update(
            {
                "mal.access_token": access,
                "mal.refresh_token": refresh or "",
                "mal.expires_at": expires_at,
            }
        )

    def exchange_code(self, code: str) -> None:
        cid, csec = self.credentials()
        verifier = str(self.store.get("mal.pkce_verifier") or "").strip()
        if not verifier:
            raise ConfigError("Missing PKCE Verifier. Please generate the auth link again.")

        log("Exchanging auth code...")
        data = self._post_token(
            {
                "grant_type": "authorization_code",
                "client_id": cid,
                "client_secret": csec,
                "code": extract_code(code),
                "code_verifier": verifier,
                "redirect_uri": REDIRECT_URI,
            },
            "Auth",
        )
        self.save_token(data)
        log("Authentication successful", level="SUCCESS")

    def refresh(self) -> None:
        cid, csec = self.credentials()
        if not self.refresh_token:
            raise AuthError("No refresh token")

        log("Refreshing token...")
        data = self._post_token(
            {
                "grant_type": "refresh_token",
                "client_id": cid,
                "client_secret": csec,
                "refresh_token": self.refresh_token,
            },
            "Refresh",
        )
        self.save_token(data)
        log("Token refreshed", level="SUCCESS")

    def with_auth_headers(self) -> dict[str, str]:
        if not self.get_access_token():
            self.refresh()
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/x-www-form-urlencoded",
        }

    def disconnect(self) -> None:
        self.access_token = self.refresh_token = None
        self.expires_at = None
        self.store.update({"mal.access_token": "", "mal.refresh_token": "", "mal.expires_at": 0})
        log("MAL: token cleared")


__all__ = ["MALTokenManager", "generate_code_verifier", "extract_code", "AUTH_URL", "TOKEN_URL", "REDIRECT_URI"]
