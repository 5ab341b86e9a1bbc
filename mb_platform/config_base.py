# mb_platform/config_base.py
# MALBridge - configuration loading, defaults and key/value access
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Providers -----------------------------------------------------------
    "mal": {
        "client_id": "",                                # From your MAL API app (myanimelist.net/apiconfig)
        "client_secret": "",                            # From your MAL API app
        "redirect_uri": "http://localhost",             # Must match the App Redirect URL on MAL
        "pkce_verifier": "",                            # Generated when credentials are saved
        "auth_code": "",                                # Last pasted authorization code
        "access_token": "",                             # OAuth2 access token
        "refresh_token": "",                            # OAuth2 refresh token
        "expires_at": 0,                                # Epoch (seconds) when access_token expires
        "timeout": 15.0,                                # HTTP timeout (seconds)
    },

    "anilist": {
        "client_id": "",                                # From your AniList developer app
        "client_secret": "",                            # From your AniList developer app
        "access_token": "",                             # OAuth2 access token (AniList tokens are long-lived)
        "timeout": 15.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for 429/5xx
    },

    # --- Sync ----------------------------------------------------------------
    "sync": {
        "direction": "ANILIST_TO_MAL",                  # "ANILIST_TO_MAL" (default) or "MAL_TO_ANILIST" (import)
        "live_sync": True,                              # Push single-entry changes as they happen
        "sync_on_startup": False,                       # Full run shortly after start
        "sync_every_24h": False,                        # Full run once a day
        "mirror_deletions": False,                      # Delete MAL entries missing from AniList (danger)
        "safe_deletions": False,                        # Delete only entries linked in a previous run
        "write_delay_ms": 500,                          # Pacing after each write/delete
        "finalize_delay_ms": 2000,                      # Hold the terminal message before resetting progress
        "live_debounce_ms": 1000,                       # Let the AniList write settle before diffing
    },

    # --- Runtime / Diagnostics ----------------------------------------------
    "runtime": {
        "debug": False,                                 # Extra verbose logging (debug level)
        "changes_limit": 200,                           # Size of the in-memory change log
    },

    # --- Scheduling ----------------------------------------------------------
    "scheduling": {
        "startup_delay_sec": 5,                         # Delay before the startup run
        "interval_hours": 24,                           # Period of the recurring run
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"

def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)  # type: ignore[assignment]
        else:
            out[k] = v
    return out


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """
    Read config.json merged over the defaults.
    """
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except Exception:
            user_cfg = {}
    return _deep_merge(DEFAULT_CFG, user_cfg)


def save_config(cfg: Dict[str, Any]) -> None:
    """
    Write to config.json
    """
    _write_json_atomic(_cfg_file(), dict(cfg or {}))


class ConfigStore:
    """Dotted key/value view over the config document.

    Every ``get`` reloads so values written by the API are seen by the engine
    without a restart; ``set`` is read-modify-write under a lock.
    """

    def __init__(
        self,
        load: Callable[[], Dict[str, Any]] = load_config,
        save: Callable[[Dict[str, Any]], None] = save_config,
    ) -> None:
        self._load = load
        self._save = save
        self._lock = threading.Lock()

    @staticmethod
    def _split(key: str) -> list[str]:
        parts = [p for p in str(key or "").split(".") if p]
        if not parts:
            raise KeyError(key)
        return parts

    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self._load() or {}
        for part in self._split(key):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        parts = self._split(key)
        with self._lock:
            cfg = self._load() or {}
            node = cfg
            for part in parts[:-1]:
                nxt = node.get(part)
                if not isinstance(nxt, dict):
                    nxt = {}
                    node[part] = nxt
                node = nxt
            node[parts[-1]] = value
            self._save(cfg)

    def update(self, values: Dict[str, Any]) -> None:
        for k, v in (values or {}).items():
            self.set(k, v)

    def section(self, name: str) -> Dict[str, Any]:
        val = self.get(name, {})
        return dict(val) if isinstance(val, dict) else {}
