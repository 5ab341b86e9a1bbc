# /providers/sync/_log.py
# MALBridge - provider log lines ("feature: msg key=value ...") on the app logger
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any

from _logging import LEVELS, log as _app_log


def _floor(provider: str) -> int:
    """Minimum level from MB_{PROVIDER}_LOG_LEVEL or MB_LOG_LEVEL; 0 when unset."""
    v = os.getenv(f"MB_{provider}_LOG_LEVEL") or os.getenv("MB_LOG_LEVEL") or ""
    return LEVELS.get(v.strip().lower(), 0) if v.strip() else 0


def _kv(fields: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for k in sorted(fields):
        v = fields[k]
        if v is None:
            continue
        vs = " ".join(str(v).split())
        if not vs:
            continue
        if " " in vs or any(ch in vs for ch in ('"', "=")):
            vs = json.dumps(vs, ensure_ascii=False)
        parts.append(f"{k}={vs}")
    return " ".join(parts)


def log(provider: str, feature: str, level: str, msg: str, **fields: Any) -> None:
    p = str(provider).strip().upper()
    lvl = str(level or "info").strip().lower()
    if LEVELS.get(lvl, 20) < _floor(p):
        return
    line = f"{str(feature).strip().lower()}: {' '.join(str(msg).split())}"
    tail = _kv(fields)
    if tail:
        line = f"{line} {tail}"
    _app_log(line, level=lvl, module=p)
