# providers/auth/_auth_base.py
# MALBridge - Auth Base
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

@dataclass
class AuthManifest:
    name: str
    label: str
    flow: str
    fields: list[dict[str, Any]] = field(default_factory=list)
    actions: dict[str, Any] = field(default_factory=dict)
    notes: str | None = None

@dataclass
class AuthStatus:
    connected: bool
    label: str
    user: str | None = None
    expires_at: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

class AuthProvider(Protocol):
    name: str

    def manifest(self) -> AuthManifest: ...
    def get_status(self, cfg: Mapping[str, Any] | None = None) -> AuthStatus: ...
