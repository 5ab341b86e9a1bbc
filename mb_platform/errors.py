# mb_platform/errors.py
# MALBridge - error taxonomy shared by providers and the engine
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations


class MALBridgeError(RuntimeError):
    pass


class ConfigError(MALBridgeError):
    """Missing credentials or PKCE verifier; fatal to the action, never retried."""


class AuthError(MALBridgeError):
    """Token exchange or refresh rejected."""


class NetworkError(MALBridgeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class CancelledError(MALBridgeError):
    """User-requested stop; not a failure."""


__all__ = ["MALBridgeError", "ConfigError", "AuthError", "NetworkError", "CancelledError"]
