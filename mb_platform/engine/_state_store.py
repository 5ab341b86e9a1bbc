# mb_platform/engine/_state_store.py
# state files kept between runs.
# Copyright (c) 2025-2026 MALBridge / Cenodude
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from collections.abc import Mapping
from typing import Any

@dataclass
class StateStore:
    base_path: Path

    @property
    def history(self) -> Path:
        return self.base_path / "id_history.json"

    @property
    def last(self) -> Path:
        return self.base_path / "last_sync.json"

    def _read(self, p: Path, default: Any) -> Any:
        if not p.exists():
            return default
        try:
            return json.loads(p.read_text("utf-8"))
        except Exception:
            return default

    def _write_atomic(self, p: Path, data: Any) -> None:
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(p.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        tmp.replace(p)

    def load_history(self) -> dict[str, Any]:
        data = self._read(self.history, {})
        return data if isinstance(data, dict) else {}

    def save_history(self, data: Mapping[str, Any]) -> None:
        self._write_atomic(self.history, dict(data))

    def load_last(self) -> dict[str, Any]:
        data = self._read(self.last, {})
        return data if isinstance(data, dict) else {}

    def save_last(self, data: Mapping[str, Any]) -> None:
        self._write_atomic(self.last, dict(data))
