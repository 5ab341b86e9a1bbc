from __future__ import annotations
import json
from typing import Any, Callable

class Emitter:
    def __init__(self, cb: Callable[[str], None] | None):
        self.cb = cb

    def emit(self, event: str, **data: Any) -> None:
        if not self.cb:
            return
        try:
            payload = {"event": event}
            payload.update(data)
            self.cb(json.dumps(payload, separators=(",", ":")))
        except Exception:
            pass
