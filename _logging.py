# _logging.py
# Colored console logger with an in-memory ring of recent lines for /api/logs.
from __future__ import annotations
import sys, datetime, threading, time
from collections import deque
from typing import Any, Deque, Optional, TextIO, Dict, List

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

# ── runtime debug gate (reads config, cached briefly) ─────────────────────
_CFG_CACHE: Dict[str, Any] | None = None
_CFG_TS: float = 0.0

def _debug_enabled() -> bool:
    global _CFG_CACHE, _CFG_TS
    now = time.time()
    if _CFG_CACHE is None or (now - _CFG_TS) > 5.0:
        try:
            from mb_platform.config_base import load_config
            _CFG_CACHE = load_config()
        except Exception:
            _CFG_CACHE = {}
        _CFG_TS = now
    rt = (_CFG_CACHE.get("runtime") or {})
    return bool(rt.get("debug"))


class LogBuffer:
    """Newest-first ring of recent lines, as shown by /api/logs."""

    def __init__(self, limit: int = 1000):
        self._items: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(limit)))
        self._lock = threading.Lock()

    def append(self, level: str, msg: str, module: str = "") -> None:
        row = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "module": module,
            "msg": msg,
        }
        with self._lock:
            self._items.appendleft(row)

    def items(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        *,
        _module: Optional[str] = None,
        _buffer: Optional[LogBuffer] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        self.stream = stream
        self.level_no = LEVELS.get(level, 20)
        self.use_color = use_color
        self.show_time = show_time
        self.tag_color_map = {
            "DEBUG": YELLOW,
            "INFO": BLUE,
            "WARN": YELLOW,
            "ERROR": RED,
            "SUCCESS": GREEN,
        }
        self.module = (_module or "").strip()
        self.buffer: LogBuffer = _buffer or LogBuffer()
        self._lock = _lock or threading.Lock()

    def set_level(self, level: str) -> None:
        self.level_no = LEVELS.get(level, self.level_no)

    def bind(self, module: str) -> "Logger":
        """Same sinks and level, tagged with another module name."""
        child = Logger(
            stream=self.stream,
            use_color=self.use_color,
            show_time=self.show_time,
            _module=module,
            _buffer=self.buffer,
            _lock=self._lock,
        )
        child.level_no = self.level_no
        return child

    # Formatting
    def _fmt_text(self, display_level: str, msg: str) -> str:
        # "[MODULE] Level message"
        col = self.tag_color_map.get(display_level) if self.use_color else None
        lvl_disp = f"{col}{display_level}{RESET}" if col else display_level
        head = f"[{self.module}]" if self.module else ""
        line = f"{head} {lvl_disp} {msg}".strip()

        if self.show_time:
            ts = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            prefix = f"{DIM}[{ts}]{RESET}" if self.use_color else f"[{ts}]"
            return f"{prefix} {line}"
        return line

    def _emit(self, severity: str, display_level: str, *parts: Any) -> None:
        sev_no = LEVELS.get(severity, LEVELS["info"])
        if severity == "debug":
            if self.level_no > sev_no and not _debug_enabled():
                return
        elif self.level_no > sev_no:
            return
        msg = " ".join(str(p) for p in parts)
        with self._lock:
            self.stream.write(self._fmt_text(display_level, msg) + "\n")
            self.stream.flush()
        self.buffer.append(display_level, msg, self.module)

    # Public API
    def debug(self, *parts: Any) -> None:
        self._emit("debug", "DEBUG", *parts)

    def info(self, *parts: Any) -> None:
        self._emit("info", "INFO", *parts)

    def warn(self, *parts: Any) -> None:
        self._emit("warn", "WARN", *parts)

    def error(self, *parts: Any) -> None:
        self._emit("error", "ERROR", *parts)

    def success(self, *parts: Any) -> None:
        self._emit("info", "SUCCESS", *parts)

    # Callable adapter: logger("text", level="INFO", module="SYNC")
    def __call__(self, message: str, *, level: str = "INFO", module: Optional[str] = None) -> None:
        target = self.bind(module) if module else self
        lvl_lc = (level or "INFO").lower()

        if lvl_lc == "debug":
            target.debug(message)
        elif lvl_lc in ("warn", "warning"):
            target.warn(message)
        elif lvl_lc == "error":
            target.error(message)
        elif lvl_lc == "success":
            target.success(message)
        else:
            target.info(message)

# default instance
log = Logger()

__all__ = ["Logger", "LogBuffer", "log", "LEVELS"]
