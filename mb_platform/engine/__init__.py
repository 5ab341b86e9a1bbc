# Public surface of the engine package.
from ..id_map import CrossIdTable
from ._applier import ChangeLog
from ._live import LiveUpdateHandler
from ._state_store import StateStore
from ._types import DeletionPolicy, Direction, ListEntry, RunState, SyncSummary, WatchStatus
from .facade import SyncEngine

__all__ = [
    "SyncEngine",
    "LiveUpdateHandler",
    "ChangeLog",
    "StateStore",
    "CrossIdTable",
    "DeletionPolicy",
    "Direction",
    "ListEntry",
    "RunState",
    "SyncSummary",
    "WatchStatus",
]
