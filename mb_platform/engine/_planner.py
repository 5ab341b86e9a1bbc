from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ._normalize import score_to_anilist, status_to_anilist
from ._types import Direction, ListEntry

SCORE_TOLERANCE_ANILIST = 1


@dataclass
class Decision:
    write: bool
    reasons: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return ",".join(self.reasons)


#--- Diff rule ----------------------------------------------------------------
def needs_write(src: ListEntry, dst: ListEntry | None, *, direction: Direction = Direction.ANILIST_TO_MAL) -> Decision:
    if dst is None:
        return Decision(True, ["new"])

    reasons: list[str] = []
    if src.status is not None and src.status != dst.status:
        reasons.append("status")

    if direction is Direction.MAL_TO_ANILIST:
        # AniList keeps its own scale; one point of drift is rounding noise.
        if abs(score_to_anilist(src.score) - dst.raw_score) > SCORE_TOLERANCE_ANILIST:
            reasons.append("score")
    elif src.score != dst.score:
        reasons.append("score")

    if src.progress != dst.progress:
        reasons.append("progress")
    if src.rewatch_count > 0 and src.rewatch_count != dst.rewatch_count:
        reasons.append("rewatch")
    return Decision(bool(reasons), reasons)


#--- Payloads -----------------------------------------------------------------
def mal_payload(src: ListEntry) -> dict[str, Any]:
    """Form fields for PUT /anime/{id}/my_list_status."""
    out: dict[str, Any] = {}
    if src.status is not None:
        out["status"] = src.status.value
    out["score"] = int(src.score)
    out["num_watched_episodes"] = int(src.progress)
    if src.rewatch_count > 0:
        out["num_times_rewatched"] = int(src.rewatch_count)
        out["is_rewatching"] = bool(src.is_rewatching)
    return out


def anilist_payload(src: ListEntry) -> dict[str, Any]:
    """Arguments for SaveMediaListEntry; rewatch goes through a second mutation."""
    return {
        "status": status_to_anilist(src.status),
        "score": score_to_anilist(src.score),
        "progress": int(src.progress),
        "repeat": int(src.rewatch_count) if src.rewatch_count > 0 else None,
    }


__all__ = ["Decision", "needs_write", "mal_payload", "anilist_payload"]
