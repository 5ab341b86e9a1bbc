from __future__ import annotations

from mb_platform.engine._planner import anilist_payload, mal_payload, needs_write
from mb_platform.engine._types import Direction, ListEntry, WatchStatus


def _e(**kw) -> ListEntry:
    base = dict(external_id=1, foreign_id=100, status=WatchStatus.WATCHING, score=7, progress=3, raw_score=70)
    base.update(kw)
    return ListEntry(**base)


def test_missing_counterpart_is_new() -> None:
    d = needs_write(_e(), None)
    assert d.write is True
    assert d.reasons == ["new"]


def test_equal_entries_need_no_write() -> None:
    assert needs_write(_e(), _e()).write is False
    assert needs_write(_e(rewatch_count=2), _e(rewatch_count=2)).write is False


def test_each_field_difference_is_reported() -> None:
    assert needs_write(_e(status=WatchStatus.COMPLETED), _e()).reasons == ["status"]
    assert needs_write(_e(score=8), _e()).reasons == ["score"]
    assert needs_write(_e(progress=4), _e()).reasons == ["progress"]
    assert needs_write(_e(rewatch_count=1), _e()).reasons == ["rewatch"]


def test_zero_rewatch_never_forces_write() -> None:
    assert needs_write(_e(rewatch_count=0), _e(rewatch_count=3)).write is False
    assert needs_write(_e(rewatch_count=0), _e(rewatch_count=2), direction=Direction.MAL_TO_ANILIST).write is False
    d = needs_write(_e(rewatch_count=1), _e(rewatch_count=2), direction=Direction.MAL_TO_ANILIST)
    assert d.reasons == ["rewatch"]


def test_unknown_status_is_not_compared() -> None:
    assert needs_write(_e(status=None), _e(status=WatchStatus.DROPPED)).write is False


def test_import_direction_tolerates_one_point_of_score_drift() -> None:
    src = _e(score=7)
    assert needs_write(src, _e(raw_score=71), direction=Direction.MAL_TO_ANILIST).write is False
    assert needs_write(src, _e(raw_score=72), direction=Direction.MAL_TO_ANILIST).reasons == ["score"]


def test_mal_payload_shapes() -> None:
    assert mal_payload(_e(status=WatchStatus.COMPLETED, score=9, progress=12)) == {
        "status": "completed",
        "score": 9,
        "num_watched_episodes": 12,
    }
    assert "status" not in mal_payload(_e(status=None))
    p = mal_payload(_e(rewatch_count=2, is_rewatching=False))
    assert p["num_times_rewatched"] == 2
    assert p["is_rewatching"] is False


def test_anilist_payload_rescales_score() -> None:
    assert anilist_payload(_e(status=WatchStatus.ON_HOLD, score=6, progress=2)) == {
        "status": "PAUSED",
        "score": 60,
        "progress": 2,
        "repeat": None,
    }
    assert anilist_payload(_e(rewatch_count=1))["repeat"] == 1
