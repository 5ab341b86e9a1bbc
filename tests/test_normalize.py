# MALBridge test scripts
from __future__ import annotations

import pytest

from mb_platform.engine._normalize import (
    from_anilist,
    from_mal,
    score_to_anilist,
    score_to_canonical,
    status_from_anilist,
    status_from_mal,
    status_to_anilist,
)
from mb_platform.engine._types import WatchStatus


@pytest.mark.parametrize(
    "anilist,canonical",
    [
        ("COMPLETED", WatchStatus.COMPLETED),
        ("CURRENT", WatchStatus.WATCHING),
        ("DROPPED", WatchStatus.DROPPED),
        ("PAUSED", WatchStatus.ON_HOLD),
        ("PLANNING", WatchStatus.PLAN_TO_WATCH),
        ("REPEATING", WatchStatus.WATCHING),
    ],
)
def test_anilist_status_table(anilist: str, canonical: WatchStatus) -> None:
    assert status_from_anilist(anilist) is canonical


def test_unmapped_status_yields_none() -> None:
    assert status_from_anilist("SOMETHING") is None
    assert status_from_anilist(None) is None
    assert status_from_mal("rewatching") is None
    assert status_to_anilist(None) is None


def test_reverse_table_has_no_repeating() -> None:
    assert status_to_anilist(WatchStatus.WATCHING) == "CURRENT"
    assert status_to_anilist(WatchStatus.ON_HOLD) == "PAUSED"
    assert {status_to_anilist(s) for s in WatchStatus} == {"COMPLETED", "CURRENT", "DROPPED", "PAUSED", "PLANNING"}


def test_score_rescale_heuristic() -> None:
    assert score_to_canonical(85) == 9
    assert score_to_canonical(84) == 8
    assert score_to_canonical(10) == 10
    assert score_to_canonical(7) == 7
    assert score_to_anilist(7) == 70
    assert score_to_anilist(0) == 0
    assert score_to_anilist(10) == 100


@pytest.mark.parametrize("s", [0, 2, 3, 4, 5, 6, 7, 8, 9, 10])
def test_score_round_trip_within_canonical_scale(s: int) -> None:
    assert score_to_canonical(score_to_anilist(s)) == s


def test_score_one_is_the_known_asymmetry() -> None:
    # 1 -> 10 on the 100-point side, and 10 is read back as already canonical.
    assert score_to_canonical(score_to_anilist(1)) == 10


def test_canonical_score_is_a_fixed_point() -> None:
    for raw in range(0, 101):
        once = score_to_canonical(raw)
        assert score_to_canonical(once) == once


def test_from_anilist_repeating_sets_rewatch_flag() -> None:
    e = from_anilist(
        {
            "status": "REPEATING",
            "score": 70,
            "progress": 4,
            "repeat": 2,
            "media": {"id": 5, "idMal": 50, "title": {"romaji": "Mushishi"}},
        }
    )
    assert (e.external_id, e.foreign_id) == (5, 50)
    assert e.status is WatchStatus.WATCHING
    assert e.is_rewatching is True
    assert (e.score, e.raw_score, e.progress, e.rewatch_count) == (7, 70, 4, 2)
    assert e.title == "Mushishi"


def test_from_anilist_current_with_rewatch_count_is_not_rewatching() -> None:
    e = from_anilist({"status": "CURRENT", "repeat": 3, "media": {"id": 5}})
    assert e.is_rewatching is False
    assert e.foreign_id is None


def test_from_mal_row() -> None:
    e = from_mal(
        {
            "node": {"id": 100, "title": "Cowboy Bebop"},
            "list_status": {"status": "on_hold", "score": 9, "num_episodes_watched": 10, "num_times_rewatched": 1},
        }
    )
    assert e.external_id == 100
    assert e.status is WatchStatus.ON_HOLD
    assert (e.score, e.progress, e.rewatch_count) == (9, 10, 1)
    assert e.title == "Cowboy Bebop"
