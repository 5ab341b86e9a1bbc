# MALBridge test scripts
from __future__ import annotations

import pytest

from _logging import log as app_log
from providers.sync._log import log


@pytest.fixture(autouse=True)
def _clean(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("MB_LOG_LEVEL", raising=False)
    monkeypatch.delenv("MB_MAL_LOG_LEVEL", raising=False)
    app_log.buffer.clear()
    yield
    app_log.buffer.clear()


def test_provider_line_lands_in_app_ring() -> None:
    log("mal", "list:index", "warn", "page fetch failed;\nretrying once", offset=500, error="Connection reset")

    row = app_log.buffer.items()[0]
    assert row["module"] == "MAL"
    assert row["level"] == "WARN"
    assert row["msg"] == 'list:index: page fetch failed; retrying once error="Connection reset" offset=500'


def test_env_floor_silences_lower_levels(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MB_MAL_LOG_LEVEL", "error")

    log("MAL", "list:upsert", "warn", "retrying")
    log("ANILIST", "collection", "warn", "kept")

    assert [r["module"] for r in app_log.buffer.items()] == ["ANILIST"]
