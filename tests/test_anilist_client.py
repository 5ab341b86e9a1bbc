# MALBridge test scripts
from __future__ import annotations

import json

import pytest
import responses

from mb_platform.errors import ConfigError, NetworkError
from providers.sync._mod_ANILIST import GQL_URL, ANILISTClient, ANILISTConfig, flatten_collection

VIEWER = {"data": {"Viewer": {"id": 42, "name": "tester"}}}


def _client(sleeps: list[float]) -> ANILISTClient:
    return ANILISTClient(ANILISTConfig(access_token="tok", max_retries=2), sleep=sleeps.append)


def _body(call) -> dict:
    return json.loads(call.request.body)


def test_requires_token() -> None:
    with pytest.raises(ConfigError):
        ANILISTClient(ANILISTConfig(access_token=""))


def test_flatten_collection_joins_status_lists() -> None:
    data = {
        "MediaListCollection": {
            "lists": [
                {"entries": [{"media": {"id": 1}}, {"media": {"id": 2}}]},
                {"entries": [{"media": {"id": 3}}, {"media": {}}]},
                {"entries": None},
            ]
        }
    }
    assert [e["media"]["id"] for e in flatten_collection(data)] == [1, 2, 3]
    assert flatten_collection({}) == []


def test_fetch_collection_uses_viewer_id(sleeps) -> None:
    client = _client(sleeps)
    coll = {
        "data": {
            "MediaListCollection": {
                "lists": [{"entries": [{"status": "CURRENT", "media": {"id": 1, "idMal": 100}}]}]
            }
        }
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, GQL_URL, json=VIEWER)
        rsps.add(responses.POST, GQL_URL, json=coll)
        entries = client.fetch_collection()

        assert rsps.calls[1].request.headers["Authorization"] == "Bearer tok"
        assert _body(rsps.calls[1])["variables"] == {"userId": 42, "type": "ANIME"}

    assert entries == [{"status": "CURRENT", "media": {"id": 1, "idMal": 100}}]


def test_find_foreign_counterpart_never_raises_on_miss(sleeps) -> None:
    client = _client(sleeps)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, GQL_URL, json={"data": {"Media": {"id": 9}}})
        rsps.add(responses.POST, GQL_URL, json={"errors": [{"message": "Not Found.", "status": 404}]}, status=404)
        assert client.find_foreign_counterpart(900) == 9
        assert client.find_foreign_counterpart(901) is None
        assert _body(rsps.calls[0])["variables"] == {"id": 900}


def test_get_entry_returns_none_when_removed(sleeps) -> None:
    client = _client(sleeps)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, GQL_URL, json=VIEWER)
        rsps.add(responses.POST, GQL_URL, json={"errors": [{"message": "Not Found.", "status": 404}]}, status=404)
        assert client.get_entry(1) is None


def test_apply_update_omits_missing_status(sleeps) -> None:
    client = _client(sleeps)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, GQL_URL, json={"data": {"SaveMediaListEntry": {"id": 5}}})
        rsps.add(responses.POST, GQL_URL, json={"data": {"SaveMediaListEntry": {"id": 5, "repeat": 2}}})
        assert client.apply_update(1, None, 80, 12) == {"id": 5}
        client.apply_rewatch_count(1, 2)

        assert _body(rsps.calls[0])["variables"] == {"mediaId": 1, "scoreRaw": 80, "progress": 12}
        assert _body(rsps.calls[1])["variables"] == {"mediaId": 1, "repeat": 2}


def test_mutation_failure_is_network_error(sleeps) -> None:
    client = _client(sleeps)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, GQL_URL, status=500)
        rsps.add(responses.POST, GQL_URL, status=500)
        with pytest.raises(NetworkError):
            client.apply_update(1, "COMPLETED", 90, 12)
    assert sleeps == [0.5]


def test_get_media_normalizes_title(sleeps) -> None:
    client = _client(sleeps)
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            GQL_URL,
            json={"data": {"Media": {"id": 1, "idMal": 100, "title": {"romaji": "Sousou no Frieren"}}}},
        )
        assert client.get_media(1) == {"id": 1, "idMal": 100, "title": "Sousou no Frieren"}
