# MALBridge test scripts
from __future__ import annotations

import pytest
import responses

from mb_platform.errors import ConfigError
from providers.auth._auth_ANILIST import GQL_URL, TOKEN_URL, AniListAuth


@pytest.fixture()
def auth(store) -> AniListAuth:
    store.update({"anilist.client_id": "cid", "anilist.client_secret": "secret"})
    return AniListAuth(store)


def test_finish_stores_token_and_viewer(auth, store) -> None:
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"access_token": "tok"})
        rsps.add(responses.POST, GQL_URL, json={"data": {"Viewer": {"id": 42, "name": "tester"}}})
        st = auth.finish(code="abc", redirect_uri="http://localhost/cb")

    assert st.connected is True
    assert st.user == "tester"
    assert store.get("anilist.access_token") == "tok"


def test_finish_survives_null_viewer_data(auth, store) -> None:
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"access_token": "tok"})
        rsps.add(responses.POST, GQL_URL, json={"data": None, "errors": [{"message": "Invalid token"}]})
        st = auth.finish(code="abc", redirect_uri="http://localhost/cb")

    assert st.connected is True
    assert st.user is None


def test_start_requires_client_id(store) -> None:
    with pytest.raises(ConfigError):
        AniListAuth(store).start("http://localhost/cb")
