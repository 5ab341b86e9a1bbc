# MALBridge test scripts
from __future__ import annotations

from urllib.parse import parse_qs

import pytest
import responses

from mb_platform.errors import AuthError, ConfigError
from providers.auth._auth_MAL import (
    TOKEN_URL,
    MALTokenManager,
    extract_code,
    generate_code_verifier,
)

NOW = 1_700_000_000.0


@pytest.fixture()
def creds(store):
    store.update({"mal.client_id": "cid", "mal.client_secret": "secret"})
    return store


def _form(call) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(call.request.body).items()}


def test_verifier_is_128_unreserved_chars() -> None:
    v = generate_code_verifier()
    assert len(v) == 128
    assert set(v) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~")


def test_extract_code_from_pasted_url() -> None:
    assert extract_code("http://localhost/?code=abc123&state=x") == "abc123"
    assert extract_code("  plain-code ") == "plain-code"


def test_access_token_requires_all_fields_and_unexpired(creds) -> None:
    creds.update({"mal.access_token": "a", "mal.refresh_token": "r", "mal.expires_at": NOW + 10})
    tm = MALTokenManager(creds, clock=lambda: NOW)
    assert tm.get_access_token() == "a"

    tm.clock = lambda: NOW + 10
    assert tm.get_access_token() is None

    tm.refresh_token = None
    tm.clock = lambda: NOW
    assert tm.get_access_token() is None


def test_authorize_url_uses_plain_challenge(creds) -> None:
    tm = MALTokenManager(creds)
    verifier = tm.new_verifier()
    url = tm.authorize_url()
    assert url.startswith("https://myanimelist.net/v1/oauth2/authorize?")
    assert f"code_challenge={verifier}" in url
    assert "client_id=cid" in url


def test_exchange_code_stores_tokens(creds) -> None:
    creds.set("mal.pkce_verifier", "v" * 128)
    tm = MALTokenManager(creds, clock=lambda: NOW)

    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            TOKEN_URL,
            json={"access_token": "A1", "refresh_token": "R1", "expires_in": 3600},
            status=200,
        )
        tm.exchange_code("http://localhost/?code=xyz")

        form = _form(rsps.calls[0])
        assert form["grant_type"] == "authorization_code"
        assert form["code"] == "xyz"
        assert form["code_verifier"] == "v" * 128
        assert form["redirect_uri"] == "http://localhost"

    assert tm.get_access_token() == "A1"
    assert creds.get("mal.refresh_token") == "R1"
    assert creds.get("mal.expires_at") == NOW + 3600


def test_exchange_without_verifier_is_config_error(creds) -> None:
    tm = MALTokenManager(creds)
    with responses.RequestsMock():
        with pytest.raises(ConfigError):
            tm.exchange_code("xyz")


def test_missing_credentials_fail_before_network(store) -> None:
    tm = MALTokenManager(store)
    with responses.RequestsMock():
        with pytest.raises(ConfigError):
            tm.exchange_code("xyz")
        with pytest.raises(ConfigError):
            tm.refresh()


def test_rejected_exchange_is_auth_error(creds) -> None:
    creds.set("mal.pkce_verifier", "v" * 128)
    tm = MALTokenManager(creds)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"error": "invalid_grant"}, status=400)
        with pytest.raises(AuthError):
            tm.exchange_code("bad")
    assert tm.get_access_token() is None


def test_refresh_without_refresh_token_is_auth_error(creds) -> None:
    tm = MALTokenManager(creds)
    with responses.RequestsMock():
        with pytest.raises(AuthError):
            tm.refresh()


def test_expired_token_refreshes_exactly_once(creds) -> None:
    creds.update({"mal.access_token": "old", "mal.refresh_token": "R0", "mal.expires_at": NOW - 1})
    tm = MALTokenManager(creds, clock=lambda: NOW)

    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            TOKEN_URL,
            json={"access_token": "new", "refresh_token": "R1", "expires_in": 3600},
            status=200,
        )
        headers = tm.with_auth_headers()
        again = tm.with_auth_headers()

        assert len(rsps.calls) == 1
        assert _form(rsps.calls[0])["grant_type"] == "refresh_token"
        assert _form(rsps.calls[0])["refresh_token"] == "R0"

    assert headers["Authorization"] == "Bearer new"
    assert headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert again["Authorization"] == "Bearer new"


def test_refresh_failure_propagates_from_headers(creds) -> None:
    creds.update({"mal.access_token": "old", "mal.refresh_token": "R0", "mal.expires_at": NOW - 1})
    tm = MALTokenManager(creds, clock=lambda: NOW)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, status=401)
        with pytest.raises(AuthError):
            tm.with_auth_headers()
        assert len(rsps.calls) == 1


def test_disconnect_clears_tokens(creds) -> None:
    creds.update({"mal.access_token": "a", "mal.refresh_token": "r", "mal.expires_at": NOW + 100})
    tm = MALTokenManager(creds, clock=lambda: NOW)
    tm.disconnect()
    assert tm.is_authenticated() is False
    assert creds.get("mal.access_token") == ""
