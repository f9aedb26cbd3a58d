from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from cupcake_store.core import config
from cupcake_store.services import oidc
from cupcake_store.services.oidc import (
    OidcClientConfig,
    OidcConfigCache,
    OidcError,
    build_authorization_url,
    build_logout_url,
    callback_url_for_host,
    complete_authorization,
    generate_pkce_pair,
)

DISCOVERY = {
    "issuer": "https://id.example.com/oidc",
    "authorization_endpoint": "https://id.example.com/oidc/auth",
    "token_endpoint": "https://id.example.com/oidc/token",
    "jwks_uri": "https://id.example.com/oidc/jwks",
    "end_session_endpoint": "https://id.example.com/oidc/session/end",
}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CountingFetcher:
    def __init__(self, document=None):
        self.document = document or DISCOVERY
        self.calls = 0

    def __call__(self, _issuer_url):
        self.calls += 1
        return dict(self.document)


def _build_cache(ttl_seconds=3600, document=None):
    fetcher = CountingFetcher(document)
    clock = FakeClock()
    cache = OidcConfigCache(
        issuer_url="https://id.example.com/oidc",
        ttl_seconds=ttl_seconds,
        fetcher=fetcher,
        clock=clock,
    )
    return cache, fetcher, clock


def test_cache_reuses_entry_within_ttl():
    cache, fetcher, clock = _build_cache()

    first = cache.get("loja.example.com")
    clock.now += 10
    second = cache.get("LOJA.example.com")

    assert first is second
    assert fetcher.calls == 1
    assert first.redirect_uri == "https://loja.example.com/api/callback"


def test_cache_keeps_one_entry_per_host():
    cache, fetcher, _clock = _build_cache()

    public = cache.get("loja.example.com")
    local = cache.get("localhost:8000")

    assert fetcher.calls == 2
    assert public.redirect_uri != local.redirect_uri
    assert local.redirect_uri == "http://localhost:8000/api/callback"


def test_cache_refetches_after_ttl():
    cache, fetcher, clock = _build_cache(ttl_seconds=60)

    cache.get("loja.example.com")
    clock.now += 61
    cache.get("loja.example.com")

    assert fetcher.calls == 2


def test_invalidate_forces_new_discovery():
    cache, fetcher, _clock = _build_cache()

    cache.get("loja.example.com")
    cache.invalidate("loja.example.com")
    cache.get("loja.example.com")

    assert fetcher.calls == 2


def test_incomplete_discovery_document_raises():
    cache, _fetcher, _clock = _build_cache(document={"issuer": "https://id.example.com/oidc"})

    with pytest.raises(OidcError):
        cache.get("loja.example.com")


def test_missing_host_raises():
    cache, _fetcher, _clock = _build_cache()

    with pytest.raises(OidcError):
        cache.get("")


def test_callback_url_scheme_depends_on_host():
    assert callback_url_for_host("127.0.0.1:5000") == "http://127.0.0.1:5000/api/callback"
    assert callback_url_for_host("loja.example.com") == "https://loja.example.com/api/callback"


def _client_config():
    return OidcClientConfig(
        issuer=DISCOVERY["issuer"],
        authorization_endpoint=DISCOVERY["authorization_endpoint"],
        token_endpoint=DISCOVERY["token_endpoint"],
        jwks_uri=DISCOVERY["jwks_uri"],
        redirect_uri="https://loja.example.com/api/callback",
        end_session_endpoint=DISCOVERY["end_session_endpoint"],
    )


def test_authorization_url_carries_pkce_and_state(monkeypatch):
    monkeypatch.setattr(config, "OIDC_CLIENT_ID", "cupcake-client")
    _verifier, challenge = generate_pkce_pair()

    url = build_authorization_url(_client_config(), state="st", nonce="nn", code_challenge=challenge)

    query = parse_qs(urlparse(url).query)
    assert url.startswith(DISCOVERY["authorization_endpoint"])
    assert query["client_id"] == ["cupcake-client"]
    assert query["state"] == ["st"]
    assert query["code_challenge"] == [challenge]
    assert query["code_challenge_method"] == ["S256"]
    assert query["redirect_uri"] == ["https://loja.example.com/api/callback"]


def test_logout_url_without_end_session_endpoint():
    client_config = OidcClientConfig(
        issuer="https://id.example.com",
        authorization_endpoint="https://id.example.com/auth",
        token_endpoint="https://id.example.com/token",
        jwks_uri="https://id.example.com/jwks",
        redirect_uri="https://loja.example.com/api/callback",
    )

    assert build_logout_url(client_config, post_logout_redirect_uri="https://loja.example.com") is None
    assert build_logout_url(_client_config(), post_logout_redirect_uri="https://loja.example.com").startswith(
        DISCOVERY["end_session_endpoint"]
    )


def test_complete_authorization_rejects_nonce_mismatch():
    with patch.object(oidc, "exchange_code", return_value={"id_token": "jwt", "access_token": "at"}), patch.object(
        oidc, "fetch_jwks", return_value={"keys": []}
    ), patch.object(oidc.jwt, "decode", return_value={"sub": "abc", "nonce": "outro"}):
        with pytest.raises(OidcError):
            complete_authorization(_client_config(), code="code", code_verifier="verifier", nonce="esperado")


def test_complete_authorization_returns_verified_claims():
    with patch.object(oidc, "exchange_code", return_value={"id_token": "jwt"}), patch.object(
        oidc, "fetch_jwks", return_value={"keys": []}
    ), patch.object(oidc.jwt, "decode", return_value={"sub": "abc", "nonce": "n1"}) as decode:
        claims = complete_authorization(_client_config(), code="code", code_verifier="verifier", nonce="n1")

    assert claims["sub"] == "abc"
    assert decode.call_args.kwargs["issuer"] == DISCOVERY["issuer"]
