import pytest
from fastapi import Response
from starlette.requests import Request

from cupcake_store.core import config
from cupcake_store.services.auth import (
    SESSION_COOKIE_NAME,
    build_cookie_options,
    create_session_token,
    create_state_token,
    decode_session_token,
    decode_state_token,
    extract_session_token,
    set_session_cookie,
)


@pytest.fixture(autouse=True)
def _session_secret(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")


def _build_request(host: str = "testserver", headers: list | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/auth/user",
        "query_string": b"",
        "headers": [(b"host", host.encode())] + (headers or []),
        "client": ("testclient", 50000),
        "server": (host, 80),
        "scheme": "http",
    }
    return Request(scope)


def test_session_token_round_trip():
    token = create_session_token("sub-123", extra={"role": "client"})

    payload = decode_session_token(token)

    assert payload["user_id"] == "sub-123"
    assert payload["role"] == "client"


def test_tampered_session_token_is_rejected():
    token = create_session_token("sub-123")

    assert decode_session_token(token[:-2] + "xx") is None


def test_token_signed_with_other_secret_is_rejected(monkeypatch):
    token = create_session_token("sub-123")
    monkeypatch.setattr(config, "SESSION_SECRET", "rotated-secret")

    assert decode_session_token(token) is None


def test_expired_session_token_is_rejected(monkeypatch):
    monkeypatch.setattr(config, "SESSION_MAX_AGE_SECONDS", -10)

    token = create_session_token("sub-123")

    assert decode_session_token(token) is None


def test_missing_secret_fails_loudly(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "")

    with pytest.raises(RuntimeError):
        create_session_token("sub-123")


def test_state_token_is_not_accepted_as_session():
    state = create_state_token({"state": "abc", "verifier": "v"})

    assert decode_state_token(state)["state"] == "abc"
    assert decode_session_token(state) is None


def test_bearer_header_wins_over_cookie():
    request = _build_request(
        headers=[
            (b"authorization", b"Bearer header-token"),
            (b"cookie", f"{SESSION_COOKIE_NAME}=cookie-token".encode()),
        ]
    )

    assert extract_session_token(request) == "header-token"


def test_cookie_used_without_bearer_header():
    request = _build_request(headers=[(b"cookie", f"{SESSION_COOKIE_NAME}=cookie-token".encode())])

    assert extract_session_token(request) == "cookie-token"


def test_cookie_is_secure_on_public_host(monkeypatch):
    monkeypatch.setattr(config, "SESSION_COOKIE_SECURE", False)

    assert build_cookie_options(_build_request("loja.example.com"))["secure"] is True
    assert build_cookie_options(_build_request("localhost:8000"))["secure"] is False


def test_set_session_cookie_writes_httponly_cookie():
    response = Response()

    set_session_cookie(response, "token-value", _build_request())

    header = response.headers["set-cookie"]
    assert header.startswith(f"{SESSION_COOKIE_NAME}=token-value")
    assert "HttpOnly" in header
