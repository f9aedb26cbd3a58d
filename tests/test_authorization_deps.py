from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from cupcake_store.core import config
from cupcake_store.core.roles import ADMIN_ONLY, STAFF
from cupcake_store.deps import get_current_user, raise_http_error, require_role
from cupcake_store.services.auth import create_session_token
from cupcake_store.services.errors import (
    ConflictError,
    NotFoundError,
    OrderAccessDeniedError,
    OrderValidationError,
)
from tests.fixtures_data import ROLE_DENIED
from tests.fixtures_db import add_user, build_session


def _build_request(path: str = "/api/resource", method: str = "GET", headers: list | None = None) -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": headers or [],
        "path_params": {},
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


def test_require_role_denies_client_on_staff_endpoint():
    user = SimpleNamespace(id="sub-client", role="client")
    dependency = require_role(STAFF)

    with pytest.raises(HTTPException) as exc:
        dependency(request=_build_request(path="/api/orders/1/status", method="PATCH"), user=user)

    assert exc.value.status_code == ROLE_DENIED["expected_status_code"]
    assert exc.value.detail == ROLE_DENIED["expected_detail"]


def test_require_role_allows_employee_on_staff_endpoint():
    user = SimpleNamespace(id="sub-employee", role="employee")
    dependency = require_role(STAFF)

    assert dependency(request=_build_request(), user=user) is user


def test_require_role_denies_employee_on_admin_endpoint():
    user = SimpleNamespace(id="sub-employee", role="employee")
    dependency = require_role(ADMIN_ONLY)

    with pytest.raises(HTTPException) as exc:
        dependency(request=_build_request(path="/api/admin/users"), user=user)

    assert exc.value.status_code == 403


def test_require_role_denies_unknown_role():
    user = SimpleNamespace(id="sub-x", role="owner")

    with pytest.raises(HTTPException):
        require_role(ADMIN_ONLY)(request=_build_request(), user=user)


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (OrderValidationError("inválido"), 400),
        (OrderAccessDeniedError("proibido"), 403),
        (NotFoundError("sumiu"), 404),
        (ConflictError("duplicado"), 409),
    ],
)
def test_raise_http_error_maps_error_kind(error, status_code):
    with pytest.raises(HTTPException) as exc:
        raise_http_error(error)

    assert exc.value.status_code == status_code
    assert exc.value.detail == error.message


def test_get_current_user_from_cookie(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")
    db = build_session()
    add_user(db, "sub-client", role="client")
    token = create_session_token("sub-client")
    request = _build_request(headers=[(b"cookie", f"session={token}".encode())])

    user = get_current_user(request=request, db=db)

    assert user.id == "sub-client"
    assert request.state.user is user


def test_get_current_user_from_bearer_header(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")
    db = build_session()
    add_user(db, "sub-employee", role="employee")
    token = create_session_token("sub-employee")
    request = _build_request(headers=[(b"authorization", f"Bearer {token}".encode())])

    assert get_current_user(request=request, db=db).role == "employee"


def test_get_current_user_without_session_is_unauthorized(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")
    db = build_session()

    with pytest.raises(HTTPException) as exc:
        get_current_user(request=_build_request(), db=db)

    assert exc.value.status_code == 401


def test_get_current_user_for_deleted_user_is_unauthorized(monkeypatch):
    monkeypatch.setattr(config, "SESSION_SECRET", "test-secret")
    db = build_session()
    token = create_session_token("sub-gone")
    request = _build_request(headers=[(b"cookie", f"session={token}".encode())])

    with pytest.raises(HTTPException) as exc:
        get_current_user(request=request, db=db)

    assert exc.value.status_code == 401
