from __future__ import annotations

import time
from typing import Any, Dict, Optional

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from cupcake_store.core import config

SESSION_COOKIE_NAME = "session"
SESSION_SALT = "cupcake-session"
OIDC_STATE_COOKIE_NAME = "oidc_state"
OIDC_STATE_SALT = "cupcake-oidc-state"
OIDC_STATE_MAX_AGE_SECONDS = 10 * 60


def _serializer(salt: str = SESSION_SALT) -> URLSafeTimedSerializer:
    if not config.SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET não configurado.")
    return URLSafeTimedSerializer(config.SESSION_SECRET, salt=salt)


def create_session_token(user_id: str, extra: Optional[Dict[str, Any]] = None) -> str:
    payload: Dict[str, Any] = {
        "user_id": str(user_id),
        "exp": int(time.time()) + config.SESSION_MAX_AGE_SECONDS,
    }
    if extra:
        payload.update(extra)
    return _serializer().dumps(payload)


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = _serializer().loads(token, max_age=config.SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if exp is not None:
        try:
            if int(exp) < int(time.time()):
                return None
        except (TypeError, ValueError):
            return None
    return payload


def create_state_token(payload: Dict[str, Any]) -> str:
    return _serializer(OIDC_STATE_SALT).dumps(payload)


def decode_state_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = _serializer(OIDC_STATE_SALT).loads(token, max_age=OIDC_STATE_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def extract_session_token(request: Request) -> Optional[str]:
    """Token vem do cookie de sessão ou do header Authorization: Bearer."""
    authorization = request.headers.get("authorization") or ""
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(SESSION_COOKIE_NAME) or None


def build_cookie_options(request: Request | None = None) -> dict[str, Any]:
    secure = config.SESSION_COOKIE_SECURE
    if request is not None:
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").lower()
        host = host.split(",")[0].strip().split(":")[0]
        # em hosts públicos nunca emitir cookie inseguro
        if host not in {"", "localhost", "127.0.0.1", "testserver"}:
            secure = True
    return {
        "httponly": True,
        "samesite": "lax",
        "path": "/",
        "secure": secure,
    }


def set_session_cookie(response: Response, token: str, request: Request | None = None) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        **build_cookie_options(request),
    )


def clear_session_cookie(response: Response, request: Request | None = None) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, **build_cookie_options(request))
