from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.deps import get_current_user, raise_http_error
from cupcake_store.models.user import User
from cupcake_store.schemas.user import UserRead, user_to_dict
from cupcake_store.services.auth import (
    OIDC_STATE_COOKIE_NAME,
    OIDC_STATE_MAX_AGE_SECONDS,
    build_cookie_options,
    clear_session_cookie,
    create_session_token,
    create_state_token,
    decode_state_token,
    set_session_cookie,
)
from cupcake_store.services.errors import StoreError
from cupcake_store.services.oidc import (
    OidcError,
    build_authorization_url,
    build_logout_url,
    complete_authorization,
    generate_pkce_pair,
    oidc_config_cache,
)
from cupcake_store.services.role_provisioning import resolve_first_login
from cupcake_store.services.users import update_profile

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None


def _request_host(request: Request) -> str:
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or ""
    return host.split(",")[0].strip()


def _base_url(request: Request) -> str:
    return f"{request.url.scheme}://{_request_host(request)}"


@router.get("/login")
def login(request: Request):
    try:
        client_config = oidc_config_cache.get(_request_host(request))
    except OidcError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    verifier, challenge = generate_pkce_pair()
    state = secrets.token_urlsafe(24)
    nonce = secrets.token_urlsafe(24)
    url = build_authorization_url(client_config, state=state, nonce=nonce, code_challenge=challenge)

    response = RedirectResponse(url, status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        key=OIDC_STATE_COOKIE_NAME,
        value=create_state_token({"state": state, "nonce": nonce, "verifier": verifier}),
        max_age=OIDC_STATE_MAX_AGE_SECONDS,
        **build_cookie_options(request),
    )
    return response


@router.get("/callback")
def callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    db: Session = Depends(get_db),
):
    stored = decode_state_token(request.cookies.get(OIDC_STATE_COOKIE_NAME) or "")
    if not code or not stored or not state or not secrets.compare_digest(stored.get("state", ""), state):
        logger.warning("[AUTH] callback rejected: missing code or state mismatch")
        return RedirectResponse("/api/login", status_code=status.HTTP_302_FOUND)

    try:
        client_config = oidc_config_cache.get(_request_host(request))
        claims = complete_authorization(
            client_config,
            code=code,
            code_verifier=stored["verifier"],
            nonce=stored.get("nonce"),
        )
    except OidcError as exc:
        logger.warning("[AUTH] callback failed: %s", exc)
        return RedirectResponse("/api/login", status_code=status.HTTP_302_FOUND)

    try:
        user = resolve_first_login(db, claims)
    except StoreError as exc:
        raise_http_error(exc)

    response = RedirectResponse("/", status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, create_session_token(user.id), request)
    response.delete_cookie(key=OIDC_STATE_COOKIE_NAME, **build_cookie_options(request))
    logger.info("[AUTH] login completed user_id=%s role=%s", user.id, user.role)
    return response


@router.get("/logout")
def logout(request: Request):
    redirect_to = "/"
    try:
        client_config = oidc_config_cache.get(_request_host(request))
        redirect_to = build_logout_url(client_config, post_logout_redirect_uri=_base_url(request)) or "/"
    except OidcError as exc:
        logger.warning("[AUTH] logout without provider end-session: %s", exc)

    response = RedirectResponse(redirect_to, status_code=status.HTTP_302_FOUND)
    clear_session_cookie(response, request)
    return response


@router.get("/auth/user", response_model=UserRead)
def current_user(user: User = Depends(get_current_user)):
    return user_to_dict(user)


@router.patch("/user/profile", response_model=UserRead)
def update_own_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = update_profile(db, user, **payload.model_dump(exclude_unset=True))
    return user_to_dict(updated)
