# cupcake_store/deps.py
from __future__ import annotations

import logging
from typing import NoReturn, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.core.request_context import set_request_context
from cupcake_store.core.roles import Role, role_allowed
from cupcake_store.models.user import User
from cupcake_store.services.auth import decode_session_token, extract_session_token
from cupcake_store.services.errors import StoreError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "authorization": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
}


def raise_http_error(exc: StoreError) -> NoReturn:
    """Converte um erro de domínio no HTTPException correspondente."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail=exc.message) from exc


def _load_session_user(request: Request, db: Session) -> Optional[User]:
    token = extract_session_token(request)
    if not token:
        return None
    payload = decode_session_token(token)
    if not payload or not payload.get("user_id"):
        return None
    user = db.query(User).filter(User.id == str(payload["user_id"])).first()
    if user:
        request.state.user = user
        set_request_context(user_id=user.id, user_role=user.role)
    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Lê a sessão assinada (cookie ou Bearer) e retorna o usuário do banco."""
    user = _load_session_user(request, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    return _load_session_user(request, db)


def _log_access_denied(*, user: User, capability: frozenset[Role], request: Request) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (role_denied): user_id=%s user_role=%s required=%s endpoint=%s",
        getattr(user, "id", None),
        getattr(user, "role", None),
        ",".join(sorted(role.value for role in capability)),
        endpoint,
    )


def require_role(capability: frozenset[Role]):
    def _dependency(
        request: Request,
        user: User = Depends(get_current_user),
    ) -> User:
        if not role_allowed(user.role, capability):
            _log_access_denied(user=user, capability=capability, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permissão insuficiente")
        return user

    return _dependency
