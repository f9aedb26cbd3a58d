from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.core.roles import ADMIN_ONLY
from cupcake_store.deps import raise_http_error, require_role
from cupcake_store.models.user import User
from cupcake_store.schemas.user import UserRead, user_to_dict
from cupcake_store.services.errors import StoreError
from cupcake_store.services.users import delete_user, list_users, update_user, update_user_role

router = APIRouter(prefix="/api/admin/users", tags=["admin-users"])
logger = logging.getLogger(__name__)


class UserRoleUpdate(BaseModel):
    role: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    email: EmailStr
    role: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None


@router.get("", response_model=List[UserRead])
def list_users_endpoint(
    _user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    return [user_to_dict(entry) for entry in list_users(db)]


@router.patch("/{user_id}/role", response_model=UserRead)
def update_user_role_endpoint(
    user_id: str,
    payload: UserRoleUpdate,
    user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    try:
        updated = update_user_role(db, user_id, payload.role)
    except StoreError as exc:
        raise_http_error(exc)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    logger.info("Admin %s changed role of user %s to %s", user.id, user_id, updated.role)
    return user_to_dict(updated)


@router.put("/{user_id}", response_model=UserRead)
def update_user_endpoint(
    user_id: str,
    payload: UserUpdate,
    user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    try:
        updated = update_user(db, user_id, **payload.model_dump())
    except StoreError as exc:
        raise_http_error(exc)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    logger.info("Admin %s updated user %s", user.id, user_id)
    return user_to_dict(updated)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_endpoint(
    user_id: str,
    user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    if user_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Não é possível remover o próprio usuário")
    try:
        deleted = delete_user(db, user_id)
    except StoreError as exc:
        raise_http_error(exc)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    logger.info("Admin %s deleted user %s", user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
