from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.core.roles import ADMIN_ONLY
from cupcake_store.deps import raise_http_error, require_role
from cupcake_store.models.preassigned_role import PreassignedRole
from cupcake_store.models.user import User
from cupcake_store.services.errors import StoreError
from cupcake_store.services.role_provisioning import (
    create_preassigned_role,
    delete_preassigned_role,
    list_preassigned_roles,
)

router = APIRouter(prefix="/api/admin/preassigned-roles", tags=["preassigned-roles"])


class PreassignedRoleCreate(BaseModel):
    email: EmailStr
    role: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None


class PreassignedRoleRead(BaseModel):
    id: int
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    consumed: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


def _entry_to_dict(entry: PreassignedRole) -> dict:
    return {
        "id": entry.id,
        "email": entry.email,
        "role": entry.role,
        "first_name": entry.first_name,
        "last_name": entry.last_name,
        "phone_number": entry.phone_number,
        "consumed": bool(entry.consumed),
        "created_by": entry.created_by,
        "created_at": entry.created_at,
    }


@router.get("", response_model=List[PreassignedRoleRead])
def list_preassigned_roles_endpoint(
    _user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    return [_entry_to_dict(entry) for entry in list_preassigned_roles(db)]


@router.post("", response_model=PreassignedRoleRead, status_code=status.HTTP_201_CREATED)
def create_preassigned_role_endpoint(
    payload: PreassignedRoleCreate,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    try:
        entry = create_preassigned_role(
            db,
            created_by=user.id,
            dispatch=background_tasks.add_task,
            **payload.model_dump(),
        )
    except StoreError as exc:
        raise_http_error(exc)
    return _entry_to_dict(entry)


@router.delete("/{preassigned_role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_preassigned_role_endpoint(
    preassigned_role_id: int,
    _user: User = Depends(require_role(ADMIN_ONLY)),
    db: Session = Depends(get_db),
):
    if not delete_preassigned_role(db, preassigned_role_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Atribuição não encontrada")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
