from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from cupcake_store.models.user import User


class UserRead(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: str
    consent_accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone_number": user.phone_number,
        "address": user.address,
        "profile_image_url": user.profile_image_url,
        "role": user.role,
        "consent_accepted_at": user.consent_accepted_at,
        "created_at": user.created_at,
    }
