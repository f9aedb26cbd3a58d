from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cupcake_store.core.roles import Role, parse_role
from cupcake_store.models.user import User
from cupcake_store.services.errors import ConflictError, EmailInUseError, ValidationError

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str | None:
    normalized = (email or "").strip().lower()
    return normalized or None


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def get_user(db: Session, user_id: str) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str | None) -> User | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(User).filter(func.lower(User.email) == normalized).first()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(desc(User.created_at), User.id).all()


def update_user_role(db: Session, user_id: str, role: str | Role) -> User | None:
    try:
        parsed = parse_role(role)
    except ValueError as exc:
        raise ValidationError("Perfil inválido") from exc

    user = get_user(db, user_id)
    if not user:
        return None
    previous_role = user.role
    user.role = parsed.value
    db.commit()
    db.refresh(user)
    logger.info("User role updated id=%s from=%s to=%s", user.id, previous_role, user.role)
    return user


def update_user(
    db: Session,
    user_id: str,
    *,
    email: str,
    role: str | Role,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone_number: Optional[str] = None,
    address: Optional[str] = None,
) -> User | None:
    """Edição administrativa: campos opcionais vazios são gravados como nulos."""
    normalized_email = normalize_email(email)
    if not normalized_email:
        raise ValidationError("Email é obrigatório")
    try:
        parsed_role = parse_role(role)
    except ValueError as exc:
        raise ValidationError("Perfil inválido") from exc

    existing = get_user_by_email(db, normalized_email)
    if existing and existing.id != user_id:
        raise EmailInUseError("Email já está em uso por outro usuário")

    user = get_user(db, user_id)
    if not user:
        return None

    user.email = normalized_email
    user.role = parsed_role.value
    user.first_name = _blank_to_none(first_name)
    user.last_name = _blank_to_none(last_name)
    user.phone_number = _blank_to_none(phone_number)
    user.address = _blank_to_none(address)
    db.commit()
    db.refresh(user)
    return user


def update_profile(
    db: Session,
    user: User,
    *,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone_number: Optional[str] = None,
    address: Optional[str] = None,
) -> User:
    """Autoatendimento: só altera os campos informados."""
    if first_name is not None:
        user.first_name = _blank_to_none(first_name)
    if last_name is not None:
        user.last_name = _blank_to_none(last_name)
    if phone_number is not None:
        user.phone_number = _blank_to_none(phone_number)
    if address is not None:
        user.address = _blank_to_none(address)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: str) -> bool:
    user = get_user(db, user_id)
    if not user:
        return False
    db.delete(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Usuário possui pedidos ou avaliações e não pode ser removido") from exc
    logger.info("User deleted id=%s", user_id)
    return True
