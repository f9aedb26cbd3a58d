from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cupcake_store.core.roles import parse_role
from cupcake_store.models.preassigned_role import PreassignedRole
from cupcake_store.models.user import User
from cupcake_store.services.errors import PreassignedRoleConflictError, ValidationError
from cupcake_store.services.event_bus import event_bus
from cupcake_store.services.users import get_user, get_user_by_email, normalize_email

logger = logging.getLogger(__name__)
PROVISIONING_PREFIX = "[ROLE_PROVISIONING]"


@dataclass(frozen=True)
class IdentityClaims:
    subject_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    picture_url: Optional[str] = None

    @classmethod
    def from_mapping(cls, claims: Mapping[str, Any]) -> "IdentityClaims":
        """Aceita tanto os nomes do Replit (first_name) quanto os do OIDC padrão (given_name)."""

        def _pick(*keys: str) -> Optional[str]:
            for key in keys:
                value = claims.get(key)
                if value not in (None, ""):
                    return str(value).strip() or None
            return None

        subject_id = _pick("sub", "subject_id")
        if not subject_id:
            raise ValidationError("Claims sem identificador do usuário (sub)")
        return cls(
            subject_id=subject_id,
            email=normalize_email(_pick("email")),
            first_name=_pick("first_name", "given_name"),
            last_name=_pick("last_name", "family_name"),
            picture_url=_pick("profile_image_url", "picture"),
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_unconsumed_preassigned_role(db: Session, email: str | None) -> PreassignedRole | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return (
        db.query(PreassignedRole)
        .filter(
            func.lower(PreassignedRole.email) == normalized,
            PreassignedRole.consumed.is_(False),
        )
        .first()
    )


def consume_preassigned_role(db: Session, email: str) -> bool:
    """Marca como consumida só se ainda não estiver; o UPDATE condicional é o ponto atômico."""
    updated = (
        db.query(PreassignedRole)
        .filter(
            func.lower(PreassignedRole.email) == normalize_email(email),
            PreassignedRole.consumed.is_(False),
        )
        .update({PreassignedRole.consumed: True}, synchronize_session=False)
    )
    return bool(updated)


def _refresh_from_claims(db: Session, user: User, claims: IdentityClaims) -> None:
    # o provedor só sobrescreve o que ele de fato enviou
    if claims.first_name:
        user.first_name = claims.first_name
    if claims.last_name:
        user.last_name = claims.last_name
    if claims.picture_url:
        user.profile_image_url = claims.picture_url
    if claims.email and not user.email:
        owner = get_user_by_email(db, claims.email)
        if owner is None or owner.id == user.id:
            user.email = claims.email
        else:
            logger.warning(
                "%s claimed email already owned user_id=%s owner_id=%s",
                PROVISIONING_PREFIX,
                user.id,
                owner.id,
            )


def _provision(db: Session, claims: IdentityClaims) -> User:
    existing = get_user(db, claims.subject_id)
    if existing:
        _refresh_from_claims(db, existing, claims)
        db.commit()
        db.refresh(existing)
        logger.info("%s returning login user_id=%s", PROVISIONING_PREFIX, existing.id)
        return existing

    preassigned = get_unconsumed_preassigned_role(db, claims.email) if claims.email else None
    if not claims.email:
        logger.info(
            "%s first login without email user_id=%s; preassigned lookup skipped",
            PROVISIONING_PREFIX,
            claims.subject_id,
        )

    first_name = claims.first_name or (preassigned.first_name if preassigned else None)
    last_name = claims.last_name or (preassigned.last_name if preassigned else None)
    preassigned_phone = preassigned.phone_number if preassigned else None

    merged = get_user_by_email(db, claims.email)
    if merged:
        # email é a chave durável: o mesmo email sob outro "sub" é a mesma conta
        logger.info(
            "%s merging identity by email user_id=%s subject_id=%s",
            PROVISIONING_PREFIX,
            merged.id,
            claims.subject_id,
        )
        if first_name:
            merged.first_name = first_name
        if last_name:
            merged.last_name = last_name
        if claims.picture_url:
            merged.profile_image_url = claims.picture_url
        if not merged.phone_number and preassigned_phone:
            merged.phone_number = preassigned_phone
        if merged.consent_accepted_at is None:
            merged.consent_accepted_at = _utcnow()
        user = merged
    else:
        user = User(
            id=claims.subject_id,
            email=claims.email,
            first_name=first_name,
            last_name=last_name,
            phone_number=preassigned_phone,
            profile_image_url=claims.picture_url,
            consent_accepted_at=_utcnow(),
        )
        db.add(user)

    db.flush()

    if preassigned and consume_preassigned_role(db, preassigned.email):
        user.role = parse_role(preassigned.role).value
        logger.info(
            "%s preassigned role applied user_id=%s email=%s role=%s",
            PROVISIONING_PREFIX,
            user.id,
            preassigned.email,
            user.role,
        )
    elif preassigned:
        logger.info(
            "%s preassigned role already consumed email=%s",
            PROVISIONING_PREFIX,
            preassigned.email,
        )

    db.commit()
    db.refresh(user)
    logger.info("%s first login provisioned user_id=%s role=%s", PROVISIONING_PREFIX, user.id, user.role)
    return user


def resolve_first_login(db: Session, claims: IdentityClaims | Mapping[str, Any]) -> User:
    """Reconcilia a identidade autenticada com o banco e aplica o perfil pré-atribuído uma única vez.

    Dois logins simultâneos do mesmo usuário novo podem colidir na inserção;
    nesse caso a segunda tentativa encontra o registro e segue como login de
    retorno.
    """
    if not isinstance(claims, IdentityClaims):
        claims = IdentityClaims.from_mapping(claims)

    try:
        return _provision(db, claims)
    except IntegrityError:
        db.rollback()
        logger.warning(
            "%s concurrent first login detected subject_id=%s; retrying",
            PROVISIONING_PREFIX,
            claims.subject_id,
        )
        return _provision(db, claims)


def create_preassigned_role(
    db: Session,
    *,
    email: str,
    role: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone_number: Optional[str] = None,
    created_by: Optional[str] = None,
    dispatch: Optional[Callable[..., Any]] = None,
) -> PreassignedRole:
    """Cria a atribuição e agenda o SMS de boas-vindas; com `dispatch` o envio sai depois da resposta."""
    normalized_email = normalize_email(email)
    if not normalized_email or not role:
        raise ValidationError("Email e perfil são obrigatórios")
    try:
        parsed_role = parse_role(role)
    except ValueError as exc:
        raise ValidationError("Perfil inválido") from exc

    if get_unconsumed_preassigned_role(db, normalized_email):
        raise PreassignedRoleConflictError("Já existe uma atribuição de perfil para este email")

    entry = PreassignedRole(
        email=normalized_email,
        first_name=(first_name or "").strip() or None,
        last_name=(last_name or "").strip() or None,
        phone_number=(phone_number or "").strip() or None,
        role=parsed_role.value,
        created_by=created_by,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise PreassignedRoleConflictError("Já existe uma atribuição de perfil para este email") from exc
    db.refresh(entry)
    logger.info(
        "%s preassigned role created id=%s email=%s role=%s created_by=%s",
        PROVISIONING_PREFIX,
        entry.id,
        entry.email,
        entry.role,
        created_by,
    )

    payload = {
        "preassigned_role_id": entry.id,
        "email": entry.email,
        "first_name": entry.first_name,
        "phone_number": entry.phone_number,
        "role": entry.role,
    }
    if dispatch is not None:
        dispatch(event_bus.emit, "preassigned_role.created", payload)
    else:
        event_bus.emit("preassigned_role.created", payload)
    return entry


def list_preassigned_roles(db: Session) -> list[PreassignedRole]:
    return db.query(PreassignedRole).order_by(desc(PreassignedRole.created_at), desc(PreassignedRole.id)).all()


def delete_preassigned_role(db: Session, preassigned_role_id: int) -> bool:
    entry = db.query(PreassignedRole).filter(PreassignedRole.id == preassigned_role_id).first()
    if not entry:
        return False
    db.delete(entry)
    db.commit()
    logger.info("%s preassigned role deleted id=%s", PROVISIONING_PREFIX, preassigned_role_id)
    return True
