from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    CLIENT = "client"
    EMPLOYEE = "employee"
    ADMIN = "admin"


ROLE_DISPLAY_NAMES = {
    Role.CLIENT: "Cliente",
    Role.EMPLOYEE: "Funcionário",
    Role.ADMIN: "Administrador",
}

# Conjuntos de capacidade usados pelos endpoints protegidos
STAFF = frozenset({Role.EMPLOYEE, Role.ADMIN})
ADMIN_ONLY = frozenset({Role.ADMIN})


def parse_role(value: str | Role | None) -> Role:
    """Converte texto em `Role`; levanta ValueError para valores fora do enum."""
    if isinstance(value, Role):
        return value
    normalized = (value or "").strip().lower()
    try:
        return Role(normalized)
    except ValueError as exc:
        raise ValueError("Perfil inválido") from exc


def role_allowed(role: str | Role | None, capability: frozenset[Role]) -> bool:
    try:
        return parse_role(role) in capability
    except ValueError:
        return False
