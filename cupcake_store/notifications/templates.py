from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

TEMPLATES: dict[str, str] = {
    "welcome": (
        "{greeting}! 🧁\n\n"
        "Você foi cadastrado na Cupcake Store como {role_name}.\n\n"
        "📧 Email: {email}\n"
        "🔐 Acesso: use sua conta do provedor de login para entrar\n\n"
        "Para acessar o sistema:\n"
        "1. Acesse a Cupcake Store\n"
        "2. Clique em \"Entrar\"\n"
        "3. Faça login com a sua conta\n\n"
        "Seja bem-vindo(a)!\n"
        "- Equipe Cupcake Store"
    ),
    "order_ready": (
        "{greeting}! 🧁\n\n"
        "Seu pedido #{order_number} está PRONTO PARA RETIRADA! 🎉\n\n"
        "💰 Total: {order_total}\n\n"
        "Você pode buscar seu pedido na Cupcake Store.\n\n"
        "Obrigado pela preferência!\n"
        "- Equipe Cupcake Store"
    ),
}


def format_currency(value: Any) -> str:
    try:
        amount = Decimal(str(value if value is not None else "0"))
    except (InvalidOperation, ValueError):
        amount = Decimal("0")
    formatted = f"{amount:,.2f}"
    return f"R$ {formatted}".replace(",", "X").replace(".", ",").replace("X", ".")


def greeting_for(name: str | None) -> str:
    return f"Olá {name}" if name else "Olá"


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    if template not in TEMPLATES:
        raise KeyError(f"Template inválido: {template}")
    return TEMPLATES[template].format(**variables)
