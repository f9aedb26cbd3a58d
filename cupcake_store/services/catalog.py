from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from sqlalchemy.orm import Session

from cupcake_store.models.product import Product
from cupcake_store.services.errors import ValidationError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "description", "price", "image_url", "is_active")


def _normalize_price(value: Any) -> Decimal:
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError("Preço inválido") from exc
    if not price.is_finite() or price < 0:
        raise ValidationError("Preço inválido")
    return price


def _clean(data: Mapping[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "price":
            value = _normalize_price(value)
        elif field == "name":
            value = str(value or "").strip()
            if not value:
                raise ValidationError("Nome é obrigatório")
        elif field in {"description", "image_url"}:
            value = (str(value).strip() or None) if value is not None else None
        elif field == "is_active":
            if value is None:
                raise ValidationError("Campo is_active não pode ser nulo")
            value = bool(value)
        cleaned[field] = value
    return cleaned


def create_product(db: Session, data: Mapping[str, Any]) -> Product:
    cleaned = _clean(data)
    if "name" not in cleaned or "price" not in cleaned:
        raise ValidationError("Nome e preço são obrigatórios")
    product = Product(**cleaned)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Product created id=%s name=%s", product.id, product.name)
    return product


def update_product(db: Session, product_id: int, data: Mapping[str, Any]) -> Product | None:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        return None
    for field, value in _clean(data).items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    logger.info("Product updated id=%s", product.id)
    return product


def deactivate_product(db: Session, product_id: int) -> bool:
    """Soft delete: pedidos e avaliações antigos continuam apontando para o produto."""
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        return False
    product.is_active = False
    db.commit()
    logger.info("Product deactivated id=%s", product_id)
    return True
