from __future__ import annotations

import logging

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from cupcake_store.models.order import Order
from cupcake_store.models.order_item import OrderItem
from cupcake_store.models.review import Review
from cupcake_store.services.errors import ReviewNotAllowedError, ValidationError

logger = logging.getLogger(__name__)

REVIEW_NOT_ALLOWED_MESSAGE = (
    "Você precisa comprar este produto antes de avaliá-lo, e só pode avaliá-lo uma vez"
)


def has_purchased(db: Session, user_id: str, product_id: int) -> bool:
    """Qualquer pedido do usuário com o produto conta, independente do status."""
    row = (
        db.query(OrderItem.id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.user_id == user_id, OrderItem.product_id == product_id)
        .first()
    )
    return row is not None


def has_reviewed(db: Session, user_id: str, product_id: int) -> bool:
    row = (
        db.query(Review.id)
        .filter(Review.user_id == user_id, Review.product_id == product_id)
        .first()
    )
    return row is not None


def can_review(db: Session, user_id: str | None, product_id: int | None) -> bool:
    if not user_id or product_id is None:
        return False
    if not has_purchased(db, user_id, product_id):
        return False
    return not has_reviewed(db, user_id, product_id)


def create_review(
    db: Session,
    *,
    user_id: str,
    product_id: int,
    rating: int,
    comment: str | None = None,
) -> Review:
    """Grava a avaliação refazendo a checagem de elegibilidade no momento da escrita.

    A checagem é só um pré-filtro: duas submissões concorrentes podem passar por
    ela, e nesse caso a constraint única (user_id, product_id) barra a segunda.
    """
    if rating < 1 or rating > 5:
        raise ValidationError("A nota deve estar entre 1 e 5")

    if not can_review(db, user_id, product_id):
        raise ReviewNotAllowedError(REVIEW_NOT_ALLOWED_MESSAGE)

    review = Review(
        user_id=user_id,
        product_id=product_id,
        rating=rating,
        comment=(comment or "").strip() or None,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(
            "Duplicate review rejected by constraint user_id=%s product_id=%s",
            user_id,
            product_id,
        )
        raise ReviewNotAllowedError(REVIEW_NOT_ALLOWED_MESSAGE) from exc
    db.refresh(review)
    logger.info("Review created id=%s user_id=%s product_id=%s", review.id, user_id, product_id)
    return review


def list_product_reviews(db: Session, product_id: int) -> list[Review]:
    return (
        db.query(Review)
        .options(joinedload(Review.user))
        .filter(Review.product_id == product_id)
        .order_by(desc(Review.created_at), desc(Review.id))
        .all()
    )
