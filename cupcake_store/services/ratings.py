from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from cupcake_store.models.product import Product
from cupcake_store.models.review import Review


@dataclass(frozen=True)
class RatingSummary:
    average_rating: float = 0.0
    review_count: int = 0


@dataclass
class ProductWithRating:
    product: Product
    rating: RatingSummary


EMPTY_RATING = RatingSummary()


def _summary(average, count) -> RatingSummary:
    # AVG volta como Decimal no PostgreSQL e float no SQLite; nunca None/NaN
    return RatingSummary(
        average_rating=float(average or 0),
        review_count=int(count or 0),
    )


def product_rating(db: Session, product_id: int) -> RatingSummary:
    row = (
        db.query(
            func.coalesce(func.avg(Review.rating), 0).label("average_rating"),
            func.count(Review.id).label("review_count"),
        )
        .filter(Review.product_id == product_id)
        .one()
    )
    return _summary(row.average_rating, row.review_count)


def ratings_for_products(db: Session, product_ids: Iterable[int]) -> dict[int, RatingSummary]:
    ids = {int(product_id) for product_id in product_ids}
    if not ids:
        return {}
    rows = (
        db.query(
            Review.product_id,
            func.avg(Review.rating).label("average_rating"),
            func.count(Review.id).label("review_count"),
        )
        .filter(Review.product_id.in_(ids))
        .group_by(Review.product_id)
        .all()
    )
    ratings = {product_id: EMPTY_RATING for product_id in ids}
    for row in rows:
        ratings[row.product_id] = _summary(row.average_rating, row.review_count)
    return ratings


def _products_with_rating_query(db: Session):
    return (
        db.query(
            Product,
            func.coalesce(func.avg(Review.rating), 0).label("average_rating"),
            func.count(Review.id).label("review_count"),
        )
        .outerjoin(Review, Review.product_id == Product.id)
        .group_by(Product.id)
    )


def list_active_products_with_rating(db: Session) -> list[ProductWithRating]:
    rows = (
        _products_with_rating_query(db)
        .filter(Product.is_active.is_(True))
        .order_by(desc(Product.created_at), desc(Product.id))
        .all()
    )
    return [
        ProductWithRating(product=product, rating=_summary(average, count))
        for product, average, count in rows
    ]


def get_product_with_rating(db: Session, product_id: int) -> ProductWithRating | None:
    row = _products_with_rating_query(db).filter(Product.id == product_id).first()
    if row is None:
        return None
    product, average, count = row
    return ProductWithRating(product=product, rating=_summary(average, count))
