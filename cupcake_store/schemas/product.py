from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from cupcake_store.models.product import Product
from cupcake_store.models.review import Review
from cupcake_store.services.ratings import EMPTY_RATING, RatingSummary


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    image_url: Optional[str] = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class ProductRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    is_active: bool
    average_rating: float
    review_count: int


class ReviewCreate(BaseModel):
    rating: int
    comment: Optional[str] = None


class ReviewRead(BaseModel):
    id: int
    product_id: int
    user_id: str
    rating: int
    comment: Optional[str] = None
    author_name: Optional[str] = None
    author_image_url: Optional[str] = None
    created_at: Optional[datetime] = None


def product_to_dict(product: Product, rating: RatingSummary | None = None) -> Dict[str, Any]:
    rating = rating or EMPTY_RATING
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "image_url": product.image_url,
        "is_active": bool(product.is_active),
        "average_rating": round(rating.average_rating, 1),
        "review_count": rating.review_count,
    }


def review_to_dict(review: Review) -> Dict[str, Any]:
    author = review.user
    return {
        "id": review.id,
        "product_id": review.product_id,
        "user_id": review.user_id,
        "rating": review.rating,
        "comment": review.comment,
        "author_name": author.display_name if author else None,
        "author_image_url": author.profile_image_url if author else None,
        "created_at": review.created_at,
    }
