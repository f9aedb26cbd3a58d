from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.core.roles import STAFF, role_allowed
from cupcake_store.deps import get_current_user, get_optional_user, raise_http_error, require_role
from cupcake_store.models.user import User
from cupcake_store.schemas.product import (
    ProductCreate,
    ProductRead,
    ProductUpdate,
    ReviewCreate,
    ReviewRead,
    product_to_dict,
    review_to_dict,
)
from cupcake_store.services.catalog import create_product, deactivate_product, update_product
from cupcake_store.services.errors import StoreError
from cupcake_store.services.ratings import get_product_with_rating, list_active_products_with_rating, product_rating
from cupcake_store.services.reviews import can_review, create_review, list_product_reviews

router = APIRouter(prefix="/api/products", tags=["products"])


def _get_visible_product(db: Session, product_id: int, user: Optional[User]):
    entry = get_product_with_rating(db, product_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado")
    # inativo só aparece para a equipe
    if not entry.product.is_active and not (user and role_allowed(user.role, STAFF)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado")
    return entry


@router.get("", response_model=List[ProductRead])
def list_products(db: Session = Depends(get_db)):
    return [product_to_dict(entry.product, entry.rating) for entry in list_active_products_with_rating(db)]


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    entry = _get_visible_product(db, product_id, user)
    return product_to_dict(entry.product, entry.rating)


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product_endpoint(
    payload: ProductCreate,
    _user: User = Depends(require_role(STAFF)),
    db: Session = Depends(get_db),
):
    try:
        product = create_product(db, payload.model_dump())
    except StoreError as exc:
        raise_http_error(exc)
    return product_to_dict(product)


@router.put("/{product_id}", response_model=ProductRead)
def update_product_endpoint(
    product_id: int,
    payload: ProductUpdate,
    _user: User = Depends(require_role(STAFF)),
    db: Session = Depends(get_db),
):
    try:
        product = update_product(db, product_id, payload.model_dump(exclude_unset=True))
    except StoreError as exc:
        raise_http_error(exc)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado")
    return product_to_dict(product, product_rating(db, product.id))


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product_endpoint(
    product_id: int,
    _user: User = Depends(require_role(STAFF)),
    db: Session = Depends(get_db),
):
    if not deactivate_product(db, product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{product_id}/reviews", response_model=List[ReviewRead])
def list_reviews(product_id: int, db: Session = Depends(get_db)):
    return [review_to_dict(review) for review in list_product_reviews(db, product_id)]


@router.get("/{product_id}/can-review")
def can_review_endpoint(
    product_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"can_review": can_review(db, user.id, product_id)}


@router.post("/{product_id}/reviews", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
def create_review_endpoint(
    product_id: int,
    payload: ReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if get_product_with_rating(db, product_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Produto não encontrado")
    try:
        review = create_review(
            db,
            user_id=user.id,
            product_id=product_id,
            rating=payload.rating,
            comment=payload.comment,
        )
    except StoreError as exc:
        raise_http_error(exc)
    return review_to_dict(review)
