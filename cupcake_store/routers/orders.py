from __future__ import annotations

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.core.roles import STAFF
from cupcake_store.deps import get_current_user, raise_http_error, require_role
from cupcake_store.models.user import User
from cupcake_store.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    order_item_to_dict,
    order_to_dict,
)
from cupcake_store.services.errors import StoreError
from cupcake_store.services.orders import (
    OrderItemInput,
    create_order,
    get_order_with_items,
    list_user_orders,
    repeat_order,
    update_order_status,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.get("", response_model=List[OrderRead])
def list_my_orders(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [order_to_dict(order) for order in list_user_orders(db, user.id)]


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
def create_order_endpoint(
    payload: OrderCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = [
        OrderItemInput(
            product_id=item.product_id,
            quantity=item.quantity,
            price_at_purchase=item.price_at_purchase,
        )
        for item in payload.items
    ]
    try:
        order = create_order(db, owner_id=user.id, items=items, total_amount=payload.total_amount)
    except StoreError as exc:
        raise_http_error(exc)
    return order_to_dict(get_order_with_items(db, order.id))


@router.post("/{order_id}/repeat", response_model=List[OrderItemRead])
def repeat_order_endpoint(
    order_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Devolve os itens do pedido para o carrinho; não cria pedido novo."""
    try:
        items = repeat_order(db, order_id, user.id)
    except StoreError as exc:
        raise_http_error(exc)
    return [order_item_to_dict(item) for item in items]


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status_endpoint(
    order_id: int,
    payload: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    _user: User = Depends(require_role(STAFF)),
    db: Session = Depends(get_db),
):
    try:
        order = update_order_status(
            db,
            order_id,
            payload.status,
            dispatch=background_tasks.add_task,
        )
    except StoreError as exc:
        raise_http_error(exc)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pedido não encontrado")
    return order_to_dict(get_order_with_items(db, order.id), include_customer=True)
