from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from cupcake_store.models.order import Order
from cupcake_store.models.order_item import OrderItem
from cupcake_store.services.orders import RepeatItem


class OrderItemPayload(BaseModel):
    product_id: int
    quantity: int
    price_at_purchase: Decimal


class OrderCreate(BaseModel):
    items: List[OrderItemPayload] = Field(default_factory=list)
    total_amount: Decimal


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class OrderItemRead(BaseModel):
    id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    product_image_url: Optional[str] = None
    quantity: int
    price_at_purchase: Decimal


class OrderRead(BaseModel):
    id: int
    user_id: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    total_amount: Decimal
    status: str
    items: List[OrderItemRead] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def order_item_to_dict(item: OrderItem | RepeatItem) -> Dict[str, Any]:
    product = item.product
    return {
        "id": getattr(item, "id", None),
        "product_id": item.product_id,
        "product_name": product.name if product else None,
        "product_image_url": product.image_url if product else None,
        "quantity": item.quantity,
        "price_at_purchase": item.price_at_purchase,
    }


def order_to_dict(order: Order, *, include_customer: bool = False) -> Dict[str, Any]:
    data = {
        "id": order.id,
        "user_id": order.user_id,
        "total_amount": order.total_amount,
        "status": order.status,
        "items": [order_item_to_dict(item) for item in order.items],
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }
    if include_customer and order.user is not None:
        data["customer_name"] = order.user.display_name or order.user.email
        data["customer_phone"] = order.user.phone_number
    return data
