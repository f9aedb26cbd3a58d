from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cupcake_store.core.database import get_db
from cupcake_store.core.roles import STAFF
from cupcake_store.deps import raise_http_error, require_role
from cupcake_store.models.user import User
from cupcake_store.schemas.order import OrderRead, order_to_dict
from cupcake_store.services.errors import StoreError
from cupcake_store.services.orders import list_dashboard_orders

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/orders", response_model=List[OrderRead])
def dashboard_orders(
    status: Optional[List[str]] = Query(None),
    _user: User = Depends(require_role(STAFF)),
    db: Session = Depends(get_db),
):
    try:
        orders = list_dashboard_orders(db, statuses=status)
    except StoreError as exc:
        raise_http_error(exc)
    return [order_to_dict(order, include_customer=True) for order in orders]
