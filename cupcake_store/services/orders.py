from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from cupcake_store.core.config import ORDER_STATUS_TRANSITIONS, ORDER_TOTAL_POLICY
from cupcake_store.models.order import STATUS_SEQUENCE, Order, OrderStatus
from cupcake_store.models.order_item import OrderItem
from cupcake_store.models.product import Product
from cupcake_store.services.errors import (
    InvalidStatusTransitionError,
    OrderAccessDeniedError,
    OrderNotFoundError,
    OrderValidationError,
)
from cupcake_store.services.order_events import build_order_payload, emit_order_status_changed

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Recebe (callable, payload); permite ao router adiar o envio para BackgroundTasks
Dispatcher = Callable[..., Any]


@dataclass(frozen=True)
class OrderItemInput:
    product_id: int
    quantity: int
    price_at_purchase: Decimal


@dataclass
class RepeatItem:
    product_id: int
    quantity: int
    price_at_purchase: Decimal
    product: Optional[Product]


def to_money(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise OrderValidationError(f"Valor monetário inválido: {value!r}") from exc
    if not amount.is_finite():
        raise OrderValidationError(f"Valor monetário inválido: {value!r}")
    return amount.quantize(CENTS)


def compute_items_total(items: Iterable[OrderItemInput]) -> Decimal:
    total = Decimal("0.00")
    for item in items:
        total += to_money(item.price_at_purchase) * int(item.quantity)
    return total.quantize(CENTS)


def parse_status(value: str | OrderStatus | None) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    normalized = (value or "").strip().lower()
    if not normalized:
        raise OrderValidationError("Status é obrigatório")
    try:
        return OrderStatus(normalized)
    except ValueError as exc:
        raise OrderValidationError(f"Status inválido: {value}") from exc


def _validate_items(items: list[OrderItemInput]) -> None:
    if not items:
        raise OrderValidationError("Itens são obrigatórios")
    for item in items:
        if int(item.quantity) < 1:
            raise OrderValidationError(f"Quantidade inválida para o produto {item.product_id}")
        if to_money(item.price_at_purchase) < 0:
            raise OrderValidationError(f"Preço inválido para o produto {item.product_id}")


def _ensure_products_exist(db: Session, items: list[OrderItemInput]) -> None:
    product_ids = {int(item.product_id) for item in items}
    rows = db.query(Product.id).filter(Product.id.in_(product_ids)).all()
    found = {row.id for row in rows}
    missing = sorted(product_ids - found)
    if missing:
        raise OrderValidationError(f"Produto não encontrado: {missing[0]}")


def create_order_items(db: Session, order_id: int, items: list[OrderItemInput]) -> list[OrderItem]:
    order_items: list[OrderItem] = []
    for item in items:
        order_item = OrderItem(
            order_id=order_id,
            product_id=int(item.product_id),
            quantity=int(item.quantity),
            price_at_purchase=to_money(item.price_at_purchase),
        )
        db.add(order_item)
        order_items.append(order_item)
    return order_items


def create_order(
    db: Session,
    *,
    owner_id: str,
    items: list[OrderItemInput],
    total_amount: Any,
    total_policy: str | None = None,
) -> Order:
    """Cria o pedido e seus itens numa única transação.

    Com a política "trust" o total enviado pelo cliente é gravado como veio;
    com "verify" ele precisa bater com a soma dos itens.
    """
    _validate_items(items)
    total = to_money(total_amount)
    if total < 0:
        raise OrderValidationError("Total inválido")

    policy = (total_policy or ORDER_TOTAL_POLICY).strip().lower()
    computed_total = compute_items_total(items)
    if computed_total != total:
        if policy == "verify":
            raise OrderValidationError(
                f"Total informado ({total}) não confere com os itens ({computed_total})"
            )
        logger.warning(
            "Order total mismatch accepted owner_id=%s informed=%s computed=%s",
            owner_id,
            total,
            computed_total,
        )

    _ensure_products_exist(db, items)

    order = Order(
        user_id=owner_id,
        total_amount=total,
        status=OrderStatus.PENDING.value,
    )
    try:
        db.add(order)
        db.flush()
        create_order_items(db, order_id=order.id, items=items)
        db.commit()
        db.refresh(order)
    except Exception:
        db.rollback()
        logger.exception("Order creation rolled back owner_id=%s", owner_id)
        raise

    logger.info("Order created id=%s owner_id=%s items=%s total=%s", order.id, owner_id, len(items), total)
    return order


def _check_transition(current: OrderStatus, target: OrderStatus, mode: str) -> None:
    if mode != "strict":
        return
    current_index = STATUS_SEQUENCE.index(current)
    target_index = STATUS_SEQUENCE.index(target)
    if target_index != current_index + 1:
        raise InvalidStatusTransitionError(
            f"Transição de status não permitida: {current.value} -> {target.value}"
        )


def update_order_status(
    db: Session,
    order_id: int,
    new_status: str | OrderStatus,
    *,
    transitions: str | None = None,
    dispatch: Dispatcher | None = None,
) -> Order | None:
    """Atualiza o status; retorna None se o pedido não existir.

    A notificação ao cliente é disparada depois do commit e nunca desfaz a
    transição.
    """
    target = parse_status(new_status)

    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        return None

    previous_status = order.status
    if previous_status == target.value:
        return order

    mode = (transitions or ORDER_STATUS_TRANSITIONS).strip().lower()
    try:
        current = parse_status(previous_status)
    except OrderValidationError:
        current = None
    if current is not None:
        _check_transition(current, target, mode)

    order.status = target.value
    db.commit()
    db.refresh(order)
    logger.info("Order status updated id=%s from=%s to=%s", order.id, previous_status, order.status)

    payload = build_order_payload(order, previous_status=previous_status)
    if dispatch is not None:
        dispatch(emit_order_status_changed, payload)
    else:
        emit_order_status_changed(payload)
    return order


def get_order_with_items(db: Session, order_id: int) -> Order | None:
    return (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product), joinedload(Order.user))
        .filter(Order.id == order_id)
        .first()
    )


def repeat_order(db: Session, order_id: int, requesting_user_id: str) -> list[RepeatItem]:
    order = get_order_with_items(db, order_id)
    if not order:
        raise OrderNotFoundError("Pedido não encontrado")
    if order.user_id != requesting_user_id:
        logger.warning(
            "Repeat order denied order_id=%s owner_id=%s requester=%s",
            order_id,
            order.user_id,
            requesting_user_id,
        )
        raise OrderAccessDeniedError("Proibido: este pedido não é seu")

    return [
        RepeatItem(
            product_id=item.product_id,
            quantity=item.quantity,
            price_at_purchase=item.price_at_purchase,
            product=item.product,
        )
        for item in order.items
    ]


def list_user_orders(db: Session, user_id: str) -> list[Order]:
    return (
        db.query(Order)
        .options(joinedload(Order.items).joinedload(OrderItem.product))
        .filter(Order.user_id == user_id)
        .order_by(desc(Order.created_at), desc(Order.id))
        .all()
    )


def list_dashboard_orders(db: Session, statuses: Iterable[str] | None = None) -> list[Order]:
    query = db.query(Order).options(
        joinedload(Order.items).joinedload(OrderItem.product),
        joinedload(Order.user),
    )
    normalized = [parse_status(status).value for status in statuses or []]
    if normalized:
        query = query.filter(Order.status.in_(normalized))
    return query.order_by(desc(Order.created_at), desc(Order.id)).all()
