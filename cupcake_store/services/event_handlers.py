from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from cupcake_store.core.database import SessionLocal
from cupcake_store.models.order import OrderStatus
from cupcake_store.models.user import User
from cupcake_store.notifications.service import sms_service
from cupcake_store.services.event_bus import event_bus

logger = logging.getLogger(__name__)


def _with_session(handler):
    def wrapper(payload: dict) -> None:
        db: Session = SessionLocal()
        try:
            handler(db, payload)
        finally:
            db.close()

    wrapper.__name__ = handler.__name__
    return wrapper


@_with_session
def handle_order_status_changed(db: Session, payload: dict) -> None:
    # só "pronto para entrega" avisa o cliente
    if payload.get("status") != OrderStatus.READY_FOR_DELIVERY.value:
        return

    user = db.query(User).filter(User.id == payload["user_id"]).first()
    if not user or not user.phone_number:
        logger.info("[SMS] order ready without phone order_id=%s", payload["order_id"])
        return

    sms_service.send_order_ready(
        phone_number=user.phone_number,
        order_id=payload["order_id"],
        total_amount=payload.get("total_amount"),
        customer_name=user.display_name,
    )


def handle_preassigned_role_created(payload: dict) -> None:
    phone_number = payload.get("phone_number")
    if not phone_number:
        return

    sms_service.send_welcome(
        phone_number=phone_number,
        email=payload["email"],
        role=payload["role"],
        first_name=payload.get("first_name"),
    )


event_bus.subscribe("order.status.changed", handle_order_status_changed)
event_bus.subscribe("preassigned_role.created", handle_preassigned_role_created)
