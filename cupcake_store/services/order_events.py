from __future__ import annotations

from cupcake_store.models.order import Order
from cupcake_store.services.event_bus import event_bus


def _normalize_status(status: str | None) -> str:
    return (status or "").strip().lower()


def build_order_payload(order: Order, previous_status: str | None = None) -> dict:
    return {
        "order_id": order.id,
        "user_id": order.user_id,
        "status": _normalize_status(order.status),
        "previous_status": _normalize_status(previous_status) if previous_status else None,
        "total_amount": str(order.total_amount) if order.total_amount is not None else "0.00",
    }


def emit_order_status_changed(payload: dict) -> None:
    previous_status = payload.get("previous_status")
    if previous_status and previous_status == payload.get("status"):
        return
    event_bus.emit("order.status.changed", payload)
