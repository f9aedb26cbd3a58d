from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import relationship

from cupcake_store.core.database import Base


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PREPARATION = "in_preparation"
    READY_FOR_DELIVERY = "ready_for_delivery"
    DELIVERED = "delivered"


# Ordem declarada do ciclo de vida
STATUS_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.IN_PREPARATION,
    OrderStatus.READY_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(30), default=OrderStatus.PENDING.value, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
