from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from marketplace.db import Base, BigIntPK


class SubOrderStatus(str, Enum):
    """Fulfilment status of one vendor's part of an order"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderStatus(str, Enum):
    """Customer-facing status of a parent order, derived from its sub-orders"""
    PENDING = "pending"
    PROCESSING = "processing"
    PARTIALLY_FULFILLED = "partially_fulfilled"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    PARTIALLY_CANCELLED = "partially_cancelled"
    CANCELLED = "cancelled"


SUB_ORDER_TRANSITIONS: Mapping[SubOrderStatus, FrozenSet[SubOrderStatus]] = {
    SubOrderStatus.PENDING: frozenset({SubOrderStatus.PROCESSING, SubOrderStatus.CANCELLED}),
    SubOrderStatus.PROCESSING: frozenset({SubOrderStatus.SHIPPED, SubOrderStatus.CANCELLED}),
    SubOrderStatus.SHIPPED: frozenset({SubOrderStatus.DELIVERED}),
    SubOrderStatus.DELIVERED: frozenset(),
    SubOrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: SubOrderStatus, target: SubOrderStatus) -> bool:
    return target in SUB_ORDER_TRANSITIONS[current]


def derive_order_status(statuses: Iterable[SubOrderStatus]) -> OrderStatus:
    """
    Project the statuses of an order's sub-orders onto one parent status.

    Cancelled sub-orders only count when every sub-order is cancelled, or to
    mark a finished order as partially cancelled.
    """
    statuses = [SubOrderStatus(s) for s in statuses]
    if not statuses:
        return OrderStatus.PENDING

    active = [s for s in statuses if s != SubOrderStatus.CANCELLED]
    has_cancelled = len(active) < len(statuses)

    if not active:
        return OrderStatus.CANCELLED
    if all(s == SubOrderStatus.DELIVERED for s in active):
        return OrderStatus.PARTIALLY_CANCELLED if has_cancelled else OrderStatus.COMPLETED

    shipped_or_delivered = [s for s in active if s in (SubOrderStatus.SHIPPED, SubOrderStatus.DELIVERED)]
    if len(shipped_or_delivered) == len(active):
        return OrderStatus.SHIPPED
    if shipped_or_delivered:
        return OrderStatus.PARTIALLY_FULFILLED
    if SubOrderStatus.PROCESSING in active:
        return OrderStatus.PROCESSING
    return OrderStatus.PENDING


def _money(cents: int) -> str:
    return str(Decimal(cents) / 100)


class Order(Base):
    """
    One checkout by a customer, possibly spanning several shops.

    shipping_address is a JSON snapshot taken at checkout; later edits to the
    customer's address book do not alter historical orders.

    total_cents always equals the sum of the sub-order totals: both are
    computed from the same line items inside one transaction.

    status is a projection of the sub-order statuses (derive_order_status),
    rewritten whenever a sub-order changes.

    idempotency_key is optional; (user_id, idempotency_key) is unique so a
    retried checkout returns the original order instead of buying twice.
    """

    __tablename__ = "orders"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigIntPK, ForeignKey("users.id"), nullable=False)
    status = Column(Text, nullable=False, default=OrderStatus.PENDING.value)
    total_cents = Column(Integer, nullable=False)
    shipping_address = Column(JSON, nullable=False)
    idempotency_key = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("total_cents >= 0", name="ck_order_total"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_order_idempotency"),
    )

    user = relationship("User")
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    sub_orders = relationship(
        "SubOrder", back_populates="order", cascade="all, delete-orphan", order_by="SubOrder.id"
    )

    def refresh_status(self) -> OrderStatus:
        status = derive_order_status(s.status for s in self.sub_orders)
        self.status = status.value
        return status

    def to_dict(self, include_sub_orders: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "total_cents": self.total_cents,
            "total_dollars": _money(self.total_cents),
            "shipping_address": self.shipping_address,
            "items": [item.to_dict() for item in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_sub_orders:
            data["sub_orders"] = [s.to_dict() for s in self.sub_orders]
        return data

    def __repr__(self) -> str:
        return (
            f"<Order id={self.id} status={self.status!r} "
            f"total_cents={self.total_cents}>"
        )


class OrderItem(Base):
    """
    A single line of the parent order (the full, flattened list).

    price_cents is snapshotted at purchase time. product_id is nulled if the
    product is later deleted; the snapshot keeps the history readable.
    """

    __tablename__ = "order_items"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(
        BigIntPK, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(
        BigIntPK, ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    quantity = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity"),
    )

    order = relationship("Order", back_populates="items")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product": self.product_id,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
        }


class SubOrder(Base):
    """
    The part of an order fulfilled by one shop.

    vendor_id is the shop owner at checkout time, kept so authorisation checks
    do not have to join through shops.
    """

    __tablename__ = "sub_orders"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(
        BigIntPK, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    shop_id = Column(BigIntPK, ForeignKey("shops.id"), nullable=False)
    vendor_id = Column(BigIntPK, ForeignKey("users.id"), nullable=False)
    status = Column(Text, nullable=False, default=SubOrderStatus.PENDING.value)
    total_cents = Column(Integer, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','processing','shipped','delivered','cancelled')",
            name="ck_sub_order_status",
        ),
        CheckConstraint("total_cents >= 0", name="ck_sub_order_total"),
    )

    order = relationship("Order", back_populates="sub_orders")
    shop = relationship("Shop")
    items = relationship(
        "SubOrderItem", back_populates="sub_order", cascade="all, delete-orphan", order_by="SubOrderItem.id"
    )

    @property
    def status_enum(self) -> SubOrderStatus:
        return SubOrderStatus(self.status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "shop": self.shop.to_summary() if self.shop else {"id": self.shop_id},
            "vendor": self.vendor_id,
            "status": self.status,
            "total_cents": self.total_cents,
            "total_dollars": _money(self.total_cents),
            "items": [item.to_dict() for item in self.items],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<SubOrder id={self.id} order_id={self.order_id} status={self.status!r}>"


class SubOrderItem(Base):
    """A line of a sub-order with the product's name and price at checkout."""

    __tablename__ = "sub_order_items"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    sub_order_id = Column(
        BigIntPK, ForeignKey("sub_orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(
        BigIntPK, ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    name = Column(Text, nullable=False)
    price_cents = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sub_order_item_quantity"),
    )

    sub_order = relationship("SubOrder", back_populates="items")

    @property
    def subtotal_cents(self) -> int:
        return self.price_cents * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
