import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import joinedload, selectinload

from marketplace.models.order import Order, OrderItem, SubOrder, SubOrderStatus
from marketplace.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


def _order_options():
    return (
        selectinload(Order.items),
        selectinload(Order.sub_orders).selectinload(SubOrder.items),
        selectinload(Order.sub_orders).joinedload(SubOrder.shop),
    )


class OrderRepository(BaseRepository[Order]):
    """Repository for parent orders and their vendor sub-orders"""

    model = Order
    resource_name = "Order"

    def get_full(self, order_id: int) -> Optional[Order]:
        return self.session.execute(
            select(Order).options(*_order_options()).where(Order.id == order_id)
        ).scalar_one_or_none()

    def get_by_idempotency_key(self, user_id: int, key: str) -> Optional[Order]:
        return self.session.execute(
            select(Order)
            .options(*_order_options())
            .where(Order.user_id == user_id, Order.idempotency_key == key)
        ).scalar_one_or_none()

    def list_for_user(self, user_id: int) -> List[Order]:
        stmt = (
            select(Order)
            .options(*_order_options())
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(self.session.execute(stmt).scalars())

    def list_all(self) -> List[Order]:
        stmt = (
            select(Order)
            .options(joinedload(Order.user), *_order_options())
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(self.session.execute(stmt).scalars())

    # ------------------------------------------------------------------ #
    # Sub-orders                                                          #
    # ------------------------------------------------------------------ #
    def get_sub_order(self, sub_order_id: int) -> Optional[SubOrder]:
        return self.session.execute(
            select(SubOrder)
            .options(
                selectinload(SubOrder.items),
                joinedload(SubOrder.shop),
                joinedload(SubOrder.order).selectinload(Order.sub_orders),
            )
            .where(SubOrder.id == sub_order_id)
        ).scalar_one_or_none()

    def list_sub_orders_for_shop(self, shop_id: int) -> List[SubOrder]:
        stmt = (
            select(SubOrder)
            .options(
                selectinload(SubOrder.items),
                joinedload(SubOrder.shop),
                joinedload(SubOrder.order).joinedload(Order.user),
            )
            .where(SubOrder.shop_id == shop_id)
            .order_by(SubOrder.created_at.desc(), SubOrder.id.desc())
        )
        return list(self.session.execute(stmt).scalars())

    # ------------------------------------------------------------------ #
    # Aggregates                                                          #
    # ------------------------------------------------------------------ #
    def count_orders_with_products(self, product_ids: Sequence[int]) -> int:
        if not product_ids:
            return 0
        return self.session.execute(
            select(func.count(distinct(OrderItem.order_id))).where(OrderItem.product_id.in_(product_ids))
        ).scalar_one()

    def sum_quantity_for_products(self, product_ids: Sequence[int]) -> int:
        if not product_ids:
            return 0
        total = self.session.execute(
            select(func.coalesce(func.sum(OrderItem.quantity), 0)).where(OrderItem.product_id.in_(product_ids))
        ).scalar_one()
        return int(total)

    def revenue_for_shop(self, shop_id: int) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(SubOrder.total_cents), 0)).where(
                SubOrder.shop_id == shop_id,
                SubOrder.status != SubOrderStatus.CANCELLED.value,
            )
        ).scalar_one()
        return int(total)

    def sub_order_status_counts(self, shop_id: int) -> Dict[str, int]:
        rows = self.session.execute(
            select(SubOrder.status, func.count(SubOrder.id))
            .where(SubOrder.shop_id == shop_id)
            .group_by(SubOrder.status)
        ).all()
        counts = {s.value: 0 for s in SubOrderStatus}
        counts.update({status: int(n) for status, n in rows})
        return counts

    def total_revenue(self) -> int:
        total = self.session.execute(select(func.coalesce(func.sum(Order.total_cents), 0))).scalar_one()
        return int(total)

